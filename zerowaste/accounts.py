# zerowaste/accounts.py
"""Registration, credential checks and admin verification of NGOs."""

from datetime import datetime

from flask import current_app
from sqlalchemy import desc, func

from zerowaste import db
from zerowaste.email import notify_ngo_verified, notify_ngo_rejected
from zerowaste.errors import DuplicateEmail, InvalidCredentials, NotFound
from zerowaste.models import User, ROLE_NGO

PROFILE_FIELDS = ("name", "phone", "user_type", "organization_type", "address", "description")


def find_by_email(email):
    return User.query.filter(func.lower(User.email) == email.lower().strip()).first()


def register_user(data):
    email = data["email"].lower().strip()
    if find_by_email(email):
        raise DuplicateEmail()

    user = User(email=email, **{name: data.get(name) for name in PROFILE_FIELDS})
    user.set_password(data["password"])
    user.is_admin = email in current_app.config.get("ADMIN_EMAILS", [])
    db.session.add(user)
    db.session.commit()
    current_app.logger.info(f"Registered {user.user_type} {user.id}{' (admin)' if user.is_admin else ''}")
    return user


def authenticate(email, password):
    user = find_by_email(email)
    if user is None or not user.check_password(password):
        raise InvalidCredentials()
    return user


def list_ngos(status=None):
    query = User.query.filter(User.user_type == ROLE_NGO)
    if status == "pending":
        query = query.filter(User.is_verified.is_(False), User.rejected_at.is_(None))
    elif status == "verified":
        query = query.filter(User.is_verified.is_(True))
    elif status == "rejected":
        query = query.filter(User.rejected_at.isnot(None))
    return query.order_by(desc(User.created_at)).all()


def _get_ngo(ngo_id):
    ngo = User.query.filter_by(id=ngo_id, user_type=ROLE_NGO).first()
    if ngo is None:
        raise NotFound("NGO not found.")
    return ngo


def verify_ngo(ngo_id):
    ngo = _get_ngo(ngo_id)
    ngo.is_verified = True
    ngo.verified_at = datetime.utcnow()
    ngo.rejected_at = None
    db.session.commit()
    current_app.logger.info(f"NGO {ngo.id} verified")

    try:
        notify_ngo_verified(ngo)
    except Exception as e:
        current_app.logger.error(f"Failed to send verification email to {ngo.email}: {e}")
    return ngo


def reject_ngo(ngo_id):
    """Reject a pending NGO. The account is kept with ``rejected_at`` set."""
    ngo = _get_ngo(ngo_id)
    if ngo.is_verified or ngo.rejected_at is not None:
        raise NotFound("No pending NGO with this id.")

    ngo.rejected_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info(f"NGO {ngo.id} rejected")

    try:
        notify_ngo_rejected(ngo)
    except Exception as e:
        current_app.logger.error(f"Failed to send rejection email to {ngo.email}: {e}")
    return ngo
