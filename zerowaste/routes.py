# zerowaste/routes.py

from functools import wraps

from flask import Blueprint, jsonify, request, current_app, session
from flask_login import login_user, logout_user, current_user, login_required

from zerowaste import db, login_manager
from zerowaste import accounts, conversations, lifecycle
from zerowaste.errors import LifecycleError, Forbidden, ValidationFailed
from zerowaste.forms import (
    RegistrationForm, LoginForm, FoodListingForm, FoodListingUpdateForm,
    StatusUpdateForm, MessageForm,
)
from zerowaste.guards import require_admin
from zerowaste.models import User

main = Blueprint("main", __name__, url_prefix="/api")

ROLE_LABELS = {"ngo": "NGO", "provider": "Provider"}


@login_manager.user_loader
def load_user(user_id):
    return db.session.get(User, user_id)


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"error": "Authentication required", "code": "unauthorized"}), 401


# --- Helpers ---
def role_required(role):
    """Decorator to restrict access based on user role."""
    def decorator(f):
        @wraps(f)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            caller = current_user._get_current_object()
            if role == "admin":
                require_admin(caller)
            elif caller.user_type != role:
                raise Forbidden(f"{ROLE_LABELS.get(role, role)} access required.")
            return f(*args, **kwargs)
        return wrapped
    return decorator


def validated(form):
    if not form.validate_on_submit():
        raise ValidationFailed(form.errors)
    return form


def caller():
    return current_user._get_current_object()


# =========================
# AUTH
# =========================
@main.route("/auth/register", methods=["POST"])
def register():
    form = validated(RegistrationForm())
    user = accounts.register_user({
        "email": form.email.data,
        "password": form.password.data,
        "name": form.name.data,
        "phone": form.phone.data,
        "user_type": form.user_type.data,
        "organization_type": form.organization_type.data,
        "address": form.address.data,
        "description": form.description.data or None,
    })
    session.permanent = True
    login_user(user)
    return jsonify({"user": user.to_dict()})


@main.route("/auth/login", methods=["POST"])
def login():
    form = validated(LoginForm())
    user = accounts.authenticate(form.email.data, form.password.data)
    session.permanent = True
    login_user(user)
    current_app.logger.info(f"User {user.id} logged in from {request.remote_addr}")
    return jsonify({"user": user.to_dict()})


@main.route("/auth/logout", methods=["POST"])
def logout():
    logout_user()
    return jsonify({"message": "Logged out successfully"})


@main.route("/auth/me")
@login_required
def me():
    return jsonify({"user": caller().to_dict()})


# =========================
# ADMIN – NGO VERIFICATION
# =========================
@main.route("/admin/ngos")
@login_required
@role_required("admin")
def admin_list_ngos():
    ngos = accounts.list_ngos(request.args.get("status"))
    return jsonify([ngo.to_dict() for ngo in ngos])


@main.route("/admin/ngos/<ngo_id>/verify", methods=["POST"])
@login_required
@role_required("admin")
def admin_verify_ngo(ngo_id):
    ngo = accounts.verify_ngo(ngo_id)
    return jsonify({"message": "NGO verified successfully", "ngo": ngo.to_dict()})


@main.route("/admin/ngos/<ngo_id>/reject", methods=["POST"])
@login_required
@role_required("admin")
def admin_reject_ngo(ngo_id):
    ngo = accounts.reject_ngo(ngo_id)
    return jsonify({"message": "NGO verification rejected", "ngo": ngo.to_dict()})


# =========================
# FOOD LISTINGS
# =========================
@main.route("/food-listings")
def list_food_listings():
    listings = lifecycle.list_listings(
        location=request.args.get("location"),
        urgency=request.args.get("urgency"),
        food_type=request.args.get("foodType"),
        provider_id=request.args.get("providerId"),
        claim_status=request.args.get("claimStatus"),
    )
    return jsonify([listing.to_dict() for listing in listings])


@main.route("/food-listings/claimed")
@login_required
@role_required("ngo")
def my_claimed_listings():
    listings = lifecycle.list_claimed_by(caller().id)
    return jsonify([listing.to_dict() for listing in listings])


@main.route("/food-listings/<listing_id>")
def get_food_listing(listing_id):
    return jsonify(lifecycle.get_listing(listing_id).to_dict())


@main.route("/food-listings", methods=["POST"])
@login_required
def create_food_listing():
    form = validated(FoodListingForm())
    listing = lifecycle.create_listing(form.data, caller())
    return jsonify(listing.to_dict())


@main.route("/food-listings/<listing_id>", methods=["PUT"])
@login_required
def update_food_listing(listing_id):
    form = validated(FoodListingUpdateForm())
    patch = form.patch(request.get_json(silent=True) or {})
    listing = lifecycle.update_listing(listing_id, patch, caller())
    return jsonify(listing.to_dict())


@main.route("/food-listings/<listing_id>", methods=["DELETE"])
@login_required
def delete_food_listing(listing_id):
    lifecycle.soft_delete_listing(listing_id, caller())
    return jsonify({"success": True})


# --- Claim lifecycle ---
@main.route("/food-listings/<listing_id>/claim", methods=["POST"])
@login_required
def claim_food_listing(listing_id):
    listing = lifecycle.claim(listing_id, caller())
    return jsonify({"message": "Listing claimed successfully", "listing": listing.to_dict()})


@main.route("/food-listings/<listing_id>/unclaim", methods=["POST"])
@login_required
def unclaim_food_listing(listing_id):
    listing = lifecycle.unclaim(listing_id, caller())
    return jsonify({"message": "Listing unclaimed successfully", "listing": listing.to_dict()})


@main.route("/food-listings/<listing_id>/status", methods=["PATCH"])
@login_required
def update_food_listing_status(listing_id):
    form = validated(StatusUpdateForm())
    listing = lifecycle.advance_status(listing_id, form.claim_status.data, caller())
    return jsonify({"message": "Status updated successfully", "listing": listing.to_dict()})


# =========================
# CHAT
# =========================
@main.route("/messages/<listing_id>")
@login_required
def get_messages(listing_id):
    other_user_id = request.args.get("otherUserId")
    if not other_user_id:
        raise ValidationFailed({"otherUserId": ["otherUserId parameter is required"]})
    messages = conversations.read_conversation(listing_id, caller(), other_user_id)
    return jsonify([message.to_dict() for message in messages])


@main.route("/messages", methods=["POST"])
@login_required
def send_message():
    form = validated(MessageForm())
    message = conversations.append_message(
        form.text.data, caller().id, form.receiver_id.data, form.listing_id.data
    )
    return jsonify(message.to_dict())


@main.route("/conversations")
@login_required
def list_conversations():
    return jsonify([
        {"listing": entry["listing"].to_dict(), "lastMessage": entry["lastMessage"].to_dict()}
        for entry in conversations.list_conversations(caller().id)
    ])


# =========================
# ERROR HANDLERS
# =========================
@main.app_errorhandler(LifecycleError)
def lifecycle_error(e):
    """Translates typed service errors into JSON responses."""
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


@main.app_errorhandler(400)
def bad_request(e):
    return jsonify({"error": "Bad request", "code": "bad_request"}), 400


@main.app_errorhandler(404)
def not_found(e):
    return jsonify({"error": "Not found", "code": "not_found"}), 404


@main.app_errorhandler(405)
def method_not_allowed(e):
    return jsonify({"error": "Method not allowed", "code": "method_not_allowed"}), 405


@main.app_errorhandler(500)
def server_error(e):
    # Log the error for debugging
    current_app.logger.error(f"Server Error: {e}", exc_info=True)
    # Rollback database session in case of error during request handling
    db.session.rollback()
    return jsonify({"error": "Internal server error", "code": "server_error"}), 500
