# zerowaste/models.py

import uuid
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from flask_login import UserMixin
from zerowaste import db

ROLE_PROVIDER = "provider"
ROLE_NGO = "ngo"
ROLES = (ROLE_PROVIDER, ROLE_NGO)

URGENCY_LEVELS = ("low", "medium", "high")

OPEN = "open"
CLAIMED = "claimed"
CONFIRMED = "confirmed"
IN_PROCESS = "in_process"
DELIVERY_PARTNER_ASSIGNED = "delivery_partner_assigned"
IN_TRANSIT = "in_transit"
COMPLETED = "completed"
CANCELLED = "cancelled"
CLAIM_STATUSES = (
    OPEN, CLAIMED, CONFIRMED, IN_PROCESS,
    DELIVERY_PARTNER_ASSIGNED, IN_TRANSIT, COMPLETED, CANCELLED,
)


def new_id():
    return str(uuid.uuid4())


def _iso(value):
    return value.isoformat() if value else None


# ---------- USERS ----------
class User(UserMixin, db.Model):
    __tablename__ = "users"
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password = db.Column(db.String(255), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(50), nullable=False)
    user_type = db.Column(db.Enum(*ROLES, name="user_type"), nullable=False, index=True)
    organization_type = db.Column(db.String(255), nullable=False)
    address = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_admin = db.Column(db.Boolean, default=False, nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False, index=True)
    verified_at = db.Column(db.DateTime, nullable=True)
    rejected_at = db.Column(db.DateTime, nullable=True)  # Set by an admin rejection, row is kept
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    listings = db.relationship(
        "FoodListing", foreign_keys="FoodListing.provider_id", backref="provider", lazy="dynamic"
    )
    claimed_listings = db.relationship(
        "FoodListing", foreign_keys="FoodListing.claimed_by_ngo_id", backref="claimed_by_ngo", lazy="dynamic"
    )
    sent_messages = db.relationship("Message", foreign_keys="Message.sender_id", backref="sender", lazy="dynamic")
    received_messages = db.relationship("Message", foreign_keys="Message.receiver_id", backref="receiver", lazy="dynamic")

    @property
    def role(self):
        return self.user_type

    @property
    def is_ngo(self):
        return self.user_type == ROLE_NGO

    @property
    def is_provider(self):
        return self.user_type == ROLE_PROVIDER

    def set_password(self, raw_password):
        self.password = generate_password_hash(raw_password)

    def check_password(self, raw_password):
        return check_password_hash(self.password, raw_password)

    def to_dict(self):
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "phone": self.phone,
            "userType": self.user_type,
            "organizationType": self.organization_type,
            "address": self.address,
            "description": self.description,
            "isAdmin": bool(self.is_admin),
            "isVerified": bool(self.is_verified),
            "verifiedAt": _iso(self.verified_at),
            "rejectedAt": _iso(self.rejected_at),
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<User {self.email} ({self.user_type})>"


# ---------- FOOD LISTINGS ----------
class FoodListing(db.Model):
    __tablename__ = "food_listings"
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    title = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=False)
    quantity = db.Column(db.String(255), nullable=False)  # Free text, e.g. "20 kg" or "50 meals"
    location = db.Column(db.String(255), nullable=False, index=True)
    food_type = db.Column(db.String(255), nullable=False, index=True)
    urgency = db.Column(db.Enum(*URGENCY_LEVELS, name="urgency"), nullable=False, default="medium", index=True)
    expires_in = db.Column(db.String(255), nullable=False)
    contact_info = db.Column(db.String(255), nullable=False)
    special_instructions = db.Column(db.Text, nullable=True)
    tags = db.Column(db.JSON, nullable=False, default=list)

    provider_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    claimed_by_ngo_id = db.Column(
        db.String(36), db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True
    )
    claim_status = db.Column(
        db.Enum(*CLAIM_STATUSES, name="claim_status"), nullable=False, default=OPEN, index=True
    )
    claimed_at = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)  # Soft delete flag
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    messages = db.relationship("Message", backref="listing", lazy="dynamic")

    @property
    def is_open(self):
        return self.claim_status == OPEN

    def participants(self):
        """The provider and, once claimed, the claiming NGO."""
        ids = {self.provider_id}
        if self.claimed_by_ngo_id:
            ids.add(self.claimed_by_ngo_id)
        return ids

    def to_dict(self):
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "quantity": self.quantity,
            "location": self.location,
            "foodType": self.food_type,
            "urgency": self.urgency,
            "expiresIn": self.expires_in,
            "contactInfo": self.contact_info,
            "specialInstructions": self.special_instructions,
            "tags": list(self.tags or []),
            "providerId": self.provider_id,
            "claimedByNgoId": self.claimed_by_ngo_id,
            "claimStatus": self.claim_status,
            "claimedAt": _iso(self.claimed_at),
            "isActive": bool(self.is_active),
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<FoodListing {self.id} {self.claim_status}>"


# ---------- MESSAGES ----------
class Message(db.Model):
    __tablename__ = "messages"
    id = db.Column(db.String(36), primary_key=True, default=new_id)
    text = db.Column(db.Text, nullable=False)
    sender_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    receiver_id = db.Column(db.String(36), db.ForeignKey("users.id"), nullable=False, index=True)
    listing_id = db.Column(db.String(36), db.ForeignKey("food_listings.id"), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False, index=True)

    __table_args__ = (
        db.CheckConstraint("sender_id <> receiver_id", name="chk_message_distinct_parties"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "text": self.text,
            "senderId": self.sender_id,
            "receiverId": self.receiver_id,
            "listingId": self.listing_id,
            "createdAt": _iso(self.created_at),
        }
