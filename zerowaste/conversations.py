# zerowaste/conversations.py
"""Per-listing chat between a provider and the NGO that claimed the listing."""

from flask import current_app
from sqlalchemy import or_, and_, desc

from zerowaste import db
from zerowaste.errors import ValidationFailed
from zerowaste.guards import can_message
from zerowaste.lifecycle import get_listing
from zerowaste.models import Message, FoodListing


def _between(user_id, other_user_id):
    return or_(
        and_(Message.sender_id == user_id, Message.receiver_id == other_user_id),
        and_(Message.sender_id == other_user_id, Message.receiver_id == user_id),
    )


def has_history(listing_id, user_id):
    """True if the user has sent or received a message on the listing."""
    return db.session.query(
        Message.query.filter(
            Message.listing_id == listing_id,
            or_(Message.sender_id == user_id, Message.receiver_id == user_id),
        ).exists()
    ).scalar()


def list_participant_messages(listing_id, user_id, other_user_id):
    return (
        Message.query
        .filter(Message.listing_id == listing_id, _between(user_id, other_user_id))
        .order_by(Message.created_at, Message.id)
        .all()
    )


def read_conversation(listing_id, caller, other_user_id):
    listing = get_listing(listing_id)
    can_message(caller, listing, other_user_id, has_history=has_history(listing_id, caller.id))
    return list_participant_messages(listing_id, caller.id, other_user_id)


def append_message(text, sender_id, receiver_id, listing_id):
    if not text or not text.strip():
        raise ValidationFailed({"text": ["Message text is required."]})

    listing = get_listing(listing_id)
    can_message(sender_id, listing, receiver_id)

    message = Message(text=text, sender_id=sender_id, receiver_id=receiver_id, listing_id=listing_id)
    db.session.add(message)
    db.session.commit()
    current_app.logger.debug(f"Message {message.id} on listing {listing_id} from {sender_id} to {receiver_id}")
    return message


def list_conversations(user_id):
    """Latest message per listing the user has talked on, newest first."""
    messages = (
        Message.query
        .join(FoodListing, FoodListing.id == Message.listing_id)
        .filter(
            FoodListing.is_active.is_(True),
            or_(Message.sender_id == user_id, Message.receiver_id == user_id),
        )
        .order_by(desc(Message.created_at))
        .all()
    )

    conversations = []
    seen = set()
    for message in messages:
        if message.listing_id in seen:
            continue
        seen.add(message.listing_id)
        conversations.append({"listing": message.listing, "lastMessage": message})
    return conversations
