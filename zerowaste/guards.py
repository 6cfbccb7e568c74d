# zerowaste/guards.py
"""Authorization checks for listings and messages.

Every guard evaluates already-fetched records, returns True when the action
is allowed and raises the matching error from ``zerowaste.errors`` when it
is not. Nothing here touches the database.
"""

from zerowaste.errors import Forbidden, VerificationRequired, InvalidParticipants
from zerowaste.models import ROLE_PROVIDER, ROLE_NGO, OPEN


def require_admin(caller):
    if not caller.is_admin:
        raise Forbidden("Admin access required.")
    return True


def can_create_listing(caller):
    if caller.user_type != ROLE_PROVIDER:
        raise Forbidden("Only providers can create listings.")
    return True


def can_mutate_listing(caller, listing):
    """Owner or admin may edit/delete a listing (open listings only, see ensure_editable)."""
    if caller.id != listing.provider_id and not caller.is_admin:
        raise Forbidden("Not authorized to modify this listing.")
    return True


def ensure_editable(listing):
    if listing.claim_status != OPEN:
        raise Forbidden(f"Listing can no longer be changed once claimed (status '{listing.claim_status}').")
    return True


def can_claim(caller, listing=None):
    # listing is accepted for a uniform signature; claimability is decided by the store
    if caller.user_type != ROLE_NGO:
        raise Forbidden("NGO access required.")
    if not caller.is_verified:
        raise VerificationRequired()
    return True


def can_unclaim(caller, listing):
    if not caller.is_admin and caller.id != listing.claimed_by_ngo_id:
        raise Forbidden("Not authorized to unclaim this listing.")
    return True


def can_update_status(caller, listing):
    if not caller.is_admin and caller.id != listing.claimed_by_ngo_id:
        raise Forbidden("Not authorized to update status for this listing.")
    return True


def can_message(caller, listing, other_party_id, has_history=False):
    """Both parties must be the listing's provider or its claiming NGO.

    ``has_history`` grants read access to a caller who already exchanged
    messages on the listing (e.g. an NGO whose claim was since released).
    """
    caller_id = getattr(caller, "id", caller)
    if caller_id == other_party_id:
        raise InvalidParticipants("Cannot send message to yourself.")
    participants = listing.participants()
    if caller_id in participants and other_party_id in participants:
        return True
    if has_history:
        return True
    if caller_id not in participants:
        raise InvalidParticipants("Not authorized to access this conversation.")
    raise InvalidParticipants("Receiver is not a valid participant for this listing.")
