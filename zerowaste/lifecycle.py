# zerowaste/lifecycle.py
"""Food listing lifecycle: claiming, status progression and listing CRUD.

The claim status moves forward through ``TRANSITIONS`` or drops to
``cancelled``; ``completed`` and ``cancelled`` are terminal. Claiming is a
conditional UPDATE on ``claim_status = 'open'`` so that two NGOs racing for
the same listing cannot both win.
"""

from datetime import datetime

from flask import current_app
from sqlalchemy import desc

from zerowaste import db
from zerowaste.errors import NotFound, ClaimConflict, InvalidTransition
from zerowaste.guards import (
    can_create_listing, can_mutate_listing, ensure_editable,
    can_claim, can_unclaim, can_update_status,
)
from zerowaste.models import (
    FoodListing, CLAIM_STATUSES,
    OPEN, CLAIMED, CONFIRMED, IN_PROCESS, DELIVERY_PARTNER_ASSIGNED,
    IN_TRANSIT, COMPLETED, CANCELLED,
)

# current status -> statuses it may move to
TRANSITIONS = {
    OPEN: (CLAIMED,),  # only through claim()
    CLAIMED: (CONFIRMED, CANCELLED),
    CONFIRMED: (IN_PROCESS, CANCELLED),
    IN_PROCESS: (DELIVERY_PARTNER_ASSIGNED, IN_TRANSIT, CANCELLED),
    DELIVERY_PARTNER_ASSIGNED: (IN_TRANSIT, CANCELLED),
    IN_TRANSIT: (COMPLETED,),
    COMPLETED: (),
    CANCELLED: (),
}

TERMINAL_STATUSES = frozenset(status for status, nxt in TRANSITIONS.items() if not nxt)

EDITABLE_FIELDS = (
    "title", "description", "quantity", "location", "food_type", "urgency",
    "expires_in", "contact_info", "special_instructions", "tags",
)


def allowed_transitions(status):
    """Statuses reachable from ``status`` through advance_status()."""
    return tuple(nxt for nxt in TRANSITIONS.get(status, ()) if nxt != CLAIMED)


def is_terminal(status):
    return status in TERMINAL_STATUSES


def _active_listings():
    return FoodListing.query.filter(FoodListing.is_active.is_(True))


def get_listing(listing_id):
    listing = _active_listings().filter(FoodListing.id == listing_id).first()
    if listing is None:
        raise NotFound("Listing not found.")
    return listing


def list_listings(location=None, urgency=None, food_type=None, provider_id=None, claim_status=None):
    """Active listings matching every given filter exactly, newest first."""
    query = _active_listings()
    if location:
        query = query.filter(FoodListing.location == location)
    if urgency:
        query = query.filter(FoodListing.urgency == urgency)
    if food_type:
        query = query.filter(FoodListing.food_type == food_type)
    if provider_id:
        query = query.filter(FoodListing.provider_id == provider_id)
    if claim_status:
        query = query.filter(FoodListing.claim_status == claim_status)
    return query.order_by(desc(FoodListing.created_at)).all()


def list_claimed_by(ngo_id):
    return (
        _active_listings()
        .filter(FoodListing.claimed_by_ngo_id == ngo_id)
        .order_by(desc(FoodListing.claimed_at))
        .all()
    )


def create_listing(data, provider):
    can_create_listing(provider)
    fields = {name: data[name] for name in EDITABLE_FIELDS if data.get(name) is not None}
    listing = FoodListing(provider_id=provider.id, claim_status=OPEN, is_active=True, **fields)
    db.session.add(listing)
    db.session.commit()
    current_app.logger.info(f"Provider {provider.id} created listing {listing.id}")
    return listing


def update_listing(listing_id, patch, caller):
    listing = get_listing(listing_id)
    can_mutate_listing(caller, listing)
    ensure_editable(listing)

    for name in EDITABLE_FIELDS:
        if name in patch:
            setattr(listing, name, patch[name])
    listing.updated_at = datetime.utcnow()
    db.session.commit()
    return listing


def soft_delete_listing(listing_id, caller):
    listing = get_listing(listing_id)
    can_mutate_listing(caller, listing)
    ensure_editable(listing)

    listing.is_active = False
    listing.updated_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info(f"Listing {listing_id} deactivated by {caller.id}")
    return listing


def claim(listing_id, ngo):
    """Atomically hand an open listing to ``ngo``.

    The UPDATE only matches while the row is still open and active; an
    affected-row count of zero means someone else got there first (or the
    listing is gone).
    """
    can_claim(ngo)

    now = datetime.utcnow()
    matched = (
        FoodListing.query
        .filter(
            FoodListing.id == listing_id,
            FoodListing.claim_status == OPEN,
            FoodListing.is_active.is_(True),
        )
        .update(
            {
                FoodListing.claimed_by_ngo_id: ngo.id,
                FoodListing.claim_status: CLAIMED,
                FoodListing.claimed_at: now,
                FoodListing.updated_at: now,
            },
            synchronize_session=False,
        )
    )
    db.session.commit()

    if matched != 1:
        listing = db.session.get(FoodListing, listing_id)
        if listing is None or not listing.is_active:
            raise NotFound("Listing not found.")
        current_app.logger.info(
            f"NGO {ngo.id} lost claim on listing {listing_id} (status '{listing.claim_status}')"
        )
        raise ClaimConflict("Unable to claim listing. It has already been claimed.")

    current_app.logger.info(f"NGO {ngo.id} claimed listing {listing_id}")
    return get_listing(listing_id)


def unclaim(listing_id, caller):
    """Release the claim and reopen the listing, whatever its current status."""
    listing = get_listing(listing_id)
    can_unclaim(caller, listing)

    previous = listing.claim_status
    listing.claimed_by_ngo_id = None
    listing.claim_status = OPEN
    listing.claimed_at = None
    listing.updated_at = datetime.utcnow()
    db.session.commit()
    current_app.logger.info(f"Listing {listing_id} unclaimed by {caller.id} (was '{previous}')")
    return listing


def advance_status(listing_id, requested_status, caller):
    listing = get_listing(listing_id)
    can_update_status(caller, listing)

    current = listing.claim_status
    claimant_id = listing.claimed_by_ngo_id
    allowed = allowed_transitions(current)
    if requested_status not in CLAIM_STATUSES or requested_status not in allowed:
        current_app.logger.warning(
            f"Rejected transition {current} -> {requested_status} on listing {listing_id}"
        )
        raise InvalidTransition(current, requested_status, allowed)

    # Guard the write on the status and claimant we validated against
    matched = (
        FoodListing.query
        .filter(
            FoodListing.id == listing_id,
            FoodListing.claim_status == current,
            FoodListing.claimed_by_ngo_id == claimant_id,
        )
        .update(
            {FoodListing.claim_status: requested_status, FoodListing.updated_at: datetime.utcnow()},
            synchronize_session=False,
        )
    )
    db.session.commit()

    if matched != 1:
        latest = get_listing(listing_id)
        current_app.logger.info(
            f"Listing {listing_id} changed to '{latest.claim_status}' before {current} -> {requested_status} was written"
        )
        can_update_status(caller, latest)
        raise InvalidTransition(latest.claim_status, requested_status, allowed_transitions(latest.claim_status))

    current_app.logger.info(f"Listing {listing_id} moved {current} -> {requested_status}")
    return get_listing(listing_id)
