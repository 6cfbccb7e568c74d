from datetime import datetime
from itertools import product

import pytest

from zerowaste import db, lifecycle
from zerowaste.errors import (
    NotFound, Forbidden, VerificationRequired, ClaimConflict, InvalidTransition,
)
from zerowaste.models import (
    FoodListing, CLAIM_STATUSES,
    OPEN, CLAIMED, CONFIRMED, IN_PROCESS, DELIVERY_PARTNER_ASSIGNED,
    IN_TRANSIT, COMPLETED, CANCELLED,
)

from conftest import create_listing, assert_claim_invariant


def force_status(listing, status, claimant):
    listing.claim_status = status
    listing.claimed_by_ngo_id = None if status == OPEN else claimant.id
    listing.claimed_at = None if status == OPEN else datetime.utcnow()
    listing.updated_at = datetime(2020, 1, 1)
    db.session.commit()


# --- transition table ---

def test_transition_table_shape():
    assert lifecycle.allowed_transitions(OPEN) == ()
    assert lifecycle.allowed_transitions(CLAIMED) == (CONFIRMED, CANCELLED)
    assert lifecycle.allowed_transitions(IN_PROCESS) == (DELIVERY_PARTNER_ASSIGNED, IN_TRANSIT, CANCELLED)
    assert lifecycle.allowed_transitions(IN_TRANSIT) == (COMPLETED,)
    assert lifecycle.TERMINAL_STATUSES == {COMPLETED, CANCELLED}
    assert all(lifecycle.is_terminal(s) for s in (COMPLETED, CANCELLED))
    assert not lifecycle.is_terminal(IN_TRANSIT)


@pytest.mark.parametrize("current,requested", list(product(CLAIM_STATUSES, CLAIM_STATUSES)))
def test_advance_status_follows_transition_table(listing, ngo, admin, current, requested):
    force_status(listing, current, ngo)

    if requested in lifecycle.TRANSITIONS[current] and requested != CLAIMED:
        updated = lifecycle.advance_status(listing.id, requested, admin)
        assert updated.claim_status == requested
        assert updated.updated_at > datetime(2020, 1, 1)
    else:
        with pytest.raises(InvalidTransition) as excinfo:
            lifecycle.advance_status(listing.id, requested, admin)
        assert excinfo.value.allowed == list(lifecycle.allowed_transitions(current))
        assert db.session.get(FoodListing, listing.id).claim_status == current


def test_unknown_status_is_an_invalid_transition(listing, ngo):
    lifecycle.claim(listing.id, ngo)
    with pytest.raises(InvalidTransition) as excinfo:
        lifecycle.advance_status(listing.id, "eaten", ngo)
    assert excinfo.value.current == CLAIMED
    assert "confirmed" in excinfo.value.message


@pytest.mark.parametrize("terminal", [COMPLETED, CANCELLED])
def test_terminal_states_absorb_status_updates(listing, ngo, admin, terminal):
    force_status(listing, terminal, ngo)
    for requested in CLAIM_STATUSES:
        with pytest.raises(InvalidTransition) as excinfo:
            lifecycle.advance_status(listing.id, requested, admin)
        assert excinfo.value.allowed == []
    with pytest.raises(ClaimConflict):
        lifecycle.claim(listing.id, ngo)
    assert db.session.get(FoodListing, listing.id).claim_status == terminal


def test_advance_status_requires_claimant_or_admin(listing, ngo, other_ngo, provider):
    lifecycle.claim(listing.id, ngo)
    for caller in (other_ngo, provider):
        with pytest.raises(Forbidden):
            lifecycle.advance_status(listing.id, CONFIRMED, caller)


def change_after_read(monkeypatch, listing_id, **values):
    """Commit ``values`` to the listing once advance_status has read it."""
    real = lifecycle.allowed_transitions
    pending = [values]

    def allowed_then_write(status):
        if pending:
            changes = pending.pop()
            FoodListing.query.filter(FoodListing.id == listing_id).update(
                {getattr(FoodListing, name): value for name, value in changes.items()},
                synchronize_session=False,
            )
            db.session.commit()
        return real(status)

    monkeypatch.setattr(lifecycle, "allowed_transitions", allowed_then_write)


def test_status_changed_after_read_is_rejected(listing, ngo, monkeypatch):
    lifecycle.claim(listing.id, ngo)
    change_after_read(monkeypatch, listing.id, claim_status=CANCELLED)

    with pytest.raises(InvalidTransition) as excinfo:
        lifecycle.advance_status(listing.id, CONFIRMED, ngo)
    assert excinfo.value.current == CANCELLED
    assert excinfo.value.allowed == []

    db.session.expire_all()
    current = db.session.get(FoodListing, listing.id)
    assert current.claim_status == CANCELLED
    assert current.claimed_by_ngo_id == ngo.id


def test_former_claimant_cannot_advance_after_reclaim(listing, ngo, other_ngo, monkeypatch):
    lifecycle.claim(listing.id, ngo)
    # Released and claimed by another NGO between read and write
    change_after_read(monkeypatch, listing.id, claimed_by_ngo_id=other_ngo.id)

    with pytest.raises(Forbidden):
        lifecycle.advance_status(listing.id, CONFIRMED, ngo)

    db.session.expire_all()
    current = db.session.get(FoodListing, listing.id)
    assert current.claim_status == CLAIMED
    assert current.claimed_by_ngo_id == other_ngo.id


def test_cancel_from_any_non_terminal_claimed_state(listing, ngo):
    for status in (CLAIMED, CONFIRMED, IN_PROCESS, DELIVERY_PARTNER_ASSIGNED):
        force_status(listing, status, ngo)
        assert lifecycle.advance_status(listing.id, CANCELLED, ngo).claim_status == CANCELLED
    force_status(listing, IN_TRANSIT, ngo)
    with pytest.raises(InvalidTransition):
        lifecycle.advance_status(listing.id, CANCELLED, ngo)


# --- claim ---

def test_claim_open_listing(listing, ngo):
    claimed = lifecycle.claim(listing.id, ngo)
    assert claimed.claim_status == CLAIMED
    assert claimed.claimed_by_ngo_id == ngo.id
    assert claimed.claimed_at is not None
    assert_claim_invariant(claimed)


def test_claim_already_claimed_listing_conflicts(listing, ngo, other_ngo):
    lifecycle.claim(listing.id, ngo)
    with pytest.raises(ClaimConflict):
        lifecycle.claim(listing.id, other_ngo)
    with pytest.raises(ClaimConflict):
        lifecycle.claim(listing.id, ngo)
    current = db.session.get(FoodListing, listing.id)
    assert current.claimed_by_ngo_id == ngo.id
    assert_claim_invariant(current)


def test_claim_missing_or_inactive_listing_is_not_found(listing, provider, ngo):
    with pytest.raises(NotFound):
        lifecycle.claim("no-such-listing", ngo)
    lifecycle.soft_delete_listing(listing.id, provider)
    with pytest.raises(NotFound):
        lifecycle.claim(listing.id, ngo)


def test_unverified_ngo_cannot_claim_and_store_is_untouched(listing, unverified_ngo):
    before = listing.updated_at
    with pytest.raises(VerificationRequired):
        lifecycle.claim(listing.id, unverified_ngo)
    db.session.expire_all()
    current = db.session.get(FoodListing, listing.id)
    assert current.claim_status == OPEN
    assert current.claimed_by_ngo_id is None
    assert current.updated_at == before


def test_unverified_ngo_gets_verification_error_even_for_missing_listing(unverified_ngo):
    with pytest.raises(VerificationRequired):
        lifecycle.claim("no-such-listing", unverified_ngo)


def test_provider_cannot_claim(listing, provider):
    with pytest.raises(Forbidden):
        lifecycle.claim(listing.id, provider)


def test_stale_reader_loses_the_claim(listing, ngo, other_ngo):
    # Both NGOs saw the listing as open before either claimed it
    seen_by_a = lifecycle.get_listing(listing.id).claim_status
    seen_by_b = lifecycle.get_listing(listing.id).claim_status
    assert seen_by_a == seen_by_b == OPEN

    lifecycle.claim(listing.id, ngo)
    with pytest.raises(ClaimConflict):
        lifecycle.claim(listing.id, other_ngo)
    assert db.session.get(FoodListing, listing.id).claimed_by_ngo_id == ngo.id


# --- unclaim ---

@pytest.mark.parametrize("status", [CLAIMED, IN_PROCESS, IN_TRANSIT, COMPLETED, CANCELLED])
def test_admin_unclaim_resets_from_any_status(listing, ngo, admin, status):
    force_status(listing, status, ngo)
    reopened = lifecycle.unclaim(listing.id, admin)
    assert reopened.claim_status == OPEN
    assert reopened.claimed_by_ngo_id is None
    assert reopened.claimed_at is None
    assert_claim_invariant(reopened)


def test_claimant_may_unclaim_others_may_not(listing, ngo, other_ngo, provider):
    lifecycle.claim(listing.id, ngo)
    for caller in (other_ngo, provider):
        with pytest.raises(Forbidden):
            lifecycle.unclaim(listing.id, caller)
    assert lifecycle.unclaim(listing.id, ngo).claim_status == OPEN


def test_unclaimed_listing_can_be_claimed_again(listing, ngo, other_ngo):
    lifecycle.claim(listing.id, ngo)
    lifecycle.unclaim(listing.id, ngo)
    assert lifecycle.claim(listing.id, other_ngo).claimed_by_ngo_id == other_ngo.id


# --- listing CRUD ---

def test_create_listing_defaults(provider):
    listing = create_listing(provider, urgency=None, tags=None)
    assert listing.claim_status == OPEN
    assert listing.is_active is True
    assert listing.urgency == "medium"
    assert listing.tags == []
    assert listing.provider_id == provider.id
    assert_claim_invariant(listing)


def test_ngo_cannot_create_listing(ngo):
    with pytest.raises(Forbidden):
        create_listing(ngo)


def test_update_open_listing(listing, provider, admin):
    updated = lifecycle.update_listing(listing.id, {"quantity": "35 meals", "tags": ["veg"]}, provider)
    assert updated.quantity == "35 meals"
    assert updated.tags == ["veg"]
    assert lifecycle.update_listing(listing.id, {"urgency": "low"}, admin).urgency == "low"


def test_update_ignores_non_editable_fields(listing, provider, ngo):
    patch = {"title": "Fresh bread", "claim_status": CLAIMED, "claimed_by_ngo_id": ngo.id, "provider_id": ngo.id}
    updated = lifecycle.update_listing(listing.id, patch, provider)
    assert updated.title == "Fresh bread"
    assert updated.claim_status == OPEN
    assert updated.provider_id == provider.id
    assert_claim_invariant(updated)


def test_only_owner_or_admin_updates(listing, other_provider):
    with pytest.raises(Forbidden):
        lifecycle.update_listing(listing.id, {"title": "Mine now"}, other_provider)


def test_claimed_listing_cannot_be_edited_or_deleted(listing, provider, ngo):
    lifecycle.claim(listing.id, ngo)
    with pytest.raises(Forbidden):
        lifecycle.update_listing(listing.id, {"title": "Changed"}, provider)
    with pytest.raises(Forbidden):
        lifecycle.soft_delete_listing(listing.id, provider)


def test_soft_delete_hides_listing_but_keeps_row(listing, provider):
    lifecycle.soft_delete_listing(listing.id, provider)
    with pytest.raises(NotFound):
        lifecycle.get_listing(listing.id)
    assert lifecycle.list_listings() == []
    assert db.session.get(FoodListing, listing.id).is_active is False


def test_list_listings_filters_exactly(provider, other_provider):
    kochi = create_listing(provider, location="Kochi", urgency="high", food_type="cooked")
    create_listing(provider, location="Kochi - Aluva", urgency="low", food_type="bakery")
    theirs = create_listing(other_provider, location="Thrissur", urgency="high", food_type="cooked")

    assert [l.id for l in lifecycle.list_listings(location="Kochi")] == [kochi.id]
    assert {l.id for l in lifecycle.list_listings(urgency="high")} == {kochi.id, theirs.id}
    assert [l.id for l in lifecycle.list_listings(provider_id=other_provider.id)] == [theirs.id]
    assert len(lifecycle.list_listings(food_type="cooked")) == 2
    assert len(lifecycle.list_listings()) == 3


def test_list_listings_newest_first_and_by_status(provider, ngo):
    first = create_listing(provider, title="First")
    second = create_listing(provider, title="Second")
    assert [l.id for l in lifecycle.list_listings()] == [second.id, first.id]

    lifecycle.claim(first.id, ngo)
    assert [l.id for l in lifecycle.list_listings(claim_status=OPEN)] == [second.id]
    assert [l.id for l in lifecycle.list_claimed_by(ngo.id)] == [first.id]


# --- walkthrough ---

def test_provider_to_completion_walkthrough(listing, provider, ngo, other_ngo, admin):
    claimed = lifecycle.claim(listing.id, ngo)
    assert (claimed.claim_status, claimed.claimed_by_ngo_id) == (CLAIMED, ngo.id)

    with pytest.raises(ClaimConflict):
        lifecycle.claim(listing.id, other_ngo)

    assert lifecycle.advance_status(listing.id, CONFIRMED, ngo).claim_status == CONFIRMED

    with pytest.raises(InvalidTransition) as excinfo:
        lifecycle.advance_status(listing.id, COMPLETED, ngo)
    assert excinfo.value.allowed == [IN_PROCESS, CANCELLED]

    reopened = lifecycle.unclaim(listing.id, admin)
    assert reopened.claim_status == OPEN
    assert reopened.claimed_by_ngo_id is None
    assert_claim_invariant(reopened)

    lifecycle.claim(listing.id, other_ngo)
    for status in (CONFIRMED, IN_PROCESS, DELIVERY_PARTNER_ASSIGNED, IN_TRANSIT, COMPLETED):
        current = lifecycle.advance_status(listing.id, status, other_ngo)
        assert_claim_invariant(current)
    assert current.claim_status == COMPLETED
