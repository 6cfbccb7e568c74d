from datetime import datetime
from types import SimpleNamespace

import pytest

from config import TestConfig
from zerowaste import create_app, db
from zerowaste import lifecycle
from zerowaste.models import User, ROLE_PROVIDER, ROLE_NGO, OPEN

PASSWORD = "secret123"


def create_user(email, user_type=ROLE_PROVIDER, verified=False, admin=False):
    user = User(
        email=email,
        name=email.split("@")[0].replace(".", " ").title(),
        phone="9847000000",
        user_type=user_type,
        organization_type="restaurant" if user_type == ROLE_PROVIDER else "food bank",
        address="12 Market Road, Kochi",
        is_admin=admin,
        is_verified=verified,
        verified_at=datetime.utcnow() if verified else None,
    )
    user.set_password(PASSWORD)
    db.session.add(user)
    db.session.commit()
    return user


def listing_data(**overrides):
    data = {
        "title": "Surplus vegetable biryani",
        "description": "Lunch service leftovers, packed in foil trays",
        "quantity": "40 meals",
        "location": "Kochi",
        "food_type": "cooked",
        "urgency": "high",
        "expires_in": "4 hours",
        "contact_info": "+91 98470 00000",
        "tags": ["veg", "hot meal"],
    }
    data.update(overrides)
    return data


def create_listing(provider, **overrides):
    return lifecycle.create_listing(listing_data(**overrides), provider)


def assert_claim_invariant(listing):
    assert (listing.claim_status == OPEN) == (listing.claimed_by_ngo_id is None)


@pytest.fixture
def app():
    app = create_app(TestConfig)
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def provider(ctx):
    return create_user("kitchen@greenbistro.com", ROLE_PROVIDER)


@pytest.fixture
def other_provider(ctx):
    return create_user("chef@harbourhotel.com", ROLE_PROVIDER)


@pytest.fixture
def ngo(ctx):
    return create_user("pickup@foodbank.org", ROLE_NGO, verified=True)


@pytest.fixture
def other_ngo(ctx):
    return create_user("team@mealsforall.org", ROLE_NGO, verified=True)


@pytest.fixture
def unverified_ngo(ctx):
    return create_user("hello@newshelter.org", ROLE_NGO, verified=False)


@pytest.fixture
def admin(ctx):
    return create_user("admin@zerowaste-rescue.org", ROLE_PROVIDER, admin=True)


@pytest.fixture
def listing(provider):
    return create_listing(provider)


@pytest.fixture
def seed(app):
    """Users and an open listing for HTTP tests, returned as plain ids."""
    with app.app_context():
        provider = create_user("kitchen@greenbistro.com", ROLE_PROVIDER)
        ngo = create_user("pickup@foodbank.org", ROLE_NGO, verified=True)
        other_ngo = create_user("team@mealsforall.org", ROLE_NGO, verified=True)
        pending_ngo = create_user("hello@newshelter.org", ROLE_NGO, verified=False)
        admin = create_user("admin@zerowaste-rescue.org", ROLE_PROVIDER, admin=True)
        listing = create_listing(provider)
        ids = SimpleNamespace(
            provider=provider.id,
            ngo=ngo.id,
            other_ngo=other_ngo.id,
            pending_ngo=pending_ngo.id,
            admin=admin.id,
            listing=listing.id,
        )
        db.session.remove()
    return ids


def login(app, email):
    client = app.test_client()
    response = client.post("/api/auth/login", json={"email": email, "password": PASSWORD})
    assert response.status_code == 200, response.get_json()
    return client


@pytest.fixture
def clients(app, seed):
    return SimpleNamespace(
        anonymous=app.test_client(),
        provider=login(app, "kitchen@greenbistro.com"),
        ngo=login(app, "pickup@foodbank.org"),
        other_ngo=login(app, "team@mealsforall.org"),
        pending_ngo=login(app, "hello@newshelter.org"),
        admin=login(app, "admin@zerowaste-rescue.org"),
    )
