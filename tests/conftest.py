import uuid

import pytest
from fastapi.testclient import TestClient

from quotelink.auth import create_token
from quotelink.deps import Services
from quotelink.main import create_app
from quotelink.models import OptionIn
from quotelink.quotes import QuoteLifecycle
from quotelink.settings import Settings
from tests.fakes import FakeCheckout, FakeIdentity, FakeSupabase


@pytest.fixture
def settings():
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="service-role",
        jwt_secret="test-secret",
        stripe_secret_key="sk_test_123",
        stripe_webhook_secret="whsec_test",
        frontend_url="https://app.example.com",
        store_retry_delay=0,
    )


@pytest.fixture
def db():
    return FakeSupabase()


@pytest.fixture
def checkout():
    return FakeCheckout()


@pytest.fixture
def services(settings, db, checkout):
    return Services(settings=settings, db=db, identity=FakeIdentity(), checkout=checkout)


@pytest.fixture
def lifecycle(services):
    return QuoteLifecycle(services.db, services.checkout, services.settings)


@pytest.fixture
def client(services):
    return TestClient(create_app(services), raise_server_exceptions=False)


@pytest.fixture
def make_owner(db, settings):
    """Create a business profile and return (owner_id, auth headers)."""
    def _make(business_name="Acme Plumbing"):
        owner_id = str(uuid.uuid4())
        db.rows("profiles").append({"id": owner_id, "business_name": business_name})
        token = create_token(owner_id, settings)
        return owner_id, {"Authorization": f"Bearer {token}"}
    return _make


@pytest.fixture
def sent_quote(lifecycle, make_owner):
    """A quote with two options ($100, $150) that has been sent."""
    owner_id, _ = make_owner()
    created = lifecycle.create_quote(
        owner_id,
        client_name="Dana Client",
        client_email="dana@example.com",
        job_description="Replace water heater",
        options=[
            OptionIn(title="Standard", description="40 gallon tank", price=100),
            OptionIn(title="Premium", price=150),
        ],
    )
    lifecycle.send_quote(owner_id, created["quote"]["id"])
    return {"owner_id": owner_id, "quote": created["quote"], "options": created["options"]}
