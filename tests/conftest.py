import json
from datetime import timedelta

import pytest
from faker import Faker

from onramp import create_app
from onramp.config import FeatureFlags
from onramp.extensions import db
from onramp.models import PaymentSession
from onramp.payments.signatures import compute_signature
from onramp.schemas import PurchaseRequest
from onramp.services.container import get_services
from onramp.utils.clock import utcnow

# Initialize Faker for generating test data
fake = Faker()


# Custom pytest marks for organizing tests
def pytest_configure(config):
    config.addinivalue_line(
        "markers",
        "integration: mark test as exercising the full HTTP flow"
    )
    config.addinivalue_line(
        "markers",
        "payment: mark test as payment-related"
    )


class FakeClock:
    """Monotonic clock the tests can move forward by hand."""

    def __init__(self, start=1_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class FakeUtcClock:
    def __init__(self, start=None):
        self.now = start or utcnow()

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


def make_wallet():
    return "0x" + fake.hexify(text="^" * 64)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def feature_flags():
    return FeatureFlags(MANUAL_CONFIRMATION=True, ONCHAIN_TRANSFERS=False)


@pytest.fixture
def app(tmp_path, feature_flags):
    """Application on a throwaway SQLite file, with eager Celery."""
    app = create_app("testing", overrides={
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'onramp-test.db'}",
        "FEATURE_FLAGS": feature_flags,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return get_services(app)


@pytest.fixture
def seeded_rates(services):
    """Development prices for every supported token, in both the cache and the database."""
    services.rates.seed()
    return services.rate_cache


@pytest.fixture
def wallet():
    return make_wallet()


@pytest.fixture
def purchase(services, seeded_rates, wallet):
    """Open a purchase through the checkout and return its response body."""
    def _purchase(token_symbol="BTC", amount=1_000_000, wallet_address=None, email=None):
        request = PurchaseRequest(
            token_symbol=token_symbol,
            amount_fiat_minor=amount,
            wallet_address=wallet_address or wallet,
            email=email,
        )
        return services.checkout.open_purchase(request)

    return _purchase


@pytest.fixture
def expire_session():
    def _expire(transaction_id):
        for session in PaymentSession.query.filter_by(transaction_id=transaction_id).all():
            session.expires_at = utcnow() - timedelta(seconds=1)
        db.session.commit()

    return _expire


@pytest.fixture
def signed_webhook(app, client):
    """POST a mock-provider webhook signed with the configured secret."""
    def _post(body, secret=None, signature=None):
        raw = json.dumps(body).encode()
        if signature is None:
            signature = compute_signature(secret or app.config["WEBHOOK_SECRET"], raw)
        return client.post(
            "/webhook/payment",
            data=raw,
            headers={"Content-Type": "application/json", "X-Webhook-Signature": signature},
        )

    return _post
