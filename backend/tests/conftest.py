"""
Pytest fixtures for gift card backend tests.

Provides an in-memory database app, service instances over both store
backends, and recording notifiers.
"""

from decimal import Decimal

import pytest

from giftcards import create_app
from giftcards.extensions import db
from giftcards.models import GiftCard
from giftcards.services.giftcard_service import GiftCardService, init_giftcard_service
from giftcards.services.giftcard_store import InMemoryGiftCardStore, SqlGiftCardStore
from giftcards.services.signature_service import compute_payment_signature
from giftcards.time_utils import utcnow


PAYMENT_SECRET = "test_key_secret"
ADMIN_TOKEN = "test-admin-token"
OPS_EMAIL = "payouts@like.local"


class RecordingNotifier:
    def __init__(self):
        self.sent = []

    def send(self, recipient_address, subject, body):
        self.sent.append((recipient_address, subject, body))
        return True

    @property
    def recipients(self):
        return [address for address, _, _ in self.sent]


class FailingNotifier:
    def __init__(self):
        self.calls = 0

    def send(self, recipient_address, subject, body):
        self.calls += 1
        raise RuntimeError("mail API down")


class UnavailableStore(InMemoryGiftCardStore):
    """Store whose backend is always down."""

    def _down(self, *args, **kwargs):
        from giftcards.services.giftcard_store import StoreUnavailable
        raise StoreUnavailable("Gift card store is unavailable")

    insert_unique = _down
    find_by_code = _down
    find_by_payment_id = _down
    compare_and_transition = _down


def build_test_config(**overrides):
    config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'RAZORPAY_KEY_SECRET': PAYMENT_SECRET,
        'ADMIN_API_TOKEN': ADMIN_TOKEN,
        'SENDGRID_API_KEY': None,
        'REDEMPTION_NOTIFY_EMAIL': OPS_EMAIL,
        'CORS_ALLOWED_ORIGINS': ['http://localhost:5173'],
    }
    config.update(overrides)
    return config


@pytest.fixture(scope='function')
def app():
    """Create application with a fresh in-memory database."""
    app = create_app(build_test_config())

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture(scope='function')
def notifier():
    return RecordingNotifier()


@pytest.fixture(scope='function')
def failing_notifier():
    return FailingNotifier()


@pytest.fixture(scope='function')
def sql_service(app, notifier):
    """Service registered on the app, backed by the SQL store."""
    return init_giftcard_service(app, notifier=notifier)


@pytest.fixture(scope='function')
def memory_service(notifier):
    return GiftCardService(
        InMemoryGiftCardStore(),
        notifier,
        payment_secret=PAYMENT_SECRET,
        redemption_notify_email=OPS_EMAIL,
    )


@pytest.fixture(scope='function', params=['sql', 'memory'])
def service(request, app, notifier):
    """Lifecycle service over each store backend."""
    if request.param == 'sql':
        return request.getfixturevalue('sql_service')
    return request.getfixturevalue('memory_service')


@pytest.fixture(scope='function', params=['sql', 'memory'])
def store(request, app):
    if request.param == 'sql':
        return SqlGiftCardStore()
    return InMemoryGiftCardStore()


@pytest.fixture(scope='function')
def client(app, sql_service):
    """Create test client."""
    return app.test_client()


@pytest.fixture
def make_card():
    """Factory for unsaved, active gift cards."""
    def _make(code="LIKE-ABCD-EFGH-JKLM", **overrides):
        fields = {
            "code": code,
            "sender_email": "a@x.com",
            "amount": Decimal("50.00"),
            "currency": "INR",
            "currency_symbol": "₹",
            "denom_type": "fixed",
            "balance": None,
            "status": "active",
            "created_at": utcnow(),
        }
        fields.update(overrides)
        return GiftCard(**fields)
    return _make


@pytest.fixture
def card_count():
    def _count(store):
        if isinstance(store, InMemoryGiftCardStore):
            return len(store)
        return db.session.query(GiftCard).count()
    return _count


@pytest.fixture
def sign():
    def _sign(order_id, payment_id, secret=PAYMENT_SECRET):
        return compute_payment_signature(order_id, payment_id, secret)
    return _sign


@pytest.fixture
def admin_headers():
    return {'Authorization': f'Bearer {ADMIN_TOKEN}'}


@pytest.fixture
def creation_request():
    return {
        "senderEmail": "a@x.com",
        "amount": 50,
        "currency": "INR",
        "currencySymbol": "₹",
    }


@pytest.fixture
def unavailable_service(notifier):
    return GiftCardService(UnavailableStore(), notifier, payment_secret=PAYMENT_SECRET)
