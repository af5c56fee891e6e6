"""
Shared pytest fixtures.

Each test gets a fresh in-memory SQLite database with all billing tables.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine

import heartbeat.models  # noqa: F401  registers tables on Base.metadata
from heartbeat.billing.reconciler import WebhookReconciler
from heartbeat.billing.schemas import CreateSubscriptionEvent
from heartbeat.billing.store import SqlAlchemySubscriptionStore
from heartbeat.db_base import Base, get_session_factory
from heartbeat.entitlements.quota import QuotaEnforcer
from heartbeat.models.monitor import Monitor
from heartbeat.models.subscription import SubscriptionStatus, SubscriptionTier
from heartbeat.platform.identity import Identity


@pytest.fixture
def db_session():
    """Create in-memory SQLite database for testing."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    Session = get_session_factory(engine)
    session = Session()
    yield session
    session.close()
    engine.dispose()


@pytest.fixture
def store(db_session):
    return SqlAlchemySubscriptionStore(db_session)


@pytest.fixture
def reconciler(store):
    return WebhookReconciler(store)


@pytest.fixture
def enforcer(store):
    return QuotaEnforcer(store)


@pytest.fixture
def now():
    return datetime.now(timezone.utc)


@pytest.fixture
def user():
    return Identity(subject="user_test", email="test@example.com", name="Test User")


@pytest.fixture
def make_event(now):
    """Build a CreateSubscriptionEvent with sensible defaults."""
    def _make(**overrides):
        fields = {
            "user_id": "user_test",
            "stripe_customer_id": "cus_test",
            "stripe_subscription_id": "sub_test",
            "tier": SubscriptionTier.PULSE,
            "status": SubscriptionStatus.ACTIVE,
            "current_period_end": now + timedelta(days=30),
            "trial_end": None,
            "cancel_at_period_end": False,
        }
        fields.update(overrides)
        return CreateSubscriptionEvent(**fields)
    return _make


@pytest.fixture
def add_monitors(db_session):
    """Insert count monitors for user_id."""
    def _add(user_id: str, count: int):
        for i in range(count):
            db_session.add(Monitor(
                id=str(uuid.uuid4()),
                user_id=user_id,
                name=f"Monitor {i}",
                url=f"https://example.com/{i}",
                interval_seconds=300,
            ))
        db_session.commit()
    return _add
