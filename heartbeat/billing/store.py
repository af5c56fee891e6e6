"""
Subscription persistence.

SubscriptionStore is the seam the reconciler and quota layer depend on.
Each reconciler operation runs inside one atomic() block, so its
read-modify-write is a single transaction.
"""

from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from heartbeat.models.monitor import Monitor
from heartbeat.models.subscription import Subscription


class SubscriptionStore(ABC):
    """Lookup, insert and patch operations over subscriptions."""

    @abstractmethod
    def atomic(self):
        """Context manager wrapping one read-modify-write transaction."""

    @abstractmethod
    def get_by_user(self, user_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    def get_by_stripe_customer_id(self, stripe_customer_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        pass

    @abstractmethod
    def insert(self, user_id: str, fields: Dict[str, Any], now: datetime) -> Subscription:
        """Insert a new row with created_at = updated_at = now."""

    @abstractmethod
    def patch(self, subscription: Subscription, fields: Dict[str, Any], now: datetime) -> Subscription:
        """Apply fields to an existing row and bump updated_at."""

    @abstractmethod
    def count_monitors(self, user_id: str) -> int:
        pass


class SqlAlchemySubscriptionStore(SubscriptionStore):
    """SubscriptionStore backed by a SQLAlchemy session."""

    def __init__(self, session: Session):
        """
        Initialize store with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    @contextmanager
    def atomic(self) -> Iterator[Session]:
        """Commit on success, roll back on any exception."""
        try:
            yield self.session
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _first(self, *criteria) -> Optional[Subscription]:
        stmt = select(Subscription).where(*criteria).limit(1)
        return self.session.execute(stmt).scalars().first()

    def get_by_user(self, user_id: str) -> Optional[Subscription]:
        return self._first(Subscription.user_id == user_id)

    def get_by_stripe_customer_id(self, stripe_customer_id: str) -> Optional[Subscription]:
        if not stripe_customer_id:
            return None
        return self._first(Subscription.stripe_customer_id == stripe_customer_id)

    def get_by_stripe_subscription_id(self, stripe_subscription_id: str) -> Optional[Subscription]:
        # NULL ids must never match rows still waiting on Stripe
        if not stripe_subscription_id:
            return None
        return self._first(Subscription.stripe_subscription_id == stripe_subscription_id)

    def insert(self, user_id: str, fields: Dict[str, Any], now: datetime) -> Subscription:
        subscription = Subscription(user_id=user_id, **fields)
        subscription.created_at = now
        subscription.updated_at = now
        self.session.add(subscription)
        self.session.flush()
        return subscription

    def patch(self, subscription: Subscription, fields: Dict[str, Any], now: datetime) -> Subscription:
        for name, value in fields.items():
            if not hasattr(Subscription, name):
                raise AttributeError(f"Subscription has no column '{name}'")
            setattr(subscription, name, value)
        subscription.updated_at = now
        self.session.flush()
        return subscription

    def count_monitors(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Monitor).where(Monitor.user_id == user_id)
        return int(self.session.execute(stmt).scalar_one())
