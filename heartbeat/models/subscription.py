"""
Subscription model: the canonical billing record for a user.

One row per user (unique on user_id). Rows are written only by the
webhook reconciler and are never hard-deleted; expired rows are kept for
audit history.

Lookups used by webhook reconciliation:
- by user_id (checkout completed)
- by stripe_customer_id
- by stripe_subscription_id (subscription updated / deleted, invoice failed)
"""

import enum
import uuid

from sqlalchemy import Boolean, Column, Enum, String

from heartbeat.db_base import Base
from heartbeat.models.base import TimestampMixin, UTCDateTime


class SubscriptionTier(str, enum.Enum):
    """Paid tiers."""
    PULSE = "pulse"
    VITAL = "vital"


class SubscriptionStatus(str, enum.Enum):
    """Subscription lifecycle status. EXPIRED is terminal."""
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    EXPIRED = "expired"


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


class Subscription(Base, TimestampMixin):
    """Billing subscription for a single user."""

    __tablename__ = "subscriptions"

    id = Column(
        String(255),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    user_id = Column(String(255), nullable=False, unique=True, index=True)

    tier = Column(
        Enum(SubscriptionTier, name="subscription_tier", values_callable=_enum_values),
        nullable=False,
    )
    status = Column(
        Enum(SubscriptionStatus, name="subscription_status", values_callable=_enum_values),
        nullable=False,
    )

    # Access is paid through this instant
    current_period_end = Column(UTCDateTime(), nullable=False)
    # Present only while on trial
    trial_end = Column(UTCDateTime(), nullable=True)

    stripe_customer_id = Column(String(255), nullable=False, index=True)
    # Absent until Stripe confirms the subscription object exists
    stripe_subscription_id = Column(String(255), nullable=True, index=True)

    cancel_at_period_end = Column(Boolean, nullable=False, default=False)

    # Provider timestamp of the newest event folded into this row
    last_event_at = Column(UTCDateTime(), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<Subscription(id={self.id}, user_id={self.user_id}, "
            f"tier={self.tier.value if self.tier else None}, "
            f"status={self.status.value if self.status else None})>"
        )
