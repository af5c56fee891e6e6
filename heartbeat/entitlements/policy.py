"""
Access policy evaluation.

Determines billing state from a subscription and whether it currently
grants paid access. Pure functions: no I/O, no side effects.

Grace period: past_due and canceled subscriptions keep access until
current_period_end. Expiry of that window is evaluated lazily against
wall-clock time at the moment of the check; nothing sweeps it.

Two helpers exist on purpose:
- is_active_status: strict, trialing or active only
- has_active_access: grace-aware, used for quota and gating
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from heartbeat.models.subscription import Subscription, SubscriptionStatus

PAID_STATUSES = frozenset({SubscriptionStatus.TRIALING, SubscriptionStatus.ACTIVE})
GRACE_STATUSES = frozenset({SubscriptionStatus.PAST_DUE, SubscriptionStatus.CANCELED})


class BillingState(str, Enum):
    """Billing state values derived from a subscription at a point in time."""
    TRIALING = "trialing"
    ACTIVE = "active"
    GRACE_PERIOD = "grace_period"  # past_due/canceled, still paid through
    LAPSED = "lapsed"              # past_due/canceled, period over
    EXPIRED = "expired"
    NONE = "none"                  # No subscription


def _coerce_status(status) -> SubscriptionStatus:
    if isinstance(status, SubscriptionStatus):
        return status
    return SubscriptionStatus(status)


def is_active_status(status) -> bool:
    """Strict check: trialing or active only, no grace window."""
    return _coerce_status(status) in PAID_STATUSES


def get_billing_state(
    subscription: Optional[Subscription],
    now: Optional[datetime] = None,
) -> BillingState:
    """
    Determine billing state from subscription.

    Args:
        subscription: Subscription or None
        now: Evaluation instant (defaults to current UTC time)

    Returns:
        BillingState enum value
    """
    if subscription is None:
        return BillingState.NONE

    status = _coerce_status(subscription.status)

    if status == SubscriptionStatus.TRIALING:
        return BillingState.TRIALING
    if status == SubscriptionStatus.ACTIVE:
        return BillingState.ACTIVE
    if status in GRACE_STATUSES:
        compare_at = now or datetime.now(timezone.utc)
        period_end = subscription.current_period_end
        if period_end is not None and period_end > compare_at:
            return BillingState.GRACE_PERIOD
        return BillingState.LAPSED
    return BillingState.EXPIRED


def has_active_access(
    subscription: Optional[Subscription],
    now: Optional[datetime] = None,
) -> bool:
    """
    Whether the subscription grants paid access right now.

    - trialing / active: always
    - past_due / canceled: while current_period_end is in the future
    - anything else (including expired): never
    """
    return get_billing_state(subscription, now) in (
        BillingState.TRIALING,
        BillingState.ACTIVE,
        BillingState.GRACE_PERIOD,
    )
