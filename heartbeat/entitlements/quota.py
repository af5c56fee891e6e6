"""
Quota enforcement for monitored resources.

Gates monitor creation on billing state and tier limits.

The count-then-compare check is a soft limit: it is not isolated against
a concurrent creation by the same user, so N simultaneous requests can
overshoot the tier limit by up to N-1.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

from heartbeat.billing.store import SubscriptionStore
from heartbeat.config.billing import (
    RESTRICTED_MIN_INTERVAL_SECONDS,
    RESTRICTED_MONITORS,
    RESTRICTED_STATUS_PAGES,
)
from heartbeat.entitlements.errors import QuotaExceededError
from heartbeat.entitlements.policy import has_active_access
from heartbeat.entitlements.tiers import DEFAULT_CATALOG, TierCatalog, TierLimits, get_available_intervals

logger = logging.getLogger(__name__)

NO_SUBSCRIPTION_REASON = "No active subscription"
INACTIVE_SUBSCRIPTION_REASON = "Your subscription is not active. Please update your billing."

RESTRICTED_LIMITS = TierLimits(
    monitors=RESTRICTED_MONITORS,
    min_interval=RESTRICTED_MIN_INTERVAL_SECONDS,
    status_pages=RESTRICTED_STATUS_PAGES,
)


@dataclass(frozen=True)
class QuotaDecision:
    """Result of a quota check."""
    allowed: bool
    reason: Optional[str] = None
    limit: Optional[int] = None


class QuotaEnforcer:
    """Decides whether a user may create another monitor."""

    def __init__(self, store: SubscriptionStore, catalog: TierCatalog = DEFAULT_CATALOG):
        self.store = store
        self.catalog = catalog

    def can_create_monitor(self, user_id: str, now: Optional[datetime] = None) -> QuotaDecision:
        subscription = self.store.get_by_user(user_id)
        if subscription is None:
            return QuotaDecision(allowed=False, reason=NO_SUBSCRIPTION_REASON)

        if not has_active_access(subscription, now):
            logger.info(
                "Monitor creation blocked: billing not active",
                extra={"user_id": user_id, "status": subscription.status.value},
            )
            return QuotaDecision(allowed=False, reason=INACTIVE_SUBSCRIPTION_REASON)

        tier = self.catalog.get(subscription.tier)
        count = self.store.count_monitors(user_id)
        if count >= tier.monitors:
            logger.info(
                "Monitor creation blocked: tier limit reached",
                extra={
                    "user_id": user_id,
                    "tier": tier.name,
                    "monitors": count,
                    "limit": tier.monitors,
                },
            )
            return QuotaDecision(
                allowed=False,
                reason=f"You've reached your limit of {tier.monitors} monitors. Upgrade to add more.",
                limit=tier.monitors,
            )

        return QuotaDecision(allowed=True, limit=tier.monitors)

    def require_monitor_slot(self, user_id: str, now: Optional[datetime] = None) -> None:
        """
        Raise instead of returning a decision.

        Raises:
            QuotaExceededError: If the user may not create another monitor
        """
        decision = self.can_create_monitor(user_id, now)
        if not decision.allowed:
            raise QuotaExceededError(user_id=user_id, reason=decision.reason, limit=decision.limit)

    def get_tier_limits(self, user_id: str, now: Optional[datetime] = None) -> TierLimits:
        """Tier limits, or the most restrictive defaults without access. Never raises for missing entitlement."""
        subscription = self.store.get_by_user(user_id)
        if subscription is None or not has_active_access(subscription, now):
            return RESTRICTED_LIMITS

        tier = self.catalog.find(subscription.tier)
        if tier is None:
            logger.warning(
                "Subscription tier missing from catalog",
                extra={"user_id": user_id, "tier": subscription.tier.value},
            )
            return RESTRICTED_LIMITS
        return tier.limits()

    def available_intervals(self, user_id: str, now: Optional[datetime] = None) -> List[int]:
        """Check intervals the user may select for a monitor."""
        return get_available_intervals(self.get_tier_limits(user_id, now).min_interval)
