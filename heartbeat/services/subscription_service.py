"""
Subscription queries for the signed-in user.

Queries never raise for a missing identity; they return None or False.

Call sites pick one of two access helpers:
- has_active_subscription: strict (trialing/active), for plan badges
- has_access / get_usage: grace-aware, matching the monitor quota gate
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from heartbeat.billing.store import SubscriptionStore
from heartbeat.entitlements.policy import has_active_access, is_active_status
from heartbeat.entitlements.tiers import DEFAULT_CATALOG, TierCatalog
from heartbeat.models.subscription import Subscription
from heartbeat.platform.identity import Identity


@dataclass(frozen=True)
class UsageSummary:
    """Monitor usage against the current tier."""
    tier: str
    monitors: int
    monitor_limit: int
    min_interval: int


class SubscriptionService:
    """Read-only subscription views for an explicit caller identity."""

    def __init__(self, store: SubscriptionStore, catalog: TierCatalog = DEFAULT_CATALOG):
        self.store = store
        self.catalog = catalog

    def get_subscription(self, identity: Optional[Identity]) -> Optional[Subscription]:
        """The caller's subscription in any status, or None."""
        if identity is None:
            return None
        return self.store.get_by_user(identity.subject)

    def has_active_subscription(self, identity: Optional[Identity]) -> bool:
        """Strict check: trialing or active only."""
        subscription = self.get_subscription(identity)
        if subscription is None:
            return False
        return is_active_status(subscription.status)

    def has_access(self, identity: Optional[Identity], now: Optional[datetime] = None) -> bool:
        """Grace-aware check used to gate paid pages."""
        return has_active_access(self.get_subscription(identity), now)

    def get_usage(
        self,
        identity: Optional[Identity],
        now: Optional[datetime] = None,
    ) -> Optional[UsageSummary]:
        """
        Monitor count and tier limits for the caller.

        Returns:
            UsageSummary, or None when unauthenticated or without access
        """
        subscription = self.get_subscription(identity)
        if subscription is None or not has_active_access(subscription, now):
            return None

        tier = self.catalog.get(subscription.tier)
        return UsageSummary(
            tier=tier.name,
            monitors=self.store.count_monitors(identity.subject),
            monitor_limit=tier.monitors,
            min_interval=tier.min_interval_seconds,
        )
