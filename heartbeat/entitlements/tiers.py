"""
Tier catalog.

Static, immutable lookup of tier name -> entitlement limits and pricing.
Changing a tier means shipping new catalog data; there is no runtime
write path.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple, Union

from heartbeat.config.billing import SELECTABLE_INTERVALS
from heartbeat.entitlements.errors import UnknownTierError
from heartbeat.models.subscription import SubscriptionTier


@dataclass(frozen=True)
class TierLimits:
    """Limits the quota layer reports to callers."""

    monitors: int
    min_interval: int
    status_pages: int


@dataclass(frozen=True)
class Tier:
    """Entitlements and pricing for one tier. Prices are in cents."""

    name: str
    display_name: str
    description: str
    monitors: int
    min_interval_seconds: int
    status_pages: int
    history_days: int
    webhooks: bool
    api_access: bool
    monthly_price_cents: int
    yearly_price_cents: int

    def __post_init__(self) -> None:
        if self.monitors < 0 or self.status_pages < 0:
            raise ValueError(f"tier '{self.name}' limits must be non-negative")
        if self.min_interval_seconds <= 0:
            raise ValueError(f"tier '{self.name}' min_interval_seconds must be positive")

    def limits(self) -> TierLimits:
        return TierLimits(
            monitors=self.monitors,
            min_interval=self.min_interval_seconds,
            status_pages=self.status_pages,
        )


TierKey = Union[str, SubscriptionTier]


class TierCatalog:
    """Read-only mapping of tier name to Tier."""

    def __init__(self, tiers: Iterable[Tier]) -> None:
        by_name = {}
        for tier in tiers:
            if tier.name in by_name:
                raise ValueError(f"duplicate tier: {tier.name}")
            by_name[tier.name] = tier
        if not by_name:
            raise ValueError("catalog must define at least one tier")
        self._tiers: Mapping[str, Tier] = MappingProxyType(by_name)

    @staticmethod
    def _name(key: TierKey) -> str:
        if isinstance(key, SubscriptionTier):
            return key.value
        return str(key).strip()

    def get(self, key: TierKey) -> Tier:
        """
        Look up a tier.

        Raises:
            UnknownTierError: If the tier is not in the catalog
        """
        name = self._name(key)
        tier = self._tiers.get(name)
        if tier is None:
            raise UnknownTierError(name)
        return tier

    def find(self, key: TierKey) -> Optional[Tier]:
        return self._tiers.get(self._name(key))

    def names(self) -> Tuple[str, ...]:
        return tuple(self._tiers)

    def __contains__(self, key: object) -> bool:
        if not isinstance(key, (str, SubscriptionTier)):
            return False
        return self._name(key) in self._tiers

    def __iter__(self):
        return iter(self._tiers.values())

    def __len__(self) -> int:
        return len(self._tiers)


PULSE = Tier(
    name=SubscriptionTier.PULSE.value,
    display_name="Pulse",
    description="Essential monitoring for side projects and small sites",
    monitors=15,
    min_interval_seconds=180,
    status_pages=1,
    history_days=30,
    webhooks=False,
    api_access=False,
    monthly_price_cents=900,
    yearly_price_cents=8600,
)

VITAL = Tier(
    name=SubscriptionTier.VITAL.value,
    display_name="Vital",
    description="Professional monitoring for growing applications",
    monitors=75,
    min_interval_seconds=60,
    status_pages=5,
    history_days=90,
    webhooks=True,
    api_access=True,
    monthly_price_cents=2900,
    yearly_price_cents=27800,
)

DEFAULT_CATALOG = TierCatalog([PULSE, VITAL])


def format_interval(seconds: int) -> str:
    """Human label for a check interval, e.g. '3 minutes' or '1 hour'."""
    if seconds >= 3600:
        unit, size = "hour", 3600
    else:
        unit, size = "minute", 60
    plural = "s" if seconds > size else ""
    return f"{seconds / size:g} {unit}{plural}"


def format_price(cents: int) -> str:
    """Whole-dollar price label, e.g. 2900 -> '$29'."""
    dollars = (Decimal(cents) / 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return f"${dollars}"


def get_available_intervals(min_interval: int) -> List[int]:
    """Selectable check intervals at or above the tier floor."""
    return [i for i in SELECTABLE_INTERVALS if i >= min_interval]
