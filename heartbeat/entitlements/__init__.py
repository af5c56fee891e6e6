"""
Entitlement enforcement for Heartbeat tiers.

This module provides:
- TierCatalog: immutable tier name -> limits and pricing
- Access policy: billing state and grace-aware access checks
- QuotaEnforcer: monitor quota gating against tier limits
"""

from heartbeat.entitlements.errors import QuotaExceededError, UnknownTierError
from heartbeat.entitlements.policy import (
    BillingState,
    get_billing_state,
    has_active_access,
    is_active_status,
)
from heartbeat.entitlements.quota import QuotaDecision, QuotaEnforcer, RESTRICTED_LIMITS
from heartbeat.entitlements.tiers import (
    DEFAULT_CATALOG,
    PULSE,
    VITAL,
    Tier,
    TierCatalog,
    TierLimits,
    format_interval,
    format_price,
    get_available_intervals,
)

__all__ = [
    # Errors
    "QuotaExceededError",
    "UnknownTierError",
    # Policy
    "BillingState",
    "get_billing_state",
    "has_active_access",
    "is_active_status",
    # Quota
    "QuotaDecision",
    "QuotaEnforcer",
    "RESTRICTED_LIMITS",
    # Tiers
    "DEFAULT_CATALOG",
    "PULSE",
    "VITAL",
    "Tier",
    "TierCatalog",
    "TierLimits",
    "format_interval",
    "format_price",
    "get_available_intervals",
]
