"""
Entitlement error hierarchy.

Provides:
- UnknownTierError: tier name not present in the catalog
- QuotaExceededError: resource creation blocked by tier quota or billing state
"""

from typing import Optional

from heartbeat.platform.errors import AppError, PaymentRequiredError


class UnknownTierError(AppError):
    """Raised when a tier name is not in the catalog."""

    def __init__(self, tier_name: str):
        self.tier_name = tier_name
        super().__init__(
            code="UNKNOWN_TIER",
            message=f"Unknown tier: {tier_name}",
            details={"tier": tier_name},
        )


class QuotaExceededError(PaymentRequiredError):
    """
    Raised when a user may not create another monitored resource.

    Carries the human-readable reason from the quota decision.
    """

    def __init__(self, user_id: str, reason: str, limit: Optional[int] = None):
        self.user_id = user_id
        self.reason = reason
        self.limit = limit
        details: dict = {"resource": "monitor"}
        if limit is not None:
            details["limit"] = limit
        super().__init__(message=reason, details=details, code="QUOTA_EXCEEDED")
