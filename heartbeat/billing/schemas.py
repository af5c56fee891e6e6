"""
Typed webhook payloads consumed by the reconciler.

SubscriptionPatch distinguishes an omitted field from an explicitly
cleared one through pydantic's model_fields_set: only fields the caller
actually sent are applied.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from heartbeat.models.subscription import SubscriptionStatus, SubscriptionTier

# Fields that may never be written as NULL
_NON_NULLABLE_PATCH_FIELDS = ("tier", "status", "current_period_end", "cancel_at_period_end")


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CreateSubscriptionEvent(BaseModel):
    """Checkout completed: full subscription snapshot for a user."""

    model_config = ConfigDict(extra="forbid")

    user_id: str = Field(..., min_length=1)
    stripe_customer_id: str = Field(..., min_length=1)
    stripe_subscription_id: Optional[str] = None
    tier: SubscriptionTier
    status: SubscriptionStatus
    current_period_end: datetime
    trial_end: Optional[datetime] = None
    cancel_at_period_end: bool = False
    event_created: Optional[datetime] = None

    @field_validator("current_period_end", "trial_end", "event_created")
    @classmethod
    def _normalize_datetimes(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    def fields(self) -> Dict[str, Any]:
        """Column values owned by the event, absent optionals as None."""
        return self.model_dump(exclude={"user_id", "event_created"})


class SubscriptionPatch(BaseModel):
    """Partial subscription update. Omitted fields are left untouched."""

    model_config = ConfigDict(extra="forbid")

    tier: Optional[SubscriptionTier] = None
    status: Optional[SubscriptionStatus] = None
    current_period_end: Optional[datetime] = None
    trial_end: Optional[datetime] = None
    cancel_at_period_end: Optional[bool] = None
    event_created: Optional[datetime] = None

    @field_validator("current_period_end", "trial_end", "event_created")
    @classmethod
    def _normalize_datetimes(cls, v: Optional[datetime]) -> Optional[datetime]:
        return _as_utc(v)

    @model_validator(mode="after")
    def _reject_null_required_fields(self) -> "SubscriptionPatch":
        for name in _NON_NULLABLE_PATCH_FIELDS:
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be cleared")
        return self

    def changes(self) -> Dict[str, Any]:
        """Only the column values the caller explicitly sent."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if name != "event_created"
        }
