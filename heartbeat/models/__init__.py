"""
Database models for subscriptions, monitors and notification settings.
"""

from heartbeat.models.base import TimestampMixin, UTCDateTime
from heartbeat.models.subscription import Subscription, SubscriptionStatus, SubscriptionTier
from heartbeat.models.monitor import Monitor
from heartbeat.models.user_settings import UserSettings

__all__ = [
    "TimestampMixin",
    "UTCDateTime",
    "Subscription",
    "SubscriptionStatus",
    "SubscriptionTier",
    "Monitor",
    "UserSettings",
]
