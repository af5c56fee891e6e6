"""Configuration module for the billing core."""

from heartbeat.config.billing import (
    DEFAULT_THROTTLE_MINUTES,
    MAX_THROTTLE_MINUTES,
    MIN_THROTTLE_MINUTES,
    RESTRICTED_MIN_INTERVAL_SECONDS,
    RESTRICTED_MONITORS,
    RESTRICTED_STATUS_PAGES,
    SELECTABLE_INTERVALS,
    WEBHOOK_ORDERING_GUARD,
)

__all__ = [
    "DEFAULT_THROTTLE_MINUTES",
    "MAX_THROTTLE_MINUTES",
    "MIN_THROTTLE_MINUTES",
    "RESTRICTED_MIN_INTERVAL_SECONDS",
    "RESTRICTED_MONITORS",
    "RESTRICTED_STATUS_PAGES",
    "SELECTABLE_INTERVALS",
    "WEBHOOK_ORDERING_GUARD",
]
