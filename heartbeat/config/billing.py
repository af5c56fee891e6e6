"""
Billing and entitlement configuration.

Values are read once from the environment at import time.
"""

import os
from typing import Tuple

# Check intervals a monitor may use, in seconds
SELECTABLE_INTERVALS: Tuple[int, ...] = (60, 120, 300, 600, 1800, 3600)

# Limits reported when a user has no subscription or no access
RESTRICTED_MONITORS = 0
RESTRICTED_MIN_INTERVAL_SECONDS = 3600
RESTRICTED_STATUS_PAGES = 0

# Notification throttle bounds (minutes)
MIN_THROTTLE_MINUTES = 5
MAX_THROTTLE_MINUTES = 60
DEFAULT_THROTTLE_MINUTES = int(os.getenv("HEARTBEAT_DEFAULT_THROTTLE_MINUTES", "5"))

# Skip provider events older than the newest one already applied
WEBHOOK_ORDERING_GUARD = os.getenv("HEARTBEAT_WEBHOOK_ORDERING_GUARD", "true").lower() == "true"
