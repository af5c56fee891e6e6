"""
Per-user notification settings.

Defaults are applied in UserSettingsService, not here, so an unsaved
default view and a freshly persisted row share one source.
"""

import uuid

from sqlalchemy import Boolean, Column, Integer, String

from heartbeat.db_base import Base
from heartbeat.models.base import TimestampMixin


class UserSettings(Base, TimestampMixin):
    """Notification preferences for a single user."""

    __tablename__ = "user_settings"

    id = Column(
        String(255),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    user_id = Column(String(255), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, default="")

    email_notifications = Column(Boolean, nullable=False, default=True)
    notify_on_down = Column(Boolean, nullable=False, default=True)
    notify_on_recovery = Column(Boolean, nullable=False, default=True)

    webhook_url = Column(String(2048), nullable=True)
    throttle_minutes = Column(Integer, nullable=False, default=5)

    def __repr__(self) -> str:
        return f"<UserSettings(user_id={self.user_id})>"
