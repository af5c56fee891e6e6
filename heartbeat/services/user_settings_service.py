"""
Notification settings for the signed-in user.

Every operation here requires an identity and raises AuthenticationError
("Unauthorized") without one.

webhook_url semantics in update():
- field omitted: stored URL untouched
- empty string or null: stored URL cleared
- anything else: must be a valid https URL
"""

import logging
from typing import Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.orm import Session

from heartbeat.config.billing import (
    DEFAULT_THROTTLE_MINUTES,
    MAX_THROTTLE_MINUTES,
    MIN_THROTTLE_MINUTES,
)
from heartbeat.models.base import utcnow
from heartbeat.models.user_settings import UserSettings
from heartbeat.platform.errors import ValidationError
from heartbeat.platform.identity import Identity, require_identity

logger = logging.getLogger(__name__)


class UserSettingsUpdate(BaseModel):
    """Partial settings update. Only fields the caller sent are applied."""

    model_config = ConfigDict(extra="forbid")

    email_notifications: Optional[bool] = None
    notify_on_down: Optional[bool] = None
    notify_on_recovery: Optional[bool] = None
    webhook_url: Optional[str] = None
    throttle_minutes: Optional[int] = None


def _default_settings(identity: Identity) -> UserSettings:
    now = utcnow()
    return UserSettings(
        user_id=identity.subject,
        email=identity.email or "",
        email_notifications=True,
        notify_on_down=True,
        notify_on_recovery=True,
        webhook_url=None,
        throttle_minutes=DEFAULT_THROTTLE_MINUTES,
        created_at=now,
        updated_at=now,
    )


def validate_webhook_url(url: str) -> None:
    """
    Raises:
        ValidationError: If url does not parse or is not https
    """
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.netloc:
        raise ValidationError("Invalid webhook URL", {"field": "webhook_url"})
    if parsed.scheme.lower() != "https":
        raise ValidationError("Webhook URL must use HTTPS", {"field": "webhook_url"})


class UserSettingsService:
    """Reads and writes UserSettings rows."""

    def __init__(self, session: Session):
        self.session = session

    def get_by_user_id(self, user_id: str) -> Optional[UserSettings]:
        stmt = select(UserSettings).where(UserSettings.user_id == user_id).limit(1)
        return self.session.execute(stmt).scalars().first()

    def get_or_create(self, identity: Optional[Identity]) -> UserSettings:
        """
        Stored settings, or unsaved defaults.

        Defaults are persisted on first update or ensure_exists().
        """
        identity = require_identity(identity)
        existing = self.get_by_user_id(identity.subject)
        if existing is not None:
            return existing
        return _default_settings(identity)

    def ensure_exists(self, identity: Optional[Identity]) -> UserSettings:
        """Persist default settings if the user has none."""
        identity = require_identity(identity)
        existing = self.get_by_user_id(identity.subject)
        if existing is not None:
            return existing

        settings = _default_settings(identity)
        self.session.add(settings)
        self.session.commit()
        logger.info("Created default user settings", extra={"user_id": identity.subject})
        return settings

    def update(self, identity: Optional[Identity], changes: UserSettingsUpdate) -> UserSettings:
        """
        Apply a partial settings update, creating the row if needed.

        Raises:
            AuthenticationError: If identity is None
            ValidationError: If throttle_minutes or webhook_url is invalid
        """
        identity = require_identity(identity)
        sent = changes.model_fields_set

        if "throttle_minutes" in sent and changes.throttle_minutes is not None:
            if not MIN_THROTTLE_MINUTES <= changes.throttle_minutes <= MAX_THROTTLE_MINUTES:
                raise ValidationError(
                    f"Throttle must be between {MIN_THROTTLE_MINUTES} and {MAX_THROTTLE_MINUTES} minutes",
                    {"field": "throttle_minutes"},
                )

        if "webhook_url" in sent and changes.webhook_url:
            validate_webhook_url(changes.webhook_url)

        settings = self.get_by_user_id(identity.subject)
        created = settings is None
        if created:
            settings = _default_settings(identity)
            self.session.add(settings)

        for name in sent:
            value = getattr(changes, name)
            if name == "webhook_url":
                settings.webhook_url = value or None
            elif value is not None:
                setattr(settings, name, value)

        settings.updated_at = utcnow()
        self.session.commit()

        logger.info(
            "Updated user settings",
            extra={
                "user_id": identity.subject,
                "created": created,
                "fields": sorted(sent),
            },
        )
        return settings
