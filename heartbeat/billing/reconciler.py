"""
Webhook reconciliation.

Folds Stripe subscription events into the canonical Subscription row.
Stripe does not guarantee delivery order and may redeliver, so every
operation is idempotent and a lookup miss is an expected, logged
condition rather than an error. No retries happen here; the webhook
delivery system owns redelivery.

Each operation is one store transaction.

Ordering: events may carry event_created. An event strictly older than
the newest one already applied (last_event_at) is skipped.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from heartbeat.billing.schemas import CreateSubscriptionEvent, SubscriptionPatch
from heartbeat.billing.store import SubscriptionStore
from heartbeat.config.billing import WEBHOOK_ORDERING_GUARD
from heartbeat.models.base import utcnow
from heartbeat.models.subscription import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)


def _drop_trial_end_outside_trial(fields: dict, resulting_status: SubscriptionStatus) -> None:
    """trial_end is only stored while the subscription is trialing."""
    if resulting_status != SubscriptionStatus.TRIALING:
        fields["trial_end"] = None


class WebhookReconciler:
    """Applies provider events to the subscription store."""

    def __init__(
        self,
        store: SubscriptionStore,
        clock: Optional[Callable[[], datetime]] = None,
        ordering_guard: bool = WEBHOOK_ORDERING_GUARD,
    ):
        """
        Initialize reconciler.

        Args:
            store: Subscription persistence
            clock: Source of "now" for timestamps (defaults to UTC wall clock)
            ordering_guard: Skip events older than last_event_at
        """
        self.store = store
        self._clock = clock or utcnow
        self._ordering_guard = ordering_guard

    def _is_stale(self, subscription: Subscription, event_created: Optional[datetime]) -> bool:
        if not self._ordering_guard:
            return False
        if event_created is None or subscription.last_event_at is None:
            return False
        return event_created < subscription.last_event_at

    @staticmethod
    def _advance_event_marker(fields: dict, subscription: Optional[Subscription], event_created: Optional[datetime]) -> None:
        if event_created is None:
            return
        current = subscription.last_event_at if subscription is not None else None
        if current is None or event_created > current:
            fields["last_event_at"] = event_created

    def create_subscription(self, event: CreateSubscriptionEvent) -> str:
        """
        Create or update the subscription for event.user_id.

        An existing row for the user is overwritten with the event's fields
        instead of inserting a duplicate. A row expired under the same Stripe
        subscription id stays expired; a new Stripe subscription id starts a
        new lifecycle on the row.

        Returns:
            Subscription id
        """
        with self.store.atomic():
            now = self._clock()
            fields = event.fields()
            _drop_trial_end_outside_trial(fields, event.status)
            existing = self.store.get_by_user(event.user_id)

            if existing is not None:
                if (
                    existing.status == SubscriptionStatus.EXPIRED
                    and existing.stripe_subscription_id == event.stripe_subscription_id
                ):
                    logger.info(
                        "Ignoring create event for expired subscription",
                        extra={
                            "subscription_id": existing.id,
                            "user_id": event.user_id,
                            "stripe_subscription_id": event.stripe_subscription_id,
                        },
                    )
                    return existing.id

                if self._is_stale(existing, event.event_created):
                    logger.warning(
                        "Skipping stale subscription create event",
                        extra={
                            "subscription_id": existing.id,
                            "user_id": event.user_id,
                            "event_created": event.event_created.isoformat(),
                            "last_event_at": existing.last_event_at.isoformat(),
                        },
                    )
                    return existing.id

                self._advance_event_marker(fields, existing, event.event_created)
                self.store.patch(existing, fields, now)
                logger.info(
                    "Updated existing subscription from create event",
                    extra={
                        "subscription_id": existing.id,
                        "user_id": event.user_id,
                        "stripe_subscription_id": event.stripe_subscription_id,
                        "status": event.status.value,
                        "tier": event.tier.value,
                    },
                )
                return existing.id

            self._advance_event_marker(fields, None, event.event_created)
            subscription = self.store.insert(event.user_id, fields, now)
            logger.info(
                "Created subscription",
                extra={
                    "subscription_id": subscription.id,
                    "user_id": event.user_id,
                    "stripe_subscription_id": event.stripe_subscription_id,
                    "status": event.status.value,
                    "tier": event.tier.value,
                },
            )
            return subscription.id

    def update_subscription(
        self,
        stripe_subscription_id: str,
        patch: SubscriptionPatch,
    ) -> Optional[str]:
        """
        Apply a partial update to the subscription with this Stripe id.

        trial_end is cleared in the same write whenever the resulting status
        is not trialing, whatever the payload says about it.

        Returns:
            Subscription id, or None if no subscription matches
        """
        with self.store.atomic():
            subscription = self.store.get_by_stripe_subscription_id(stripe_subscription_id)
            if subscription is None:
                logger.warning(
                    "Subscription not found for Stripe ID",
                    extra={"stripe_subscription_id": stripe_subscription_id},
                )
                return None

            if subscription.status == SubscriptionStatus.EXPIRED:
                logger.info(
                    "Ignoring update for expired subscription",
                    extra={
                        "subscription_id": subscription.id,
                        "stripe_subscription_id": stripe_subscription_id,
                    },
                )
                return subscription.id

            if self._is_stale(subscription, patch.event_created):
                logger.warning(
                    "Skipping stale subscription update event",
                    extra={
                        "subscription_id": subscription.id,
                        "stripe_subscription_id": stripe_subscription_id,
                        "event_created": patch.event_created.isoformat(),
                        "last_event_at": subscription.last_event_at.isoformat(),
                    },
                )
                return subscription.id

            changes = patch.changes()
            previous_status = subscription.status
            _drop_trial_end_outside_trial(changes, changes.get("status", previous_status))

            self._advance_event_marker(changes, subscription, patch.event_created)
            self.store.patch(subscription, changes, self._clock())

            logger.info(
                "Updated subscription",
                extra={
                    "subscription_id": subscription.id,
                    "stripe_subscription_id": stripe_subscription_id,
                    "previous_status": previous_status.value,
                    "status": subscription.status.value,
                    "fields": sorted(changes),
                },
            )
            return subscription.id

    def expire_subscription(
        self,
        stripe_subscription_id: str,
        event_created: Optional[datetime] = None,
    ) -> Optional[str]:
        """
        Move the subscription to the terminal expired state.

        Expiring an already-expired subscription changes nothing.

        Returns:
            Subscription id, or None if no subscription matches
        """
        with self.store.atomic():
            subscription = self.store.get_by_stripe_subscription_id(stripe_subscription_id)
            if subscription is None:
                logger.warning(
                    "Subscription not found for Stripe ID",
                    extra={"stripe_subscription_id": stripe_subscription_id},
                )
                return None

            if subscription.status == SubscriptionStatus.EXPIRED:
                logger.info(
                    "Subscription already expired",
                    extra={
                        "subscription_id": subscription.id,
                        "stripe_subscription_id": stripe_subscription_id,
                    },
                )
                return subscription.id

            previous_status = subscription.status
            changes = {"status": SubscriptionStatus.EXPIRED, "trial_end": None}
            self._advance_event_marker(changes, subscription, event_created)
            self.store.patch(subscription, changes, self._clock())

            logger.info(
                "Expired subscription",
                extra={
                    "subscription_id": subscription.id,
                    "stripe_subscription_id": stripe_subscription_id,
                    "previous_status": previous_status.value,
                },
            )
            return subscription.id
