"""
Stripe event translation.

Turns an already-verified Stripe event (signature checking happens in the
HTTP layer, outside this package) into WebhookReconciler calls.

Handled event types:
- checkout.session.completed -> create_subscription
- customer.subscription.created / updated -> update_subscription
- customer.subscription.deleted -> expire_subscription
- invoice.payment_failed -> update_subscription(status=past_due)

Everything else is logged and ignored.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional

from heartbeat.billing.reconciler import WebhookReconciler
from heartbeat.billing.schemas import CreateSubscriptionEvent, SubscriptionPatch
from heartbeat.models.subscription import SubscriptionStatus, SubscriptionTier

logger = logging.getLogger(__name__)

_STATUS_MAP = {
    "trialing": SubscriptionStatus.TRIALING,
    "active": SubscriptionStatus.ACTIVE,
    "past_due": SubscriptionStatus.PAST_DUE,
    "canceled": SubscriptionStatus.CANCELED,
    "unpaid": SubscriptionStatus.CANCELED,
    "incomplete": SubscriptionStatus.EXPIRED,
    "incomplete_expired": SubscriptionStatus.EXPIRED,
    "paused": SubscriptionStatus.EXPIRED,
}

StripeObject = Mapping[str, Any]


@dataclass(frozen=True)
class WebhookOutcome:
    """What handling one event did."""
    event_id: Optional[str]
    event_type: str
    action: str  # created, updated, expired, marked_past_due, not_found, skipped, ignored
    subscription_id: Optional[str] = None
    detail: Optional[str] = None


def map_stripe_status(status: Optional[str]) -> SubscriptionStatus:
    """Map a Stripe subscription status onto ours. Unknown values expire."""
    return _STATUS_MAP.get(status or "", SubscriptionStatus.EXPIRED)


def _first_item(subscription: StripeObject) -> Optional[StripeObject]:
    items = (subscription.get("items") or {}).get("data") or []
    return items[0] if items else None


def extract_tier(subscription: StripeObject) -> SubscriptionTier:
    """
    Tier from subscription metadata, else from the price lookup key.

    Defaults to pulse.
    """
    meta_tier = (subscription.get("metadata") or {}).get("tier")
    if meta_tier in (SubscriptionTier.PULSE.value, SubscriptionTier.VITAL.value):
        return SubscriptionTier(meta_tier)

    item = _first_item(subscription)
    lookup_key = ((item or {}).get("price") or {}).get("lookup_key") or ""
    if "vital" in lookup_key:
        return SubscriptionTier.VITAL

    return SubscriptionTier.PULSE


def _from_epoch(seconds: Optional[int]) -> Optional[datetime]:
    if not seconds:
        return None
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc)


def get_current_period_end(subscription: StripeObject) -> datetime:
    """
    Period end from the first subscription item.

    Newer Stripe API versions carry the period on items, not the
    subscription. Falls back to now.
    """
    item = _first_item(subscription)
    period_end = _from_epoch((item or {}).get("current_period_end"))
    return period_end or datetime.now(timezone.utc)


def _object_id(value: Any) -> Optional[str]:
    """Stripe references are either an id string or an expanded object."""
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        return value.get("id")
    return None


class StripeEventHandler:
    """Dispatches verified Stripe events to the reconciler."""

    def __init__(
        self,
        reconciler: WebhookReconciler,
        retrieve_subscription: Optional[Callable[[str], StripeObject]] = None,
    ):
        """
        Initialize handler.

        Args:
            reconciler: Reconciler applying the changes
            retrieve_subscription: Fetches a full Stripe subscription by id,
                used when a checkout session does not embed it
        """
        self.reconciler = reconciler
        self._retrieve_subscription = retrieve_subscription

    def handle(self, event: StripeObject) -> WebhookOutcome:
        event_type = event.get("type", "")
        event_id = event.get("id")
        obj = (event.get("data") or {}).get("object") or {}
        event_created = _from_epoch(event.get("created"))

        logger.info(
            "Received Stripe webhook",
            extra={"event_id": event_id, "event_type": event_type},
        )

        if event_type == "checkout.session.completed":
            return self._checkout_completed(event_id, event_type, obj, event_created)
        if event_type in ("customer.subscription.created", "customer.subscription.updated"):
            return self._subscription_updated(event_id, event_type, obj, event_created)
        if event_type == "customer.subscription.deleted":
            return self._subscription_deleted(event_id, event_type, obj, event_created)
        if event_type == "invoice.payment_failed":
            return self._invoice_payment_failed(event_id, event_type, obj, event_created)

        logger.info("Unhandled Stripe event type", extra={"event_type": event_type})
        return WebhookOutcome(event_id=event_id, event_type=event_type, action="ignored")

    def _checkout_completed(self, event_id, event_type, session, event_created) -> WebhookOutcome:
        user_id = (session.get("metadata") or {}).get("userId")
        if not user_id:
            logger.error("No userId in checkout session metadata", extra={"event_id": event_id})
            return WebhookOutcome(event_id, event_type, "skipped", detail="missing userId")

        raw_subscription = session.get("subscription")
        subscription_id = _object_id(raw_subscription)
        if not subscription_id:
            logger.error("No subscription ID in checkout session", extra={"event_id": event_id})
            return WebhookOutcome(event_id, event_type, "skipped", detail="missing subscription")

        if isinstance(raw_subscription, Mapping) and "status" in raw_subscription:
            subscription = raw_subscription
        elif self._retrieve_subscription is not None:
            subscription = self._retrieve_subscription(subscription_id)
        else:
            logger.error(
                "Checkout session subscription is not expanded and no retriever is configured",
                extra={"event_id": event_id, "stripe_subscription_id": subscription_id},
            )
            return WebhookOutcome(event_id, event_type, "skipped", detail="subscription not expanded")

        payload = CreateSubscriptionEvent(
            user_id=user_id,
            stripe_customer_id=_object_id(subscription.get("customer")) or _object_id(session.get("customer")),
            stripe_subscription_id=subscription.get("id") or subscription_id,
            tier=extract_tier(subscription),
            status=map_stripe_status(subscription.get("status")),
            current_period_end=get_current_period_end(subscription),
            trial_end=_from_epoch(subscription.get("trial_end")),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            event_created=event_created,
        )
        local_id = self.reconciler.create_subscription(payload)
        return WebhookOutcome(event_id, event_type, "created", subscription_id=local_id)

    def _subscription_updated(self, event_id, event_type, subscription, event_created) -> WebhookOutcome:
        patch = SubscriptionPatch(
            tier=extract_tier(subscription),
            status=map_stripe_status(subscription.get("status")),
            current_period_end=get_current_period_end(subscription),
            trial_end=_from_epoch(subscription.get("trial_end")),
            cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
            event_created=event_created,
        )
        local_id = self.reconciler.update_subscription(subscription.get("id"), patch)
        action = "updated" if local_id else "not_found"
        return WebhookOutcome(event_id, event_type, action, subscription_id=local_id)

    def _subscription_deleted(self, event_id, event_type, subscription, event_created) -> WebhookOutcome:
        local_id = self.reconciler.expire_subscription(subscription.get("id"), event_created=event_created)
        action = "expired" if local_id else "not_found"
        return WebhookOutcome(event_id, event_type, action, subscription_id=local_id)

    def _invoice_payment_failed(self, event_id, event_type, invoice, event_created) -> WebhookOutcome:
        details = ((invoice.get("parent") or {}).get("subscription_details") or {})
        subscription_id = _object_id(details.get("subscription"))
        if not subscription_id:
            return WebhookOutcome(event_id, event_type, "skipped", detail="invoice has no subscription")

        patch = SubscriptionPatch(
            status=SubscriptionStatus.PAST_DUE,
            event_created=event_created,
        )
        local_id = self.reconciler.update_subscription(subscription_id, patch)
        action = "marked_past_due" if local_id else "not_found"
        return WebhookOutcome(event_id, event_type, action, subscription_id=local_id)
