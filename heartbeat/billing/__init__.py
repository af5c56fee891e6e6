"""
Stripe billing reconciliation.

- SubscriptionStore: persistence seam over subscriptions
- WebhookReconciler: idempotent create / update / expire from provider events
- StripeEventHandler: maps verified Stripe events onto the reconciler
"""

from heartbeat.billing.reconciler import WebhookReconciler
from heartbeat.billing.schemas import CreateSubscriptionEvent, SubscriptionPatch
from heartbeat.billing.store import SqlAlchemySubscriptionStore, SubscriptionStore
from heartbeat.billing.stripe_events import (
    StripeEventHandler,
    WebhookOutcome,
    extract_tier,
    get_current_period_end,
    map_stripe_status,
)

__all__ = [
    "WebhookReconciler",
    "CreateSubscriptionEvent",
    "SubscriptionPatch",
    "SqlAlchemySubscriptionStore",
    "SubscriptionStore",
    "StripeEventHandler",
    "WebhookOutcome",
    "extract_tier",
    "get_current_period_end",
    "map_stripe_status",
]
