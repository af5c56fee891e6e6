"""
Stripe event translation tests.

Events are plain dicts shaped like verified Stripe payloads.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from heartbeat.billing.stripe_events import (
    StripeEventHandler,
    extract_tier,
    get_current_period_end,
    map_stripe_status,
)
from heartbeat.models.subscription import Subscription, SubscriptionStatus, SubscriptionTier

PERIOD_END = 1_790_000_000
EVENT_CREATED = 1_780_000_000


def stripe_subscription(**overrides):
    sub = {
        "id": "sub_test",
        "object": "subscription",
        "customer": "cus_test",
        "status": "active",
        "cancel_at_period_end": False,
        "trial_end": None,
        "metadata": {"tier": "pulse"},
        "items": {
            "data": [
                {
                    "price": {"lookup_key": "pulse_monthly"},
                    "current_period_end": PERIOD_END,
                }
            ]
        },
    }
    sub.update(overrides)
    return sub


def stripe_event(event_type, obj, event_id="evt_test", created=EVENT_CREATED):
    return {
        "id": event_id,
        "type": event_type,
        "created": created,
        "data": {"object": obj},
    }


def checkout_event(subscription="sub_test", user_id="user_test"):
    session = {
        "id": "cs_test",
        "object": "checkout.session",
        "customer": "cus_test",
        "subscription": subscription,
        "metadata": {"userId": user_id} if user_id else {},
    }
    return stripe_event("checkout.session.completed", session)


@pytest.fixture
def handler(reconciler):
    return StripeEventHandler(reconciler, retrieve_subscription=lambda sub_id: stripe_subscription(id=sub_id))


# ============================================================================
# Translation helpers
# ============================================================================

@pytest.mark.parametrize("stripe_status,expected", [
    ("trialing", SubscriptionStatus.TRIALING),
    ("active", SubscriptionStatus.ACTIVE),
    ("past_due", SubscriptionStatus.PAST_DUE),
    ("canceled", SubscriptionStatus.CANCELED),
    ("unpaid", SubscriptionStatus.CANCELED),
    ("incomplete", SubscriptionStatus.EXPIRED),
    ("incomplete_expired", SubscriptionStatus.EXPIRED),
    ("paused", SubscriptionStatus.EXPIRED),
    ("something_new", SubscriptionStatus.EXPIRED),
    (None, SubscriptionStatus.EXPIRED),
])
def test_map_stripe_status(stripe_status, expected):
    assert map_stripe_status(stripe_status) == expected


class TestExtractTier:

    def test_metadata_wins(self):
        sub = stripe_subscription(metadata={"tier": "vital"})
        assert extract_tier(sub) == SubscriptionTier.VITAL

    def test_lookup_key_fallback(self):
        sub = stripe_subscription(metadata={})
        sub["items"]["data"][0]["price"]["lookup_key"] = "vital_yearly"
        assert extract_tier(sub) == SubscriptionTier.VITAL

    def test_invalid_metadata_ignored(self):
        sub = stripe_subscription(metadata={"tier": "enterprise"})
        assert extract_tier(sub) == SubscriptionTier.PULSE

    def test_defaults_to_pulse(self):
        assert extract_tier({"id": "sub_x"}) == SubscriptionTier.PULSE


def test_period_end_from_first_item():
    assert get_current_period_end(stripe_subscription()) == datetime.fromtimestamp(PERIOD_END, tz=timezone.utc)


def test_period_end_falls_back_to_now():
    before = datetime.now(timezone.utc)
    value = get_current_period_end({"items": {"data": []}})
    assert before <= value <= datetime.now(timezone.utc) + timedelta(seconds=1)


# ============================================================================
# checkout.session.completed
# ============================================================================

class TestCheckoutCompleted:

    def test_creates_subscription_via_retriever(self, handler, store):
        outcome = handler.handle(checkout_event())

        sub = store.get_by_user("user_test")
        assert outcome.action == "created"
        assert outcome.subscription_id == sub.id
        assert sub.stripe_subscription_id == "sub_test"
        assert sub.stripe_customer_id == "cus_test"
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.current_period_end == datetime.fromtimestamp(PERIOD_END, tz=timezone.utc)
        assert sub.last_event_at == datetime.fromtimestamp(EVENT_CREATED, tz=timezone.utc)

    def test_uses_expanded_subscription_without_retriever(self, reconciler, store):
        retriever = MagicMock()
        handler = StripeEventHandler(reconciler, retrieve_subscription=retriever)

        outcome = handler.handle(checkout_event(subscription=stripe_subscription(status="trialing")))

        assert outcome.action == "created"
        retriever.assert_not_called()
        assert store.get_by_user("user_test").status == SubscriptionStatus.TRIALING

    def test_missing_user_id_is_skipped(self, handler, store):
        outcome = handler.handle(checkout_event(user_id=None))
        assert outcome.action == "skipped"
        assert store.get_by_user("user_test") is None

    def test_missing_subscription_is_skipped(self, handler):
        outcome = handler.handle(checkout_event(subscription=None))
        assert outcome.action == "skipped"
        assert outcome.detail == "missing subscription"

    def test_unexpanded_without_retriever_is_skipped(self, reconciler):
        handler = StripeEventHandler(reconciler)
        outcome = handler.handle(checkout_event())
        assert outcome.action == "skipped"
        assert outcome.detail == "subscription not expanded"

    def test_redelivery_keeps_single_row(self, handler, db_session):
        first = handler.handle(checkout_event())
        second = handler.handle(checkout_event())

        assert first.subscription_id == second.subscription_id
        assert db_session.query(Subscription).count() == 1


# ============================================================================
# customer.subscription.* and invoice.payment_failed
# ============================================================================

class TestSubscriptionEvents:

    def test_updated_applies_changes(self, handler, store):
        handler.handle(checkout_event())

        event = stripe_event(
            "customer.subscription.updated",
            stripe_subscription(status="past_due", cancel_at_period_end=True, metadata={"tier": "vital"}),
            created=EVENT_CREATED + 60,
        )
        outcome = handler.handle(event)

        sub = store.get_by_user("user_test")
        assert outcome.action == "updated"
        assert sub.status == SubscriptionStatus.PAST_DUE
        assert sub.tier == SubscriptionTier.VITAL
        assert sub.cancel_at_period_end is True

    def test_updated_unknown_subscription(self, handler):
        event = stripe_event("customer.subscription.updated", stripe_subscription(id="sub_unknown"))
        outcome = handler.handle(event)
        assert outcome.action == "not_found"
        assert outcome.subscription_id is None

    def test_trial_converting_clears_trial_end(self, reconciler, store):
        trial_end = EVENT_CREATED + 86400
        handler = StripeEventHandler(
            reconciler,
            retrieve_subscription=lambda sub_id: stripe_subscription(status="trialing", trial_end=trial_end),
        )
        handler.handle(checkout_event())
        assert store.get_by_user("user_test").trial_end is not None

        # Stripe keeps sending the historical trial_end after conversion
        handler.handle(stripe_event(
            "customer.subscription.updated",
            stripe_subscription(status="active", trial_end=trial_end),
            created=EVENT_CREATED + 120,
        ))

        sub = store.get_by_user("user_test")
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.trial_end is None

    def test_redelivered_conversion_and_renewal_keep_trial_end_cleared(self, reconciler, store):
        trial_end = EVENT_CREATED + 86400
        handler = StripeEventHandler(
            reconciler,
            retrieve_subscription=lambda sub_id: stripe_subscription(status="trialing", trial_end=trial_end),
        )
        handler.handle(checkout_event())
        conversion = stripe_event(
            "customer.subscription.updated",
            stripe_subscription(status="active", trial_end=trial_end),
            created=EVENT_CREATED + 120,
        )

        handler.handle(conversion)
        handler.handle(conversion)
        assert store.get_by_user("user_test").trial_end is None

        renewed = stripe_subscription(status="active", trial_end=trial_end)
        renewed["items"]["data"][0]["current_period_end"] = PERIOD_END + 2_592_000
        handler.handle(stripe_event("customer.subscription.updated", renewed, created=EVENT_CREATED + 600))

        sub = store.get_by_user("user_test")
        assert sub.status == SubscriptionStatus.ACTIVE
        assert sub.current_period_end == datetime.fromtimestamp(PERIOD_END + 2_592_000, tz=timezone.utc)
        assert sub.trial_end is None

    def test_redelivered_checkout_after_deletion_stays_expired(self, handler, store):
        handler.handle(checkout_event())
        handler.handle(stripe_event("customer.subscription.deleted", stripe_subscription(), created=EVENT_CREATED + 60))

        outcome = handler.handle(checkout_event())

        assert outcome.subscription_id == store.get_by_user("user_test").id
        assert store.get_by_user("user_test").status == SubscriptionStatus.EXPIRED

    def test_out_of_order_update_is_skipped(self, handler, store):
        handler.handle(checkout_event())
        handler.handle(stripe_event(
            "customer.subscription.updated",
            stripe_subscription(status="canceled"),
            created=EVENT_CREATED + 300,
        ))

        handler.handle(stripe_event(
            "customer.subscription.updated",
            stripe_subscription(status="active"),
            created=EVENT_CREATED + 100,
        ))

        assert store.get_by_user("user_test").status == SubscriptionStatus.CANCELED

    def test_deleted_expires(self, handler, store):
        handler.handle(checkout_event())

        outcome = handler.handle(stripe_event("customer.subscription.deleted", stripe_subscription()))

        assert outcome.action == "expired"
        assert store.get_by_user("user_test").status == SubscriptionStatus.EXPIRED

    def test_deleted_unknown(self, handler):
        outcome = handler.handle(stripe_event("customer.subscription.deleted", stripe_subscription(id="sub_nope")))
        assert outcome.action == "not_found"

    @pytest.mark.parametrize("reference", ["sub_test", {"id": "sub_test", "object": "subscription"}])
    def test_payment_failed_marks_past_due(self, handler, store, reference):
        handler.handle(checkout_event())
        invoice = {
            "id": "in_test",
            "object": "invoice",
            "parent": {"subscription_details": {"subscription": reference}},
        }

        outcome = handler.handle(stripe_event("invoice.payment_failed", invoice, created=EVENT_CREATED + 10))

        assert outcome.action == "marked_past_due"
        assert store.get_by_user("user_test").status == SubscriptionStatus.PAST_DUE

    def test_payment_failed_without_subscription(self, handler):
        outcome = handler.handle(stripe_event("invoice.payment_failed", {"id": "in_test", "parent": None}))
        assert outcome.action == "skipped"


def test_unhandled_event_type_is_ignored(handler):
    outcome = handler.handle(stripe_event("customer.created", {"id": "cus_test"}))
    assert outcome.action == "ignored"
    assert outcome.event_type == "customer.created"
    assert outcome.event_id == "evt_test"
