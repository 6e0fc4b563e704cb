"""
Unit tests for the webhook dispatcher.

Covers the transition table, provider event-name aliases, replay
idempotence and signature rejection.
"""

import pytest

from ndavault.infrastructure.exceptions import UnauthorizedError
from ndavault.infrastructure.payments.provider import VerifiedEvent
from ndavault.infrastructure.services.webhook_dispatcher import (
    HANDLERS,
    WebhookDispatcher,
    WebhookEventType,
    plan_type_for_amount,
)


USER_ID = "11111111-1111-1111-1111-111111111111"


@pytest.fixture
def dispatcher(subscription_repo, provider):
    return WebhookDispatcher(subscription_repo, provider)


@pytest.fixture
def pro_subscription(subscription_repo):
    return subscription_repo.seed(
        user_id=USER_ID, plan_type="pro", status="active",
        external_subscription_id="sub_123",
    )


def event(event_type: str, data: dict) -> VerifiedEvent:
    return VerifiedEvent(id="evt_1", type=event_type, data=data)


class TestEventTypes:

    def test_every_kind_has_a_handler(self):
        assert set(HANDLERS) == set(WebhookEventType)

    @pytest.mark.parametrize("name,kind", [
        ("customer.subscription.created", WebhookEventType.SUBSCRIPTION_CREATED),
        ("customer.subscription.updated", WebhookEventType.SUBSCRIPTION_UPDATED),
        ("customer.subscription.deleted", WebhookEventType.SUBSCRIPTION_CANCELED),
        ("subscription.canceled", WebhookEventType.SUBSCRIPTION_CANCELED),
        ("invoice.payment_failed", WebhookEventType.INVOICE_PAYMENT_FAILED),
        ("charge.refunded", None),
    ])
    def test_from_provider(self, name, kind):
        assert WebhookEventType.from_provider(name) == kind

    def test_plan_type_for_amount(self):
        assert plan_type_for_amount(4900) == "pro"
        assert plan_type_for_amount(0) == "free"
        assert plan_type_for_amount(None) == "free"


class TestTransitions:

    async def test_created_with_user_metadata_upserts_pro(self, dispatcher, subscription_repo):
        await dispatcher.dispatch(event("customer.subscription.created", {
            "id": "sub_new",
            "customer": "cus_1",
            "status": "active",
            "metadata": {"user_id": USER_ID},
            "items": {"data": [{
                "price": {"unit_amount": 4900},
                "current_period_start": 1772323200,
                "current_period_end": 1775001600,
            }]},
        }))

        stored = subscription_repo.rows[USER_ID]
        assert stored.plan_type == "pro"
        assert stored.status == "active"
        assert stored.external_subscription_id == "sub_new"
        assert stored.external_customer_id == "cus_1"
        assert stored.current_period_end is not None

    async def test_created_with_zero_amount_is_free(self, dispatcher, subscription_repo):
        await dispatcher.dispatch(event("subscription.created", {
            "id": "sub_free",
            "status": "active",
            "amount": 0,
            "metadata": {"user_id": USER_ID},
        }))

        stored = subscription_repo.rows[USER_ID]
        assert stored.plan_type == "free"
        assert stored.external_subscription_id is None

    async def test_created_without_user_updates_by_external_id(
        self, dispatcher, subscription_repo, pro_subscription
    ):
        await dispatcher.dispatch(event("customer.subscription.created", {
            "id": "sub_123", "status": "trialing", "plan": {"amount": 4900},
        }))

        assert subscription_repo.rows[USER_ID].status == "active"

    async def test_updated_sets_status_and_period(
        self, dispatcher, subscription_repo, pro_subscription
    ):
        await dispatcher.dispatch(event("customer.subscription.updated", {
            "id": "sub_123",
            "status": "past_due",
            "current_period_start": 1772323200,
            "current_period_end": 1775001600,
        }))

        stored = subscription_repo.rows[USER_ID]
        assert stored.status == "past_due"
        assert stored.current_period_end.year == 2026

    @pytest.mark.parametrize("event_type,expected", [
        ("subscription.canceled", "canceled"),
        ("customer.subscription.deleted", "canceled"),
        ("subscription.payment_failed", "past_due"),
        ("subscription.payment_succeeded", "active"),
    ])
    async def test_subscription_status_events(
        self, dispatcher, subscription_repo, pro_subscription, event_type, expected
    ):
        await dispatcher.dispatch(event(event_type, {"id": "sub_123"}))
        assert subscription_repo.rows[USER_ID].status == expected

    async def test_invoice_events(self, dispatcher, subscription_repo, pro_subscription):
        await dispatcher.dispatch(event("invoice.payment_failed", {"subscription": "sub_123"}))
        assert subscription_repo.rows[USER_ID].status == "past_due"

        await dispatcher.dispatch(event("invoice.payment_succeeded", {
            "parent": {"subscription_details": {"subscription": "sub_123"}},
        }))
        assert subscription_repo.rows[USER_ID].status == "active"

    async def test_invoice_without_subscription_is_noop(
        self, dispatcher, subscription_repo, pro_subscription
    ):
        await dispatcher.dispatch(event("invoice.payment_failed", {"id": "in_1"}))

        assert subscription_repo.writes == []
        assert subscription_repo.rows[USER_ID].status == "active"

    async def test_unknown_event_is_noop(self, dispatcher, subscription_repo, pro_subscription):
        handled = await dispatcher.dispatch(event("customer.created", {"id": "cus_1"}))

        assert handled is False
        assert subscription_repo.writes == []

    async def test_replay_is_idempotent(self, dispatcher, subscription_repo, pro_subscription):
        failed = event("subscription.payment_failed", {"id": "sub_123"})

        await dispatcher.dispatch(failed)
        once = subscription_repo.rows[USER_ID].model_dump(exclude={"updated_at"})
        await dispatcher.dispatch(failed)
        twice = subscription_repo.rows[USER_ID].model_dump(exclude={"updated_at"})

        assert once == twice

    async def test_unknown_external_id_changes_nothing(
        self, dispatcher, subscription_repo, pro_subscription
    ):
        await dispatcher.dispatch(event("subscription.canceled", {"id": "sub_other"}))
        assert subscription_repo.rows[USER_ID].status == "active"


class TestSignature:

    async def test_invalid_signature_raises_before_mutation(
        self, dispatcher, subscription_repo, pro_subscription, event_factory
    ):
        payload = event_factory("customer.subscription.deleted", {"id": "sub_123"})

        with pytest.raises(UnauthorizedError):
            await dispatcher.handle(payload, "t=1,v1=forged")

        assert subscription_repo.writes == []

    async def test_missing_signature(self, dispatcher, event_factory):
        with pytest.raises(UnauthorizedError):
            await dispatcher.handle(event_factory("invoice.paid", {}), None)

    async def test_valid_signature_dispatches(
        self, dispatcher, subscription_repo, pro_subscription, event_factory
    ):
        payload = event_factory("customer.subscription.deleted", {"id": "sub_123"})

        verified = await dispatcher.handle(payload, "t=1,v1=valid")

        assert verified.type == "customer.subscription.deleted"
        assert subscription_repo.rows[USER_ID].status == "canceled"
