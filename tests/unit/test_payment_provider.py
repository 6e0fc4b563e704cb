"""
Unit tests for the Stripe payment provider and payload normalization.
"""

import hashlib
import hmac
import json
import time
from unittest.mock import AsyncMock, MagicMock

import pytest
import stripe

from ndavault.config.settings import get_settings
from ndavault.infrastructure.exceptions import (
    ConfigurationError,
    PaymentProviderError,
    UnauthorizedError,
)
from ndavault.infrastructure.payments.provider import (
    invoice_subscription_ref,
    subscription_from_payload,
)
from ndavault.infrastructure.payments.stripe_provider import StripePaymentProvider


WEBHOOK_SECRET = "whsec_test_secret"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int = None) -> str:
    """Build a Stripe-Signature header the way Stripe does."""
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.{payload.decode()}".encode()
    digest = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


@pytest.fixture
def stripe_provider():
    client = stripe.StripeClient("sk_test_ndavault")
    return StripePaymentProvider(get_settings(), client=client)


class TestPayloadNormalization:

    def test_item_level_amount_and_period(self):
        sub = subscription_from_payload({
            "id": "sub_1",
            "status": "active",
            "customer": {"id": "cus_1", "object": "customer"},
            "items": {"data": [{
                "price": {"unit_amount": 4900},
                "current_period_start": 1772323200,
                "current_period_end": 1775001600,
            }]},
        })

        assert sub.id == "sub_1"
        assert sub.customer_id == "cus_1"
        assert sub.amount == 4900
        assert sub.current_period_start.isoformat() == "2026-03-01T00:00:00+00:00"
        assert sub.requires_action is False

    def test_incomplete_carries_client_secret(self):
        sub = subscription_from_payload({
            "id": "sub_1",
            "status": "incomplete",
            "latest_invoice": {"payment_intent": {
                "client_secret": "pi_1_secret_x", "status": "requires_payment_method",
            }},
        })

        assert sub.client_secret == "pi_1_secret_x"
        assert sub.requires_action is True

    def test_iso_dates(self):
        sub = subscription_from_payload({
            "id": "sub_1",
            "status": "active",
            "current_period_end": "2026-04-01T00:00:00Z",
        })
        assert sub.current_period_end.year == 2026
        assert sub.current_period_end.tzinfo is not None

    @pytest.mark.parametrize("invoice,expected", [
        ({"subscription": "sub_1"}, "sub_1"),
        ({"subscription": {"id": "sub_2"}}, "sub_2"),
        ({"parent": {"subscription_details": {"subscription": "sub_3"}}}, "sub_3"),
        ({"id": "in_1"}, None),
    ])
    def test_invoice_subscription_ref(self, invoice, expected):
        assert invoice_subscription_ref(invoice) == expected


class TestWebhookVerification:

    def test_valid_signature(self, stripe_provider):
        payload = json.dumps({
            "id": "evt_1",
            "object": "event",
            "type": "customer.subscription.deleted",
            "data": {"object": {"id": "sub_1", "object": "subscription"}},
        }).encode()

        event = stripe_provider.verify_webhook(payload, sign(payload))

        assert event.id == "evt_1"
        assert event.type == "customer.subscription.deleted"
        assert event.data["id"] == "sub_1"

    def test_wrong_secret(self, stripe_provider):
        payload = b'{"id": "evt_1", "object": "event", "type": "invoice.paid", "data": {"object": {}}}'

        with pytest.raises(UnauthorizedError):
            stripe_provider.verify_webhook(payload, sign(payload, secret="whsec_other"))

    def test_tampered_payload(self, stripe_provider):
        payload = b'{"id": "evt_1", "object": "event", "type": "invoice.paid", "data": {"object": {}}}'
        header = sign(payload)

        with pytest.raises(UnauthorizedError):
            stripe_provider.verify_webhook(payload.replace(b"evt_1", b"evt_2"), header)

    def test_stale_timestamp(self, stripe_provider):
        payload = b'{"id": "evt_1", "object": "event", "type": "invoice.paid", "data": {"object": {}}}'

        with pytest.raises(UnauthorizedError):
            stripe_provider.verify_webhook(
                payload, sign(payload, timestamp=int(time.time()) - 3600)
            )

    def test_missing_signature(self, stripe_provider):
        with pytest.raises(UnauthorizedError):
            stripe_provider.verify_webhook(b"{}", "")


class TestStripeCalls:

    def test_requires_secret_key(self):
        settings = get_settings().model_copy(update={"stripe_secret_key": None})
        with pytest.raises(ConfigurationError):
            StripePaymentProvider(settings)

    async def test_create_subscription_attaches_payment_method(self):
        client = MagicMock()
        client.v1.payment_methods.attach_async = AsyncMock()
        client.v1.subscriptions.create_async = AsyncMock(return_value={
            "id": "sub_9",
            "status": "incomplete",
            "customer": "cus_1",
            "latest_invoice": {"payment_intent": {
                "client_secret": "pi_secret", "status": "requires_action",
            }},
        })
        provider = StripePaymentProvider(get_settings(), client=client)

        sub = await provider.create_subscription("cus_1", "price_pro_test", "pm_1", {"user_id": "u1"})

        client.v1.payment_methods.attach_async.assert_awaited_once_with(
            "pm_1", params={"customer": "cus_1"}
        )
        params = client.v1.subscriptions.create_async.call_args.kwargs["params"]
        assert params["items"] == [{"price": "price_pro_test"}]
        assert params["default_payment_method"] == "pm_1"
        assert params["payment_behavior"] == "default_incomplete"
        assert sub.id == "sub_9"
        assert sub.client_secret == "pi_secret"
        assert sub.requires_action is True

    async def test_stripe_error_wrapped(self):
        client = MagicMock()
        client.v1.subscriptions.cancel_async = AsyncMock(
            side_effect=stripe.InvalidRequestError("No such subscription", param="id")
        )
        provider = StripePaymentProvider(get_settings(), client=client)

        with pytest.raises(PaymentProviderError) as exc_info:
            await provider.cancel_subscription("sub_missing")

        assert exc_info.value.details == {"operation": "cancel_subscription"}
        assert exc_info.value.to_dict()["message"] == "Payment provider request failed"
