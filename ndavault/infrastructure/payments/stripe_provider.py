"""
Stripe Payment Provider

Infrastructure implementation of PaymentProvider on the Stripe SDK.
Uses an explicit StripeClient instance (no module-level api_key) built
once at startup and injected where needed.
"""

import json
import logging
from typing import Dict, Optional

import stripe
from stripe import StripeError

from ndavault.config.settings import Settings, get_settings
from ndavault.infrastructure.exceptions import (
    ConfigurationError,
    PaymentProviderError,
    UnauthorizedError,
)
from ndavault.infrastructure.payments.provider import (
    ProviderCustomer,
    ProviderSubscription,
    VerifiedEvent,
    subscription_from_payload,
)


logger = logging.getLogger(__name__)


class StripePaymentProvider:
    """
    Stripe-backed payment provider.

    Every SDK failure is logged with its Stripe detail and re-raised as
    PaymentProviderError; callers decide whether to surface or swallow it.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client: Optional[stripe.StripeClient] = None,
    ):
        settings = settings or get_settings()
        self._webhook_secret = settings.stripe_webhook_secret

        if client is None:
            if not settings.stripe_secret_key:
                raise ConfigurationError(
                    "Stripe is not configured",
                    missing_keys=["STRIPE_SECRET_KEY"],
                )
            client = stripe.StripeClient(
                settings.stripe_secret_key,
                http_client=stripe.HTTPXClient(timeout=settings.stripe_timeout_seconds),
                max_network_retries=0,
            )

        self._client = client

    # =========================================================================
    # Customer Management
    # =========================================================================

    async def create_customer(
        self,
        user_id: str,
        email: Optional[str] = None,
        name: Optional[str] = None,
    ) -> ProviderCustomer:
        """
        Create a new Stripe customer.

        Args:
            user_id: Internal user ID (stored in metadata)
            email: Customer email for receipts
            name: Optional customer name
        """
        params = {
            "metadata": {
                "user_id": user_id,
                "source": "ndavault",
            },
        }
        if email:
            params["email"] = email
        if name or email:
            params["name"] = name or email

        try:
            customer = await self._client.v1.customers.create_async(params=params)
        except StripeError as e:
            logger.error(f"Failed to create Stripe customer for user {user_id}: {e}")
            raise PaymentProviderError(
                f"Failed to create customer: {e.user_message or e}",
                operation="create_customer",
                original_error=e,
            )

        logger.info(f"Created Stripe customer {customer.id} for user {user_id}")
        return ProviderCustomer(id=customer.id, email=email)

    # =========================================================================
    # Subscriptions
    # =========================================================================

    async def create_subscription(
        self,
        customer_id: str,
        price_id: str,
        payment_method_id: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> ProviderSubscription:
        """
        Create a subscription, leaving it incomplete until the first
        payment is confirmed client-side with the returned client secret.
        """
        try:
            if payment_method_id:
                await self._client.v1.payment_methods.attach_async(
                    payment_method_id,
                    params={"customer": customer_id},
                )

            params = {
                "customer": customer_id,
                "items": [{"price": price_id}],
                "payment_behavior": "default_incomplete",
                "payment_settings": {"save_default_payment_method": "on_subscription"},
                "expand": ["latest_invoice.payment_intent"],
                "metadata": metadata or {},
            }
            if payment_method_id:
                params["default_payment_method"] = payment_method_id

            subscription = await self._client.v1.subscriptions.create_async(params=params)
        except StripeError as e:
            logger.error(f"Failed to create subscription for customer {customer_id}: {e}")
            raise PaymentProviderError(
                f"Failed to create subscription: {e.user_message or e}",
                operation="create_subscription",
                original_error=e,
            )

        result = subscription_from_payload(subscription)
        logger.info(
            f"Created Stripe subscription {result.id} for customer {customer_id}, "
            f"price={price_id}, status={result.status}"
        )
        return result

    async def retrieve_subscription(self, subscription_id: str) -> ProviderSubscription:
        try:
            subscription = await self._client.v1.subscriptions.retrieve_async(subscription_id)
        except StripeError as e:
            raise PaymentProviderError(
                f"Failed to retrieve subscription {subscription_id}: {e}",
                operation="retrieve_subscription",
                original_error=e,
            )
        return subscription_from_payload(subscription)

    async def cancel_subscription(self, subscription_id: str) -> ProviderSubscription:
        try:
            subscription = await self._client.v1.subscriptions.cancel_async(subscription_id)
        except StripeError as e:
            logger.error(f"Failed to cancel subscription {subscription_id}: {e}")
            raise PaymentProviderError(
                f"Failed to cancel: {e.user_message or e}",
                operation="cancel_subscription",
                original_error=e,
            )

        logger.info(f"Cancelled Stripe subscription {subscription_id}")
        return subscription_from_payload(subscription)

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    def verify_webhook(self, payload: bytes, signature: str) -> VerifiedEvent:
        """
        Verify the Stripe-Signature header and decode the event.

        The SDK checks the HMAC-SHA256 signature with a constant-time
        comparison and rejects stale timestamps.

        Raises:
            UnauthorizedError if the signature is missing or invalid
        """
        if not signature:
            raise UnauthorizedError("Missing webhook signature")
        if not self._webhook_secret:
            raise UnauthorizedError("Webhook secret not configured")

        try:
            self._client.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            raise UnauthorizedError("Invalid webhook signature", original_error=e)
        except ValueError as e:
            raise UnauthorizedError("Invalid webhook payload", original_error=e)

        body = json.loads(payload)
        return VerifiedEvent(
            id=body.get("id"),
            type=body.get("type", ""),
            data=(body.get("data") or {}).get("object") or {},
        )
