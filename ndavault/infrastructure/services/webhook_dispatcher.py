"""
Webhook Dispatcher

Applies verified payment-provider events to the subscription store.

Every transition is an upsert keyed by the provider subscription id, so
replaying an event leaves the store unchanged. Events are not ordered or
deduplicated: a late event overwrites a newer one (last write wins).
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from ndavault.domain.plans import PlanType
from ndavault.domain.subscription import SubscriptionStatus
from ndavault.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from ndavault.infrastructure.exceptions import UnauthorizedError
from ndavault.infrastructure.payments.provider import (
    PaymentProvider,
    VerifiedEvent,
    invoice_subscription_ref,
    subscription_from_payload,
)


logger = logging.getLogger(__name__)


class WebhookEventType(str, Enum):
    """Event kinds the dispatcher acts on."""
    SUBSCRIPTION_CREATED = "subscription.created"
    SUBSCRIPTION_UPDATED = "subscription.updated"
    SUBSCRIPTION_CANCELED = "subscription.canceled"
    SUBSCRIPTION_PAYMENT_SUCCEEDED = "subscription.payment_succeeded"
    SUBSCRIPTION_PAYMENT_FAILED = "subscription.payment_failed"
    INVOICE_PAYMENT_SUCCEEDED = "invoice.payment_succeeded"
    INVOICE_PAYMENT_FAILED = "invoice.payment_failed"

    @classmethod
    def from_provider(cls, value: str) -> Optional["WebhookEventType"]:
        """Resolve a provider event name; None for events we ignore."""
        aliases = {
            "customer.subscription.created": cls.SUBSCRIPTION_CREATED,
            "customer.subscription.updated": cls.SUBSCRIPTION_UPDATED,
            "customer.subscription.deleted": cls.SUBSCRIPTION_CANCELED,
        }
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            return None


def plan_type_for_amount(amount: Optional[int]) -> PlanType:
    """Any positive recurring amount means the paid plan."""
    return PlanType.PRO if amount and amount > 0 else PlanType.FREE


Handler = Callable[["WebhookDispatcher", Dict[str, Any]], Awaitable[None]]


class WebhookDispatcher:
    """
    Routes webhook events to one handler per event kind.

    Usage:
        dispatcher = WebhookDispatcher(SubscriptionRepository(session), provider)
        await dispatcher.handle(raw_body, request.headers.get("stripe-signature"))
    """

    def __init__(
        self,
        repo: SubscriptionRepository,
        provider: Optional[PaymentProvider],
    ):
        self._repo = repo
        self._provider = provider

    async def handle(self, payload: bytes, signature: Optional[str]) -> VerifiedEvent:
        """
        Verify the signature, then dispatch the event.

        Raises:
            UnauthorizedError: missing or invalid signature (nothing written)
        """
        if self._provider is None:
            raise UnauthorizedError("Webhook verification is not configured")

        event = self._provider.verify_webhook(payload, signature or "")
        await self.dispatch(event)
        return event

    async def dispatch(self, event: VerifiedEvent) -> bool:
        """
        Apply one verified event.

        Returns:
            True if a handler ran, False for ignored event kinds
        """
        kind = WebhookEventType.from_provider(event.type)
        if kind is None:
            logger.info(f"Ignoring webhook event {event.id} of type {event.type}")
            return False

        logger.info(f"Processing webhook event {event.id} ({event.type})")
        await HANDLERS[kind](self, event.data or {})
        return True

    # =========================================================================
    # Subscription events
    # =========================================================================

    async def _on_subscription_created(self, data: Dict[str, Any]) -> None:
        remote = subscription_from_payload(data)
        if not remote.id:
            logger.warning("subscription.created without a subscription id, skipping")
            return

        plan_type = plan_type_for_amount(remote.amount)
        fields = {
            "plan_type": plan_type,
            # A free plan never keeps a provider subscription reference
            "external_subscription_id": remote.id if plan_type == PlanType.PRO else None,
            "status": SubscriptionStatus.from_provider(remote.status),
            "current_period_start": remote.current_period_start,
            "current_period_end": remote.current_period_end,
        }

        user_id = (data.get("metadata") or {}).get("user_id")
        if user_id:
            if remote.customer_id:
                fields["external_customer_id"] = remote.customer_id
            await self._repo.upsert_by_user(user_id, **fields)
            logger.info(
                f"Subscription {remote.id} created for user {user_id} "
                f"(plan={plan_type.value})"
            )
        else:
            await self._repo.upsert_by_external_id(remote.id, **fields)

    async def _on_subscription_updated(self, data: Dict[str, Any]) -> None:
        remote = subscription_from_payload(data)
        if not remote.id:
            logger.warning("subscription.updated without a subscription id, skipping")
            return

        await self._repo.upsert_by_external_id(
            remote.id,
            status=SubscriptionStatus.from_provider(remote.status),
            current_period_start=remote.current_period_start,
            current_period_end=remote.current_period_end,
        )

    async def _on_subscription_canceled(self, data: Dict[str, Any]) -> None:
        await self._set_status(data.get("id"), SubscriptionStatus.CANCELED)

    async def _on_subscription_payment_succeeded(self, data: Dict[str, Any]) -> None:
        await self._set_status(data.get("id"), SubscriptionStatus.ACTIVE)

    async def _on_subscription_payment_failed(self, data: Dict[str, Any]) -> None:
        await self._set_status(data.get("id"), SubscriptionStatus.PAST_DUE)

    # =========================================================================
    # Invoice events
    # =========================================================================

    async def _on_invoice_payment_succeeded(self, data: Dict[str, Any]) -> None:
        await self._set_status(invoice_subscription_ref(data), SubscriptionStatus.ACTIVE)

    async def _on_invoice_payment_failed(self, data: Dict[str, Any]) -> None:
        await self._set_status(invoice_subscription_ref(data), SubscriptionStatus.PAST_DUE)

    async def _set_status(
        self,
        external_id: Optional[str],
        status: SubscriptionStatus,
    ) -> None:
        if not external_id:
            logger.info(f"Event carries no subscription id, status {status.value} not applied")
            return

        updated = await self._repo.upsert_by_external_id(external_id, status=status)
        if updated:
            logger.info(f"Subscription {external_id} -> {status.value}")


HANDLERS: Dict[WebhookEventType, Handler] = {
    WebhookEventType.SUBSCRIPTION_CREATED: WebhookDispatcher._on_subscription_created,
    WebhookEventType.SUBSCRIPTION_UPDATED: WebhookDispatcher._on_subscription_updated,
    WebhookEventType.SUBSCRIPTION_CANCELED: WebhookDispatcher._on_subscription_canceled,
    WebhookEventType.SUBSCRIPTION_PAYMENT_SUCCEEDED: WebhookDispatcher._on_subscription_payment_succeeded,
    WebhookEventType.SUBSCRIPTION_PAYMENT_FAILED: WebhookDispatcher._on_subscription_payment_failed,
    WebhookEventType.INVOICE_PAYMENT_SUCCEEDED: WebhookDispatcher._on_invoice_payment_succeeded,
    WebhookEventType.INVOICE_PAYMENT_FAILED: WebhookDispatcher._on_invoice_payment_failed,
}

_missing = set(WebhookEventType) - set(HANDLERS)
if _missing:
    raise RuntimeError(f"Webhook event types without a handler: {sorted(m.value for m in _missing)}")
