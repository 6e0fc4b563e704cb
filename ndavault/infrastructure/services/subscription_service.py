"""
Subscription Service

Keeps the local subscription record in step with the payment provider.

Read path (get_synced) fails open: a provider outage leaves the caller
with the last-known local record. Write paths (create, cancel) fail
closed: provider errors propagate so the user sees a failed purchase.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ndavault.domain.plans import get_plan
from ndavault.domain.subscription import Subscription, SubscriptionStatus
from ndavault.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from ndavault.infrastructure.exceptions import (
    InvalidPlanError,
    NoActiveSubscriptionError,
    PaymentProviderError,
)
from ndavault.infrastructure.payments.provider import PaymentProvider


logger = logging.getLogger(__name__)


@dataclass
class CreatedSubscription:
    subscription_id: str
    client_secret: Optional[str]
    requires_action: bool


class SubscriptionService:
    """
    Payment-provider sync over the subscription store.

    The provider is optional so read-only callers can run without billing
    configured; get_synced then serves the local record only.
    """

    def __init__(
        self,
        repo: SubscriptionRepository,
        provider: Optional[PaymentProvider] = None,
    ):
        self._repo = repo
        self._provider = provider

    @property
    def provider(self) -> PaymentProvider:
        if self._provider is None:
            raise PaymentProviderError(
                "Payment provider is not configured", operation="configuration"
            )
        return self._provider

    # =========================================================================
    # Read path
    # =========================================================================

    async def get_synced(self, user_id: str) -> Subscription:
        """
        Get the user's subscription, refreshed from the provider when it
        has a provider-side subscription.

        Never raises for provider trouble; the local record is returned.
        """
        local = await self._repo.ensure_default(user_id)

        if not local.external_subscription_id:
            return local

        if self._provider is None:
            logger.warning(
                f"Sync degraded for user {user_id}: no payment provider configured"
            )
            return local

        try:
            remote = await self._provider.retrieve_subscription(
                local.external_subscription_id
            )
        except PaymentProviderError as e:
            logger.warning(
                f"Sync degraded for user {user_id} "
                f"(subscription {local.external_subscription_id}): {e}"
            )
            return local

        return await self._repo.upsert_by_user(
            user_id,
            status=SubscriptionStatus.from_provider(remote.status),
            current_period_start=remote.current_period_start,
            current_period_end=remote.current_period_end,
        )

    # =========================================================================
    # Write paths
    # =========================================================================

    async def create(
        self,
        user_id: str,
        plan_id: str,
        email: Optional[str] = None,
        payment_method_id: Optional[str] = None,
    ) -> CreatedSubscription:
        """
        Start a paid subscription for the user.

        Raises:
            InvalidPlanError: unknown plan, or a plan that cannot be bought
            PaymentProviderError: any provider call failed
        """
        plan = get_plan(plan_id)
        if not plan.is_paid or not plan.price_id:
            raise InvalidPlanError(str(plan_id))

        provider = self.provider
        local = await self._repo.ensure_default(user_id)

        customer_id = local.external_customer_id
        if not customer_id:
            customer = await provider.create_customer(user_id=user_id, email=email)
            customer_id = customer.id
            await self._repo.upsert_by_user(user_id, external_customer_id=customer_id)
            # Survives a failed subscription call so retries reuse the customer
            await self._repo.commit()

        remote = await provider.create_subscription(
            customer_id=customer_id,
            price_id=plan.price_id,
            payment_method_id=payment_method_id,
            metadata={"user_id": user_id, "plan_type": plan.id.value},
        )

        await self._repo.upsert_by_user(
            user_id,
            plan_type=plan.id,
            external_subscription_id=remote.id,
            status=SubscriptionStatus.from_provider(remote.status),
            current_period_start=remote.current_period_start,
            current_period_end=remote.current_period_end,
        )

        logger.info(
            f"Created {plan.id.value} subscription {remote.id} for user {user_id} "
            f"(status={remote.status})"
        )
        return CreatedSubscription(
            subscription_id=remote.id,
            client_secret=remote.client_secret,
            requires_action=remote.requires_action,
        )

    async def cancel(self, user_id: str) -> None:
        """
        Cancel the user's provider subscription and mark it canceled locally.

        Raises:
            NoActiveSubscriptionError: nothing to cancel (no store write made)
            PaymentProviderError: the provider refused or was unreachable
        """
        local = await self._repo.get_by_user_id(user_id)

        if local is None or not local.external_subscription_id:
            raise NoActiveSubscriptionError(user_id)

        await self.provider.cancel_subscription(local.external_subscription_id)

        await self._repo.upsert_by_user(user_id, status=SubscriptionStatus.CANCELED)
        logger.info(
            f"Canceled subscription {local.external_subscription_id} for user {user_id}"
        )
