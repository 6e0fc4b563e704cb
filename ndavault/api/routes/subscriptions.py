"""
Subscription API Routes

Create, cancel and inspect the current user's subscription, and list the
plan catalog for the pricing page.
"""

import logging

from fastapi import APIRouter

from ndavault.domain import entitlements
from ndavault.domain.plans import get_plan_by_price_id, list_plans
from ndavault.domain.subscription import (
    CancelSubscriptionResponse,
    CreateSubscriptionRequest,
    CreateSubscriptionResponse,
    PlanListResponse,
    SubscriptionStatusResponse,
    SubscriptionView,
    UserView,
)
from ndavault.api.dependencies import CurrentUser, SubscriptionServiceDep


logger = logging.getLogger(__name__)

router = APIRouter()


# =============================================================================
# Status
# =============================================================================

@router.get("/subscriptions/status", response_model=SubscriptionStatusResponse)
async def get_subscription_status(
    user: CurrentUser,
    service: SubscriptionServiceDep,
):
    """
    Get the current user's subscription, synced with the payment provider.

    Creates the free default on first access. Provider outages degrade to
    the stored record instead of failing.
    """
    subscription = await service.get_synced(user.id)

    return SubscriptionStatusResponse(
        subscription=SubscriptionView(
            **subscription.model_dump(exclude={"external_customer_id"}),
            entitlements=entitlements.summarize(subscription),
        ),
        user=UserView(id=user.id, email=user.email),
    )


@router.get("/subscriptions/plans", response_model=PlanListResponse)
async def get_plans():
    """Plan catalog, free first. Public."""
    return PlanListResponse(plans=list(list_plans()))


# =============================================================================
# Create / Cancel
# =============================================================================

@router.post("/subscriptions/create", response_model=CreateSubscriptionResponse)
async def create_subscription(
    request: CreateSubscriptionRequest,
    user: CurrentUser,
    service: SubscriptionServiceDep,
):
    """
    Start a pro subscription for the price the client selected.

    When ``requiresAction`` is true the client must confirm the first
    payment with ``clientSecret``; the subscription becomes active once the
    provider reports the payment through a webhook.
    """
    plan = get_plan_by_price_id(request.price_id)

    created = await service.create(
        user_id=user.id,
        plan_id=plan.id.value,
        email=user.email,
        payment_method_id=request.payment_method_id,
    )

    return CreateSubscriptionResponse(
        subscription_id=created.subscription_id,
        client_secret=created.client_secret,
        requires_action=created.requires_action,
    )


@router.post("/subscriptions/cancel", response_model=CancelSubscriptionResponse)
async def cancel_subscription(
    user: CurrentUser,
    service: SubscriptionServiceDep,
):
    """Cancel the current user's paid subscription immediately."""
    await service.cancel(user.id)
    return CancelSubscriptionResponse(
        success=True,
        message="Subscription canceled",
    )
