"""
Subscription Domain Models

Enums, DTOs, and the subscription entity for the billing bounded context.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from ndavault.domain.plans import Feature, Plan, PlanType


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status."""
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    INCOMPLETE = "incomplete"

    @classmethod
    def from_provider(cls, value: Optional[str]) -> "SubscriptionStatus":
        """
        Map a provider status string onto the local lifecycle.

        Stripe reports a few extra states; trialing counts as active and
        the terminal/unpaid ones collapse onto the closest local state.
        """
        aliases = {
            "trialing": cls.ACTIVE,
            "unpaid": cls.PAST_DUE,
            "incomplete_expired": cls.CANCELED,
            "paused": cls.PAST_DUE,
            "cancelled": cls.CANCELED,
        }
        if value in aliases:
            return aliases[value]
        try:
            return cls(value)
        except ValueError:
            return cls.INCOMPLETE


# =============================================================================
# Domain Entities
# =============================================================================

class Subscription(BaseModel):
    """Core subscription domain entity (one per user)."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    user_id: str
    external_subscription_id: Optional[str] = None
    external_customer_id: Optional[str] = None
    plan_type: PlanType = PlanType.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Request/Response DTOs
# =============================================================================

class CreateSubscriptionRequest(BaseModel):
    """Request body for POST /subscriptions/create."""
    model_config = ConfigDict(populate_by_name=True)

    price_id: str = Field(..., alias="priceId", min_length=1)
    payment_method_id: Optional[str] = Field(default=None, alias="paymentMethodId")


class CreateSubscriptionResponse(BaseModel):
    """Response for a newly created provider subscription."""
    model_config = ConfigDict(populate_by_name=True)

    subscription_id: str = Field(alias="subscriptionId")
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")
    requires_action: bool = Field(default=False, alias="requiresAction")


class EntitlementSummary(BaseModel):
    """What the current subscription allows, as shown on the billing page."""
    is_pro_active: bool
    upload_limit: Optional[int] = Field(description="None means unlimited")
    features: list[Feature]


class SubscriptionView(BaseModel):
    """Subscription as returned by GET /subscriptions/status."""
    id: Optional[str] = None
    user_id: str
    external_subscription_id: Optional[str] = None
    plan_type: PlanType
    status: SubscriptionStatus
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    entitlements: EntitlementSummary


class UserView(BaseModel):
    id: str
    email: Optional[str] = None


class SubscriptionStatusResponse(BaseModel):
    subscription: SubscriptionView
    user: UserView


class CancelSubscriptionResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None


class PlanListResponse(BaseModel):
    plans: list[Plan]
