"""
Plan Catalog

Static description of the subscription tiers and what each one grants.
Prices are in whole USD; provider price references come from settings.
"""

from enum import Enum
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict

from ndavault.config.settings import get_settings
from ndavault.infrastructure.exceptions import InvalidPlanError


class PlanType(str, Enum):
    """Subscription plan identifiers."""
    FREE = "free"
    PRO = "pro"


class Feature(str, Enum):
    """Entitlement flags a plan can grant."""
    MAX_NDAS = "max_ndas"
    AUTOMATIC_ALERTS = "automatic_alerts"
    PRIORITY_SUPPORT = "priority_support"
    ADVANCED_ANALYTICS = "advanced_analytics"
    CUSTOM_BRANDING = "custom_branding"
    API_ACCESS = "api_access"


# Granted on every plan, whatever the subscription status.
FREE_FEATURES = frozenset({Feature.MAX_NDAS})

PRO_FEATURES = frozenset(Feature)


class Plan(BaseModel):
    """A purchasable (or default) subscription tier."""
    model_config = ConfigDict(frozen=True)

    id: PlanType
    name: str
    description: str
    monthly_price: int
    currency: str = "USD"
    interval: str = "month"
    features: tuple[str, ...]
    feature_flags: tuple[Feature, ...]
    upload_limit: Optional[int]  # None = unlimited
    price_id: Optional[str] = None

    @property
    def is_paid(self) -> bool:
        return self.monthly_price > 0


@lru_cache
def list_plans() -> tuple[Plan, ...]:
    """Return the plan catalog, free plan first."""
    settings = get_settings()

    return (
        Plan(
            id=PlanType.FREE,
            name="Free",
            description="Perfect for getting started",
            monthly_price=0,
            features=(
                f"Up to {settings.free_upload_limit} NDAs",
                "Basic upload and storage",
                "Manual tracking",
                "Email support",
            ),
            feature_flags=tuple(f for f in Feature if f in FREE_FEATURES),
            upload_limit=settings.free_upload_limit,
        ),
        Plan(
            id=PlanType.PRO,
            name="Pro",
            description="For professionals and teams",
            monthly_price=49,
            features=(
                "Unlimited NDAs",
                "Automatic expiration alerts",
                "Priority support",
                "Advanced analytics",
                "Custom branding",
                "API access",
            ),
            feature_flags=tuple(f for f in Feature if f in PRO_FEATURES),
            upload_limit=None,
            price_id=settings.stripe_price_id_pro,
        ),
    )


def get_plan(plan_id: str) -> Plan:
    """Look up a plan by id. Unknown ids are a caller input error."""
    for plan in list_plans():
        if plan.id.value == plan_id:
            return plan
    raise InvalidPlanError(str(plan_id))


def get_plan_by_price_id(price_id: str) -> Plan:
    """Resolve the plan that carries a provider price reference."""
    for plan in list_plans():
        if plan.price_id and plan.price_id == price_id:
            return plan
    raise InvalidPlanError(str(price_id))
