"""
Entitlement Resolver

Pure functions answering what a subscription allows. A missing
subscription is the implicit free/active default built here, so every
caller sees the same default.

Feature gating fails closed: a paid plan that is not ``active`` (past_due,
canceled, incomplete) loses paid features. Storage does not: a pro user
keeps an unbounded upload limit through payment trouble.
"""

from typing import Optional

from ndavault.domain.plans import FREE_FEATURES, PRO_FEATURES, Feature, PlanType, get_plan
from ndavault.domain.subscription import (
    EntitlementSummary,
    Subscription,
    SubscriptionStatus,
)


def default_subscription(user_id: str) -> Subscription:
    """The record every user has before paying: free, active, no provider ids."""
    return Subscription(
        user_id=user_id,
        plan_type=PlanType.FREE,
        status=SubscriptionStatus.ACTIVE,
    )


def _resolve(subscription: Optional[Subscription]) -> Subscription:
    return subscription if subscription is not None else default_subscription("")


def is_paid_active(subscription: Optional[Subscription]) -> bool:
    """True when the subscription is a pro plan in good standing."""
    subscription = _resolve(subscription)
    return (
        subscription.plan_type == PlanType.PRO
        and subscription.status == SubscriptionStatus.ACTIVE
    )


def has_feature(subscription: Optional[Subscription], feature: Feature | str) -> bool:
    """Check access to a feature. Unknown feature names are never granted."""
    try:
        feature = Feature(feature)
    except ValueError:
        return False

    if feature in FREE_FEATURES:
        return True

    return is_paid_active(subscription) and feature in PRO_FEATURES


def upload_limit(subscription: Optional[Subscription]) -> Optional[int]:
    """Agreement cap for the plan. None means unlimited; status is ignored."""
    subscription = _resolve(subscription)
    return get_plan(subscription.plan_type).upload_limit


def can_upload_more(subscription: Optional[Subscription], current_count: int) -> bool:
    limit = upload_limit(subscription)
    return limit is None or current_count < limit


def features_for(subscription: Optional[Subscription]) -> list[Feature]:
    return [feature for feature in Feature if has_feature(subscription, feature)]


def summarize(subscription: Optional[Subscription]) -> EntitlementSummary:
    return EntitlementSummary(
        is_pro_active=is_paid_active(subscription),
        upload_limit=upload_limit(subscription),
        features=features_for(subscription),
    )
