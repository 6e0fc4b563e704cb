"""
Agreement API Routes

Metadata CRUD for the current user's NDAs. Files themselves are uploaded
to storage by the client; these endpoints record where they went.
"""

import logging
from datetime import date

from fastapi import APIRouter, status

from ndavault.api.dependencies import AgreementRepoDep, CurrentUser, SubscriptionRepoDep
from ndavault.domain import entitlements
from ndavault.domain.agreement import (
    Agreement,
    AgreementCreateRequest,
    AgreementListResponse,
    AgreementUpdateRequest,
    classify,
)
from ndavault.domain.plans import Feature
from ndavault.infrastructure.exceptions import (
    FeatureNotAvailableError,
    NotFoundError,
    UploadLimitExceededError,
)


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/agreements", response_model=AgreementListResponse)
async def list_agreements(
    user: CurrentUser,
    repo: AgreementRepoDep,
    subscriptions: SubscriptionRepoDep,
):
    """List the user's agreements, soonest expiration first, with live status."""
    today = date.today()
    agreements = await repo.list_for_user(user.id)
    for agreement in agreements:
        agreement.status = classify(agreement.expiration_date, today)

    subscription = await subscriptions.get_by_user_id(user.id)
    return AgreementListResponse(
        agreements=agreements,
        total=len(agreements),
        upload_limit=entitlements.upload_limit(subscription),
        can_upload_more=entitlements.can_upload_more(subscription, len(agreements)),
    )


@router.post(
    "/agreements",
    response_model=Agreement,
    status_code=status.HTTP_201_CREATED,
)
async def create_agreement(
    request: AgreementCreateRequest,
    user: CurrentUser,
    repo: AgreementRepoDep,
    subscriptions: SubscriptionRepoDep,
):
    """
    Record a new agreement.

    Alerts default to off for plans without automatic_alerts; asking for
    them explicitly on such a plan is refused.

    Raises:
        UploadLimitExceededError: the plan's agreement cap is reached
        FeatureNotAvailableError: alert_enabled=true without automatic_alerts
    """
    subscription = await subscriptions.get_by_user_id(user.id)
    current_count = await repo.count_for_user(user.id)

    if not entitlements.can_upload_more(subscription, current_count):
        logger.info(f"Upload blocked for user {user.id}: {current_count} agreements")
        raise UploadLimitExceededError(
            limit=entitlements.upload_limit(subscription),
            current_count=current_count,
        )

    if request.alert_enabled and not entitlements.has_feature(
        subscription, Feature.AUTOMATIC_ALERTS
    ):
        if "alert_enabled" in request.model_fields_set:
            raise FeatureNotAvailableError(Feature.AUTOMATIC_ALERTS.value)
        request = request.model_copy(update={"alert_enabled": False})

    return await repo.create_for_user(user.id, request)


@router.get("/agreements/{agreement_id}", response_model=Agreement)
async def get_agreement(agreement_id: str, user: CurrentUser, repo: AgreementRepoDep):
    agreement = await repo.get_for_user(user.id, agreement_id)
    if agreement is None:
        raise NotFoundError(f"Agreement {agreement_id} not found", table="agreements")
    agreement.status = classify(agreement.expiration_date)
    return agreement


@router.patch("/agreements/{agreement_id}", response_model=Agreement)
async def update_agreement(
    agreement_id: str,
    request: AgreementUpdateRequest,
    user: CurrentUser,
    repo: AgreementRepoDep,
    subscriptions: SubscriptionRepoDep,
):
    """
    Update agreement metadata.

    Turning alerts on needs the automatic_alerts feature; turning them off
    is always allowed.
    """
    changes = request.model_dump(exclude_unset=True)

    if changes.get("alert_enabled"):
        subscription = await subscriptions.get_by_user_id(user.id)
        if not entitlements.has_feature(subscription, Feature.AUTOMATIC_ALERTS):
            raise FeatureNotAvailableError(Feature.AUTOMATIC_ALERTS.value)

    agreement = await repo.update_for_user(user.id, agreement_id, changes)
    if agreement is None:
        raise NotFoundError(f"Agreement {agreement_id} not found", table="agreements")
    return agreement


@router.delete("/agreements/{agreement_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_agreement(agreement_id: str, user: CurrentUser, repo: AgreementRepoDep):
    deleted = await repo.delete_for_user(user.id, agreement_id)
    if not deleted:
        raise NotFoundError(f"Agreement {agreement_id} not found", table="agreements")
