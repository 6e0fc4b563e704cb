"""
Alert Batch Job

Finds agreements crossing the alert horizon today and plans one email per
user. Nothing is sent here; delivery belongs to the caller.
"""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional

from ndavault.config.settings import Settings, get_settings
from ndavault.domain import entitlements
from ndavault.domain.agreement import Agreement, classify
from ndavault.domain.alerts import AlertAgreement, AlertRunResult, EmailPreview
from ndavault.domain.plans import Feature
from ndavault.infrastructure.auth.user_directory import SupabaseUserDirectory
from ndavault.infrastructure.db.repositories.agreement_repository import AgreementRepository
from ndavault.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from ndavault.infrastructure.exceptions import ValidationError


logger = logging.getLogger(__name__)


def format_date(value: date) -> str:
    """US-style short date, e.g. 3/7/2026."""
    return f"{value.month}/{value.day}/{value.year}"


def render_subject(count: int, horizon_days: int) -> str:
    if count == 1:
        return f"⚠️ 1 NDA expires in {horizon_days} days"
    return f"⚠️ {count} NDAs expire in {horizon_days} days"


def render_body(agreements: List[Agreement], horizon_days: int, site_url: str) -> str:
    lines = "\n".join(
        f"• {a.counterparty_name} - expires on {format_date(a.expiration_date)}"
        for a in agreements
    )
    return (
        "Hi,\n"
        "\n"
        f"Your NDAVault dashboard shows that you have {len(agreements)} agreement(s) "
        f"expiring in {horizon_days} days:\n"
        "\n"
        f"{lines}\n"
        "\n"
        f"→ View Details: {site_url.rstrip('/')}/dashboard\n"
        "\n"
        "Need help? Reply to this email.\n"
        "\n"
        "Best,\n"
        "NDAVault Team"
    )


class AlertBatchJob:
    """
    Computes the expiration-alert email plan.

    Selection is an exact date match on as_of + horizon_days, so a daily run
    catches each agreement once. Status is recomputed from the expiration
    date for every listed agreement.
    """

    def __init__(
        self,
        agreement_repo: AgreementRepository,
        subscription_repo: SubscriptionRepository,
        user_directory: Optional[SupabaseUserDirectory] = None,
        settings: Optional[Settings] = None,
    ):
        self._agreements = agreement_repo
        self._subscriptions = subscription_repo
        self._directory = user_directory
        self._settings = settings or get_settings()

    async def run(
        self,
        horizon_days: Optional[int] = None,
        as_of: Optional[date] = None,
    ) -> AlertRunResult:
        """
        Build the email plan for agreements expiring exactly horizon_days
        after as_of.

        Raises:
            ValidationError: negative horizon
        """
        if horizon_days is None:
            horizon_days = self._settings.alert_horizon_days
        if horizon_days < 0:
            raise ValidationError(
                "Alert horizon must not be negative",
                details={"horizon_days": horizon_days},
            )

        as_of = as_of or date.today()
        target_date = as_of + timedelta(days=horizon_days)
        logger.info(f"Looking for agreements expiring on {target_date.isoformat()}")

        candidates = await self._agreements.find_alert_candidates(target_date)
        logger.info(f"Found {len(candidates)} agreements requiring alerts")

        by_user: Dict[str, List[Agreement]] = defaultdict(list)
        for agreement in candidates:
            by_user[agreement.user_id].append(agreement)

        previews: List[EmailPreview] = []
        for user_id, agreements in by_user.items():
            if not await self._alerts_allowed(user_id):
                logger.info(
                    f"Skipping alert for user {user_id}: automatic alerts not in plan"
                )
                continue
            previews.append(
                await self._preview(user_id, agreements, horizon_days, as_of)
            )

        result = AlertRunResult(
            agreements_found=len(candidates),
            unique_users=len(by_user),
            emails_that_would_be_sent=len(previews),
            email_previews=previews,
            target_date=target_date,
            timestamp=datetime.now(timezone.utc),
        )
        logger.info(
            f"Alert job completed: {result.agreements_found} agreements, "
            f"{result.unique_users} users, {result.emails_that_would_be_sent} emails"
        )
        return result

    async def _alerts_allowed(self, user_id: str) -> bool:
        if not self._settings.alerts_require_entitlement:
            return True
        subscription = await self._subscriptions.get_by_user_id(user_id)
        return entitlements.has_feature(subscription, Feature.AUTOMATIC_ALERTS)

    async def _preview(
        self,
        user_id: str,
        agreements: List[Agreement],
        horizon_days: int,
        as_of: date,
    ) -> EmailPreview:
        email = None
        if self._directory is not None:
            email = await self._directory.get_email(user_id)

        return EmailPreview(
            to=email or user_id,
            subject=render_subject(len(agreements), horizon_days),
            body=render_body(agreements, horizon_days, self._settings.site_url),
            agreements_count=len(agreements),
            agreements=[
                AlertAgreement(
                    id=a.id or "",
                    counterparty_name=a.counterparty_name,
                    expiration_date=a.expiration_date,
                    status=classify(a.expiration_date, as_of),
                )
                for a in agreements
            ],
        )
