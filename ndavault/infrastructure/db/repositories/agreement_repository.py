"""
Agreement Repository

Persistence for NDA metadata. Status is recomputed here whenever the
expiration date is written, so callers cannot store a stale value.
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ndavault.domain.agreement import (
    Agreement,
    AgreementCreateRequest,
    AgreementStatus,
    classify,
    validate_dates,
)
from ndavault.infrastructure.db.models.agreement import AgreementModel
from ndavault.infrastructure.db.repositories.base_repository import BaseRepository, as_uuid


logger = logging.getLogger(__name__)


class AgreementRepository(BaseRepository[AgreementModel]):
    """
    Repository for agreements.

    Every lookup that takes a user_id is scoped to that user; another user's
    agreement is reported as missing.
    """

    def __init__(self, session: AsyncSession):
        super().__init__(AgreementModel, session)

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def list_for_user(self, user_id: str) -> list[Agreement]:
        stmt = (
            select(AgreementModel)
            .where(AgreementModel.user_id == as_uuid(user_id))
            .order_by(AgreementModel.expiration_date)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    async def count_for_user(self, user_id: str) -> int:
        return await self.count(AgreementModel.user_id == as_uuid(user_id))

    async def get_for_user(self, user_id: str, agreement_id: str) -> Optional[Agreement]:
        model = await self._get_model_for_user(user_id, agreement_id)
        return self._to_domain(model) if model else None

    async def find_alert_candidates(self, target_date: date) -> list[Agreement]:
        """
        Agreements that should trigger an alert on target_date.

        Exact-date match: a daily run catches each agreement once, on the day
        it is exactly the horizon away.
        """
        stmt = (
            select(AgreementModel)
            .where(AgreementModel.alert_enabled.is_(True))
            .where(AgreementModel.status == AgreementStatus.ACTIVE.value)
            .where(AgreementModel.expiration_date == target_date)
            .order_by(AgreementModel.user_id, AgreementModel.counterparty_name)
        )
        result = await self.session.execute(stmt)
        return [self._to_domain(model) for model in result.scalars().all()]

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def create_for_user(
        self,
        user_id: str,
        data: AgreementCreateRequest,
        as_of: Optional[date] = None,
    ) -> Agreement:
        validate_dates(data.effective_date, data.expiration_date)

        model = AgreementModel(
            user_id=as_uuid(user_id),
            file_name=data.file_name,
            file_url=data.file_path,
            file_size=data.file_size,
            counterparty_name=data.counterparty_name,
            effective_date=data.effective_date,
            expiration_date=data.expiration_date,
            confidentiality_period=data.confidentiality_period,
            status=classify(data.expiration_date, as_of).value,
            alert_enabled=data.alert_enabled,
        )
        model = await self.add(model)

        logger.info(f"Created agreement {model.id} for user {user_id}")
        return self._to_domain(model)

    async def update_for_user(
        self,
        user_id: str,
        agreement_id: str,
        changes: dict[str, Any],
        as_of: Optional[date] = None,
    ) -> Optional[Agreement]:
        """
        Apply a partial update.

        Returns:
            Updated agreement or None if the user has no such agreement
        """
        model = await self._get_model_for_user(user_id, agreement_id)
        if model is None:
            return None

        effective_date = changes.get("effective_date", model.effective_date)
        expiration_date = changes.get("expiration_date") or model.expiration_date
        validate_dates(effective_date, expiration_date)

        for field, value in changes.items():
            if field == "expiration_date" and value is None:
                continue
            setattr(model, field, value)

        if "expiration_date" in changes:
            model.status = classify(model.expiration_date, as_of).value
        model.updated_at = datetime.now(timezone.utc)

        model = await self.save(model)
        return self._to_domain(model)

    async def delete_for_user(self, user_id: str, agreement_id: str) -> bool:
        model = await self._get_model_for_user(user_id, agreement_id)
        if model is None:
            return False

        await self.remove(model)
        logger.info(f"Deleted agreement {agreement_id} for user {user_id}")
        return True

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _get_model_for_user(
        self,
        user_id: str,
        agreement_id: str,
    ) -> Optional[AgreementModel]:
        try:
            key = UUID(str(agreement_id))
        except ValueError:
            return None

        model = await self.get_by_id(key)
        if model is None or model.user_id != as_uuid(user_id):
            return None
        return model

    def _to_domain(self, model: AgreementModel) -> Agreement:
        return Agreement(
            id=str(model.id),
            user_id=str(model.user_id),
            file_name=model.file_name,
            file_path=model.file_url,
            file_size=model.file_size or 0,
            counterparty_name=model.counterparty_name,
            effective_date=model.effective_date,
            expiration_date=model.expiration_date,
            confidentiality_period=model.confidentiality_period,
            status=AgreementStatus(model.status),
            alert_enabled=model.alert_enabled,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
