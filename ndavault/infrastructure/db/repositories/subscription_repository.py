"""
Subscription Repository

Data access layer for the authoritative local copy of each user's
subscription. One row per user, enforced by a unique index on user_id;
writes are single-row upserts (last write wins).
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from ndavault.domain.plans import PlanType
from ndavault.domain.subscription import Subscription, SubscriptionStatus
from ndavault.infrastructure.db.models.subscription import SubscriptionModel
from ndavault.infrastructure.db.repositories.base_repository import as_uuid


logger = logging.getLogger(__name__)


UPDATABLE_FIELDS = frozenset({
    "external_subscription_id",
    "external_customer_id",
    "plan_type",
    "status",
    "current_period_start",
    "current_period_end",
})


def _column_values(fields: dict[str, Any]) -> dict[str, Any]:
    """Keep known columns and store enums by value."""
    unknown = set(fields) - UPDATABLE_FIELDS
    if unknown:
        raise ValueError(f"Cannot write subscription fields: {sorted(unknown)}")

    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in fields.items()
    }


class SubscriptionRepository:
    """
    Repository for subscription data access.

    Wraps an AsyncSession; the caller owns the transaction except where
    commit() is called explicitly.
    """

    def __init__(self, session: AsyncSession):
        self._session = session

    # =========================================================================
    # Query Methods
    # =========================================================================

    async def get_by_user_id(self, user_id: str) -> Optional[Subscription]:
        """
        Get subscription by user ID.

        Returns:
            Subscription domain model or None
        """
        statement = select(SubscriptionModel).where(
            SubscriptionModel.user_id == as_uuid(user_id)
        ).execution_options(populate_existing=True)
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    async def get_by_external_id(self, external_id: str) -> Optional[Subscription]:
        """Get subscription by the payment provider's subscription ID."""
        statement = select(SubscriptionModel).where(
            SubscriptionModel.external_subscription_id == external_id
        ).execution_options(populate_existing=True)
        result = await self._session.execute(statement)
        model = result.scalar_one_or_none()
        return self._to_domain(model) if model else None

    # =========================================================================
    # Command Methods
    # =========================================================================

    async def ensure_default(self, user_id: str) -> Subscription:
        """
        Return the user's subscription, creating the free/active default.

        Concurrent callers race on the user_id unique index; the loser's
        insert becomes a no-op and both read back the same row.
        """
        existing = await self.get_by_user_id(user_id)
        if existing:
            return existing

        now = datetime.now(timezone.utc)
        stmt = pg_insert(SubscriptionModel).values(
            id=uuid4(),
            user_id=as_uuid(user_id),
            plan_type=PlanType.FREE.value,
            status=SubscriptionStatus.ACTIVE.value,
            external_subscription_id=None,
            current_period_start=None,
            current_period_end=None,
            created_at=now,
            updated_at=now,
        ).on_conflict_do_nothing(index_elements=["user_id"])

        result = await self._session.execute(stmt)
        if result.rowcount:
            logger.info(f"Created default free subscription for user {user_id}")

        return await self.get_by_user_id(user_id)

    async def upsert_by_user(self, user_id: str, **fields: Any) -> Subscription:
        """
        Create or update the subscription keyed by user_id.

        Fields not given keep their stored value (or the free/active default
        on insert).
        """
        values = _column_values(fields)
        now = datetime.now(timezone.utc)

        insert_values = {
            "plan_type": PlanType.FREE.value,
            "status": SubscriptionStatus.ACTIVE.value,
            **values,
            "id": uuid4(),
            "user_id": as_uuid(user_id),
            "created_at": now,
            "updated_at": now,
        }

        stmt = pg_insert(SubscriptionModel).values(**insert_values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["user_id"],
            set_={
                **{key: getattr(stmt.excluded, key) for key in values},
                "updated_at": now,
            },
        )

        await self._session.execute(stmt)
        logger.info(
            f"Upserted subscription for user {user_id}: fields={sorted(values)}"
        )
        return await self.get_by_user_id(user_id)

    async def upsert_by_external_id(
        self,
        external_id: str,
        **fields: Any,
    ) -> Optional[Subscription]:
        """
        Update the subscription carrying a provider subscription ID.

        Webhooks only know the external id, so no row can be created here.

        Returns:
            Updated subscription, or None when no row has that external id
        """
        values = _column_values(fields)
        values["updated_at"] = datetime.now(timezone.utc)

        stmt = (
            update(SubscriptionModel)
            .where(SubscriptionModel.external_subscription_id == external_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)

        if not result.rowcount:
            logger.warning(f"No subscription found for external id {external_id}")
            return None

        return await self.get_by_external_id(external_id)

    async def commit(self) -> None:
        """Commit pending writes so a later failure in the request keeps them."""
        await self._session.commit()

    # =========================================================================
    # Mapping Methods
    # =========================================================================

    def _to_domain(self, model: SubscriptionModel) -> Subscription:
        """Convert database model to domain entity."""
        return Subscription(
            id=str(model.id),
            user_id=str(model.user_id),
            external_subscription_id=model.external_subscription_id,
            external_customer_id=model.external_customer_id,
            plan_type=PlanType(model.plan_type),
            status=SubscriptionStatus(model.status),
            current_period_start=model.current_period_start,
            current_period_end=model.current_period_end,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
