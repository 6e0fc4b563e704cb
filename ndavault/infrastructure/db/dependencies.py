"""
Dependency Injection Providers for NDAVault

Provides FastAPI dependencies for database sessions and repositories.
"""

from typing import Annotated, AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ndavault.infrastructure.db.database import get_session
from ndavault.infrastructure.db.repositories import (
    AgreementRepository,
    SubscriptionRepository,
)


# Type alias for session dependency
SessionDep = Annotated[AsyncSession, Depends(get_session)]


async def get_subscription_repository(
    session: SessionDep,
) -> AsyncGenerator[SubscriptionRepository, None]:
    """
    Dependency provider for SubscriptionRepository.

    Usage:
        @router.get("/status")
        async def get_status(
            repo: SubscriptionRepository = Depends(get_subscription_repository)
        ):
            ...
    """
    yield SubscriptionRepository(session)


async def get_agreement_repository(
    session: SessionDep,
) -> AsyncGenerator[AgreementRepository, None]:
    """Dependency provider for AgreementRepository."""
    yield AgreementRepository(session)


# Type aliases for repository dependencies
SubscriptionRepoDep = Annotated[
    SubscriptionRepository,
    Depends(get_subscription_repository)
]
AgreementRepoDep = Annotated[
    AgreementRepository,
    Depends(get_agreement_repository)
]
