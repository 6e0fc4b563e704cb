"""
Repository Layer for NDAVault

Exports all repository classes for dependency injection.
"""

from ndavault.infrastructure.db.repositories.base_repository import (
    BaseRepository,
    as_uuid,
)
from ndavault.infrastructure.db.repositories.subscription_repository import (
    SubscriptionRepository,
)
from ndavault.infrastructure.db.repositories.agreement_repository import (
    AgreementRepository,
)


__all__ = [
    # Base
    "BaseRepository",
    "as_uuid",
    # Repositories
    "SubscriptionRepository",
    "AgreementRepository",
]
