"""
Database Infrastructure Package for NDAVault

Exports database utilities and dependency providers.
"""

from ndavault.infrastructure.db.database import (
    DatabaseManager,
    get_db_manager,
    get_session,
    get_session_context,
    init_db,
    close_db,
)

from ndavault.infrastructure.db.dependencies import (
    SessionDep,
    get_subscription_repository,
    get_agreement_repository,
    SubscriptionRepoDep,
    AgreementRepoDep,
)


__all__ = [
    # Database management
    "DatabaseManager",
    "get_db_manager",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    # Dependencies
    "SessionDep",
    "get_subscription_repository",
    "get_agreement_repository",
    "SubscriptionRepoDep",
    "AgreementRepoDep",
]
