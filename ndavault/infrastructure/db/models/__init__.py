"""
SQLModel ORM Models for NDAVault

Exports all database models for Alembic autogenerate and application use.
Import models here to register them with SQLModel.metadata.
"""

from ndavault.infrastructure.db.models.base import (
    BaseModel,
    TimestampMixin,
    UUIDMixin,
)
from ndavault.infrastructure.db.models.subscription import SubscriptionModel
from ndavault.infrastructure.db.models.agreement import AgreementModel


__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "UUIDMixin",
    # Tables
    "SubscriptionModel",
    "AgreementModel",
]
