"""
Agreement Database Model

SQLModel table for NDA metadata. The PDF itself lives in object storage;
only its name, path and size are recorded here.
"""

from datetime import date
from typing import Optional
from uuid import UUID

from sqlmodel import Field

from ndavault.infrastructure.db.models.base import BaseModel


class AgreementModel(BaseModel, table=True):
    """Maps to the 'agreements' table."""

    __tablename__ = "agreements"

    user_id: UUID = Field(..., index=True, nullable=False)

    # File reference
    file_name: str = Field(..., max_length=255)
    file_url: str = Field(..., max_length=1024, description="Storage path, not a public URL")
    file_size: int = Field(default=0)

    # Agreement details
    counterparty_name: str = Field(..., max_length=255)
    effective_date: Optional[date] = Field(default=None)
    expiration_date: date = Field(..., index=True)
    confidentiality_period: Optional[int] = Field(default=None, description="Years")

    # Cached from expiration_date at write time
    status: str = Field(default="active", max_length=20)
    alert_enabled: bool = Field(default=True)
