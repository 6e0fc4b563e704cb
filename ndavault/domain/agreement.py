"""
Agreement Domain Models

Agreement entity, request DTOs and the expiration-status classifier.
The stored status is only a cache of classify(); anything that needs the
truth recomputes it from expiration_date.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ndavault.infrastructure.exceptions import ValidationError


EXPIRING_SOON_DAYS = 30


class AgreementStatus(str, Enum):
    """Lifecycle status derived from the expiration date."""
    ACTIVE = "active"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


def classify(expiration_date: date, as_of: Optional[date] = None) -> AgreementStatus:
    """
    Classify an agreement by days left until expiration.

    Expires today (0 days) and exactly 30 days out are both expiring_soon.
    """
    as_of = as_of or date.today()
    days_left = (expiration_date - as_of).days

    if days_left < 0:
        return AgreementStatus.EXPIRED
    if days_left <= EXPIRING_SOON_DAYS:
        return AgreementStatus.EXPIRING_SOON
    return AgreementStatus.ACTIVE


def validate_dates(effective_date: Optional[date], expiration_date: date) -> None:
    """Effective date, when present, must fall strictly before expiration."""
    if effective_date is not None and effective_date >= expiration_date:
        raise ValidationError(
            "Effective date must be before expiration date.",
            details={
                "effective_date": effective_date.isoformat(),
                "expiration_date": expiration_date.isoformat(),
            },
        )


# =============================================================================
# Domain Entity
# =============================================================================

class Agreement(BaseModel):
    """An NDA tracked for one user."""
    model_config = ConfigDict(from_attributes=True)

    id: Optional[str] = None
    user_id: str
    file_name: str
    file_path: str
    file_size: int = 0
    counterparty_name: str
    effective_date: Optional[date] = None
    expiration_date: date
    confidentiality_period: Optional[int] = None
    status: AgreementStatus = AgreementStatus.ACTIVE
    alert_enabled: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Request DTOs
# =============================================================================

class AgreementCreateRequest(BaseModel):
    """Metadata recorded after a file has been put in storage."""
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=1024)
    file_size: int = Field(default=0, ge=0)
    counterparty_name: str = Field(..., min_length=1, max_length=255)
    effective_date: Optional[date] = None
    expiration_date: date
    confidentiality_period: Optional[int] = Field(default=None, ge=0, le=100)
    alert_enabled: bool = True

    @field_validator("counterparty_name")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Field cannot be empty or whitespace only")
        return v.strip()

    @model_validator(mode="after")
    def validate_date_order(self) -> "AgreementCreateRequest":
        if self.effective_date and self.effective_date >= self.expiration_date:
            raise ValueError("Effective date must be before expiration date.")
        return self


class AgreementUpdateRequest(BaseModel):
    """Partial update. Date order is checked against the merged record."""
    counterparty_name: Optional[str] = Field(None, min_length=1, max_length=255)
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    confidentiality_period: Optional[int] = Field(None, ge=0, le=100)
    alert_enabled: Optional[bool] = None

    @field_validator("counterparty_name")
    @classmethod
    def validate_not_empty_if_provided(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Field cannot be empty or whitespace only")
        return v.strip() if v else v


class AgreementListResponse(BaseModel):
    agreements: list[Agreement]
    total: int
    upload_limit: Optional[int] = None
    can_upload_more: bool
