"""
Alert Domain Models

Result shapes of the expiration-alert batch job. Serialized with the
camelCase keys the admin dashboard reads.
"""

from datetime import date, datetime
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from ndavault.domain.agreement import AgreementStatus


class AlertAgreement(BaseModel):
    """One qualifying agreement inside an email preview."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    counterparty_name: str = Field(..., alias="counterpartyName")
    expiration_date: date = Field(..., alias="expirationDate")
    status: AgreementStatus


class EmailPreview(BaseModel):
    """A message the job would send to one user."""
    model_config = ConfigDict(populate_by_name=True)

    to: str
    subject: str
    body: str
    agreements_count: int = Field(..., alias="agreementsCount")
    agreements: List[AlertAgreement] = Field(default_factory=list)


class AlertRunResult(BaseModel):
    """Summary of one alert run. Nothing is sent; previews only."""
    model_config = ConfigDict(populate_by_name=True)

    agreements_found: int = Field(..., alias="agreementsFound")
    unique_users: int = Field(..., alias="uniqueUsers")
    emails_that_would_be_sent: int = Field(..., alias="emailsThatWouldBeSent")
    email_previews: List[EmailPreview] = Field(
        default_factory=list, alias="emailPreviews"
    )
    target_date: date = Field(..., alias="targetDate")
    timestamp: datetime
