"""Vetting Schemas: application submission, admin review, and their responses.

Invariants:
    - Applicant must be at least MINIMUM_APPLICANT_AGE on the submission date
    - bio >= 50 characters; stageName >= 2 characters
    - reject requires non-empty notes (stored as rejection_reason)
"""

from datetime import date, datetime
from typing import Literal
from uuid import UUID

from pydantic import EmailStr, Field, field_validator, model_validator

from app.core.vetting_rules import MINIMUM_APPLICANT_AGE, age_on
from app.schemas.common import HttpUrlString, RequestModel, ResponseModel


class VettingApplicationCreate(RequestModel):
    full_name: str = Field(min_length=2, max_length=200)
    stage_name: str = Field(min_length=2, max_length=200)
    email: EmailStr
    phone: str = Field(min_length=10, max_length=40, pattern=r"^(whatsapp:)?\+?[0-9 ()-]+$")
    date_of_birth: date
    location: str = Field(min_length=2, max_length=200)
    performance_type: str = Field(min_length=1, max_length=100)
    experience_years: int = Field(ge=0, le=80)
    bio: str = Field(min_length=50, max_length=5000)
    portfolio_urls: list[HttpUrlString] = Field(default_factory=list, max_length=20)
    document_urls: list[HttpUrlString] = Field(default_factory=list, max_length=20)

    @field_validator("date_of_birth")
    @classmethod
    def must_be_adult(cls, v: date) -> date:
        if age_on(v, date.today()) < MINIMUM_APPLICANT_AGE:
            raise ValueError(f"applicant must be at least {MINIMUM_APPLICANT_AGE}")
        return v


class VettingReviewRequest(RequestModel):
    application_id: UUID
    decision: Literal["approve", "reject"]
    notes: str = Field("", max_length=2000)

    @model_validator(mode="after")
    def reject_requires_reason(self):
        if self.decision == "reject" and not self.notes:
            raise ValueError("reject decision requires notes")
        return self


class VettingEscalationRequest(RequestModel):
    application_id: UUID
    notes: str | None = Field(None, max_length=2000)


class VettingExpiryRequest(RequestModel):
    application_id: UUID


class VettingApplicationResponse(ResponseModel):
    id: UUID
    user_id: UUID
    full_name: str
    stage_name: str | None = None
    email: str
    location: str
    performance_type: str
    experience_years: int
    status: str
    reviewer_id: UUID | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    approval_notes: str | None = None
    rejection_reason: str | None = None
    created_at: datetime


class PerformerResponse(ResponseModel):
    id: UUID
    application_id: UUID
    user_id: UUID
    stage_name: str
    bio: str | None = None
    performance_types: list[str]
    service_areas: list[str]
    verified: bool


class VettingReviewResponse(ResponseModel):
    application: VettingApplicationResponse
    performer: PerformerResponse | None = None
