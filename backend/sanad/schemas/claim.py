from pydantic import BaseModel, Field, field_validator, model_validator
from datetime import datetime
from typing import List, Optional

from sanad.models.claim import ClaimCategory, ClaimStatus
from sanad.utils.phone import is_valid_phone, normalize_phone
from .attachment import Attachment
from .communication import Communication
from .eligibility import EligibilityResult
from .settlement import Settlement
from .timeline import TimelineEvent
from .ai import AiOutput
from .verification import FlightVerification

FLIGHT_ISSUE_TYPES = {
    "delay", "cancel", "denied_boarding", "missed_connection",
    "lost_baggage", "damaged_baggage", "other",
}
DELIVERY_ISSUE_TYPES = {"late_delivery", "damaged", "missing_item", "wrong_item", "other"}

ISSUE_TYPES_BY_CATEGORY = {
    ClaimCategory.flight: FLIGHT_ISSUE_TYPES,
    ClaimCategory.delivery: DELIVERY_ISSUE_TYPES,
}


class ClaimBase(BaseModel):
    category: ClaimCategory
    issue_type: str
    company_name: str = Field(..., min_length=1, max_length=255)
    reference_number: str = Field(..., min_length=1, max_length=255)
    incident_date: datetime
    description: str = Field(..., min_length=1)

    customer_name: str = Field(..., min_length=1, max_length=255)
    customer_phone: str
    customer_email: Optional[str] = None

    flight_from: Optional[str] = None
    flight_to: Optional[str] = None
    delay_hours: Optional[float] = Field(None, ge=0)
    delivery_city: Optional[str] = None

    @field_validator("issue_type")
    @classmethod
    def _normalize_issue_type(cls, value: str) -> str:
        return value.strip().lower()

    @field_validator("customer_phone")
    @classmethod
    def _check_phone(cls, value: str) -> str:
        if not is_valid_phone(value):
            raise ValueError("customer_phone must be 9-15 digits")
        return normalize_phone(value)


class ClaimCreate(ClaimBase):
    @model_validator(mode="after")
    def _check_issue_type_for_category(self):
        allowed = ISSUE_TYPES_BY_CATEGORY[self.category]
        if self.issue_type not in allowed:
            raise ValueError(
                f"issue_type '{self.issue_type}' is not valid for {self.category.value} claims "
                f"(expected one of: {', '.join(sorted(allowed))})"
            )
        return self


class ClaimUpdate(BaseModel):
    # Everything staff may edit. claim_code and category are deliberately absent.
    issue_type: Optional[str] = None
    status: Optional[str] = None
    company_name: Optional[str] = Field(None, min_length=1, max_length=255)
    reference_number: Optional[str] = Field(None, min_length=1, max_length=255)
    incident_date: Optional[datetime] = None
    description: Optional[str] = Field(None, min_length=1)
    customer_name: Optional[str] = Field(None, min_length=1, max_length=255)
    customer_email: Optional[str] = None
    flight_from: Optional[str] = None
    flight_to: Optional[str] = None
    delay_hours: Optional[float] = Field(None, ge=0)
    delivery_city: Optional[str] = None
    internal_notes: Optional[str] = None
    draft_text: Optional[str] = None

    @field_validator("issue_type")
    @classmethod
    def _normalize_issue_type(cls, value: Optional[str]) -> Optional[str]:
        return value.strip().lower() if value is not None else None


class StatusChange(BaseModel):
    status: str
    note: Optional[str] = None


# This is the Claim object returned by our API
class Claim(BaseModel):
    id: int
    claim_code: str
    category: ClaimCategory
    issue_type: str
    status: ClaimStatus

    company_name: str
    reference_number: str
    incident_date: datetime
    description: str

    customer_name: str
    customer_phone: str
    customer_email: Optional[str] = None

    flight_from: Optional[str] = None
    flight_to: Optional[str] = None
    delay_hours: Optional[float] = None
    delivery_city: Optional[str] = None

    eligibility_status: Optional[str] = None
    estimated_sdr_amount: Optional[int] = None
    estimated_local_amount: Optional[int] = None
    frozen_conversion_rate: Optional[float] = None

    internal_notes: Optional[str] = None
    draft_text: Optional[str] = None

    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClaimCreated(BaseModel):
    id: int
    claim_code: str
    status: ClaimStatus
    estimate: EligibilityResult


class ClaimDetail(Claim):
    attachments: List[Attachment] = []
    timeline_events: List[TimelineEvent] = []
    communications: List[Communication] = []
    settlement: Optional[Settlement] = None
    flight_verification: Optional[FlightVerification] = None
    ai_output: Optional[AiOutput] = None
    estimate: Optional[EligibilityResult] = None
    allowed_transitions: List[ClaimStatus] = []


class PublicClaim(BaseModel):
    """What a claimant sees when tracking: no staff notes or drafts."""
    claim_code: str
    category: ClaimCategory
    issue_type: str
    status: ClaimStatus
    company_name: str
    reference_number: str
    incident_date: datetime
    customer_name: str
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TrackClaimResponse(BaseModel):
    claim: PublicClaim
    estimate: EligibilityResult
    timeline: List[TimelineEvent] = []
