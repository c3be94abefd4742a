from pydantic import BaseModel, Field, field_validator
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from sanad.models.flight_verification import FlightStatus, VerificationStatus
from .eligibility import EligibilityResult

DocumentType = Literal["boarding_pass", "ticket", "receipt", "invoice", "id_document", "other", "unknown"]


def _clamp_confidence(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return int(max(0, min(100, round(value))))


# --- Collaborator outputs, validated at the boundary ---

class BoardingPassData(BaseModel):
    flight_number: Optional[str] = None
    airline: Optional[str] = None
    departure_airport: Optional[str] = None
    arrival_airport: Optional[str] = None
    scheduled_departure: Optional[datetime] = None
    passenger_name: Optional[str] = None
    confidence: int = 0

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> int:
        return _clamp_confidence(value)


class FlightStatusResult(BaseModel):
    flight_status: FlightStatus = FlightStatus.unknown
    actual_departure: Optional[datetime] = None
    delay_minutes: Optional[int] = None
    source: str
    raw_payload: Dict[str, Any] = {}


class DocumentVerificationResult(BaseModel):
    document_type: DocumentType = "unknown"
    is_relevant: bool = False
    extracted_fields: Dict[str, Any] = {}
    notes: str = ""
    confidence: int = 0
    warnings: List[str] = []

    @field_validator("confidence", mode="before")
    @classmethod
    def _confidence(cls, value: Any) -> int:
        return _clamp_confidence(value)


# --- API shapes ---

class FlightVerification(BaseModel):
    id: int
    claim_id: int
    flight_number: Optional[str] = None
    airline: Optional[str] = None
    departure_airport: Optional[str] = None
    arrival_airport: Optional[str] = None
    scheduled_departure: Optional[datetime] = None
    passenger_name: Optional[str] = None
    ocr_confidence: Optional[int] = None
    actual_departure: Optional[datetime] = None
    delay_minutes: Optional[int] = None
    flight_status: Optional[FlightStatus] = None
    verification_status: VerificationStatus
    verification_source: Optional[str] = None
    verification_raw_data: Optional[Any] = None
    verified_at: Optional[datetime] = None
    updated_at: datetime

    class Config:
        from_attributes = True


class BoardingPassUploadResult(BaseModel):
    verification: FlightVerification
    ocr_data: BoardingPassData
    attachment_id: int


class FlightCheckResult(BaseModel):
    verification: FlightVerification
    flight_result: FlightStatusResult
    estimate: Optional[EligibilityResult] = None


class DocumentVerificationRequest(BaseModel):
    attachment_ids: List[int] = Field(..., min_length=1)


class DocumentCheckOutcome(BaseModel):
    attachment_id: int
    file_name: Optional[str] = None
    succeeded: bool
    error: Optional[str] = None
    result: DocumentVerificationResult
