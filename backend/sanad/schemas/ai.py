from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

AgentMode = Literal["analyze", "draft", "followup"]
CaseStrength = Literal["strong", "medium", "weak"]


class AiClaimData(BaseModel):
    airline: str
    flight_number: str
    date: str
    from_airport: str = Field(..., alias="from")
    to_airport: str = Field(..., alias="to")
    disruption_type: str
    delay_minutes: Optional[int] = None
    reason_text: Optional[str] = None

    class Config:
        populate_by_name = True


class AiCaseRequest(BaseModel):
    claim_id: int
    mode: AgentMode
    claim_data: AiClaimData
    evidence_text: str = ""
    airline_response_text: Optional[str] = None


class CaseAnalysisFields(BaseModel):
    """The one canonical field set every agent response is normalized into."""
    summary: Optional[str] = None
    case_strength: Optional[CaseStrength] = None
    eligibility_reasoning: Optional[str] = None
    claim_draft: Optional[str] = None
    next_action: Optional[str] = None


class AiCaseResponse(CaseAnalysisFields):
    mode: AgentMode
    cached: bool


class AiOutput(CaseAnalysisFields):
    id: int
    claim_id: int
    last_mode: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True
