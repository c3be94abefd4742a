from pydantic import BaseModel, Field
from typing import Literal, Optional

EligibilityStatus = Literal["eligible", "not_eligible", "possibly_eligible", "unknown"]

class EligibilityCheck(BaseModel):
    issue_type: str
    delay_hours: Optional[float] = Field(None, ge=0)

class EligibilityResult(BaseModel):
    status: EligibilityStatus
    sdr_amount: int
    local_amount: int
    conversion_rate: float
    message: str

    class Config:
        frozen = True
