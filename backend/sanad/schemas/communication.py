from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

class CommunicationCreate(BaseModel):
    method: Literal["email", "sms", "phone"]
    recipient: str = Field(..., min_length=1)
    sent_at: Optional[datetime] = None
    company_response: Optional[str] = None

class CompanyResponseUpdate(BaseModel):
    company_response: str = Field(..., min_length=1)

class Communication(BaseModel):
    id: int
    claim_id: int
    method: str
    recipient: str
    sent_at: Optional[datetime] = None
    company_response: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
