from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

class SettlementCreate(BaseModel):
    compensation_type: Literal["cash", "voucher", "refund"]
    compensation_amount: int = Field(..., ge=0) # smallest currency unit
    fee_percent: int = Field(0, ge=0, le=100)
    # Derived from amount and fee when omitted
    user_net: Optional[int] = Field(None, ge=0)

class Settlement(BaseModel):
    id: int
    claim_id: int
    compensation_type: str
    compensation_amount: int
    fee_percent: int
    user_net: int
    closed_at: datetime

    class Config:
        from_attributes = True
