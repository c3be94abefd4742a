from pydantic import BaseModel
from datetime import datetime
from typing import Literal

# Staff may add these by hand; every other event type is written by the services
ManualEventType = Literal["note", "info_request"]

class TimelineEventCreate(BaseModel):
    event_type: ManualEventType = "note"
    message: str

class TimelineEvent(BaseModel):
    id: int
    claim_id: int
    event_type: str
    message: str
    created_at: datetime

    class Config:
        from_attributes = True
