from pydantic import BaseModel
from datetime import datetime

class Attachment(BaseModel):
    id: int
    claim_id: int
    file_name: str
    file_path: str
    mime_type: str
    uploaded_at: datetime

    class Config:
        from_attributes = True
