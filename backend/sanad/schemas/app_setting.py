from pydantic import BaseModel, Field

class ConversionRateUpdate(BaseModel):
    sdr_to_sar: float = Field(..., gt=0)

class AdminSettings(BaseModel):
    sdr_to_sar: float
