from pydantic import BaseModel
from typing import Dict

class AnalyticsSummary(BaseModel):
    total_claims: int
    status_counts: Dict[str, int]
    category_counts: Dict[str, int]
    total_compensation_amount: int
    total_user_net: int
