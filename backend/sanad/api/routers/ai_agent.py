from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sanad import schemas
from sanad.api.deps import get_db, require_staff
from sanad.services import ai_case_service

router = APIRouter(
    prefix="/ai",
    tags=["AI Agent"],
    dependencies=[Depends(require_staff)],
)

@router.post("/flight-agent", response_model=schemas.AiCaseResponse)
async def run_flight_agent(request: schemas.AiCaseRequest, db: Session = Depends(get_db)):
    """
    Runs the case agent in analyze, draft or followup mode. Repeating the exact
    same request returns the stored result with cached=true.
    """
    return await ai_case_service.run_case_agent(db, request)
