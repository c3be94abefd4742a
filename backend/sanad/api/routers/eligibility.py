from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sanad import schemas
from sanad.api.deps import get_db
from sanad.services import eligibility_service

router = APIRouter(
    prefix="/eligibility",
    tags=["Eligibility"],
)

@router.post("/check", response_model=schemas.EligibilityResult)
def check_eligibility(check_in: schemas.EligibilityCheck, db: Session = Depends(get_db)):
    """Quick estimate for the intake wizard, at the current conversion rate."""
    return eligibility_service.compute_eligibility(
        check_in.issue_type, check_in.delay_hours, eligibility_service.get_conversion_rate(db)
    )
