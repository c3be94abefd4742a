import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sanad import schemas
from sanad.api.deps import get_db, require_staff
from sanad.services import eligibility_service

router = APIRouter(
    prefix="/admin/settings",
    tags=["Admin"],
    dependencies=[Depends(require_staff)],
)
logger = logging.getLogger(__name__)

@router.get("/", response_model=schemas.AdminSettings)
def read_settings(db: Session = Depends(get_db)):
    return schemas.AdminSettings(sdr_to_sar=eligibility_service.get_conversion_rate(db))

@router.put("/", response_model=schemas.AdminSettings)
def update_settings(settings_in: schemas.ConversionRateUpdate, db: Session = Depends(get_db)):
    """
    Updates the SDR conversion rate. Open claims pick it up on their next
    estimate; closed claims keep the rate frozen on them.
    """
    rate = eligibility_service.set_conversion_rate(db, settings_in.sdr_to_sar)
    return schemas.AdminSettings(sdr_to_sar=rate)
