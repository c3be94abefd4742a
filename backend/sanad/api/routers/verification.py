import logging
from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session
from typing import List, Optional

from sanad import schemas
from sanad.api.deps import get_db, get_store, require_staff
from sanad.services import verification_service
from sanad.utils.file_handling import BlobStore

router = APIRouter(
    prefix="/claims",
    tags=["Verification"],
    dependencies=[Depends(require_staff)],
)

logger = logging.getLogger(__name__)

@router.post("/{claim_id}/boarding-pass", response_model=schemas.BoardingPassUploadResult)
async def upload_boarding_pass(
    claim_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_store),
):
    """
    Reads the flight details off a boarding pass image (flight claims only).
    """
    content = await file.read()
    return await verification_service.upload_boarding_pass(
        db, claim_id, file.filename, content, file.content_type or "image/jpeg", store=store
    )

@router.post("/{claim_id}/verify-flight", response_model=schemas.FlightCheckResult)
async def verify_flight(claim_id: int, db: Session = Depends(get_db)):
    """
    Checks the boarding pass flight with the flight status provider.
    """
    return await verification_service.verify_flight_status(db, claim_id)

@router.get("/{claim_id}/verification", response_model=Optional[schemas.FlightVerification])
def read_verification(claim_id: int, db: Session = Depends(get_db)):
    return verification_service.get_flight_verification(db, claim_id)

@router.post("/{claim_id}/verify-documents", response_model=List[schemas.DocumentCheckOutcome])
async def verify_documents(
    claim_id: int,
    request: schemas.DocumentVerificationRequest,
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_store),
):
    return await verification_service.verify_documents(db, claim_id, request.attachment_ids, store=store)
