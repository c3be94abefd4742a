import logging
from fastapi import APIRouter, Depends, File, Query, UploadFile
from sqlalchemy.orm import Session
from typing import List

from sanad import schemas
from sanad.api.deps import get_db, get_store
from sanad.services import claim_service, claimant_auth_service, eligibility_service
from sanad.utils.file_handling import BlobStore

router = APIRouter(
    prefix="/claims",
    tags=["Claims"],
)

logger = logging.getLogger(__name__)

# --- Public claimant endpoints ---

@router.post("/", response_model=schemas.ClaimCreated, status_code=201)
def create_claim(claim_in: schemas.ClaimCreate, db: Session = Depends(get_db)):
    """
    Submits a new claim. Returns the claim code the claimant tracks it with
    and the initial compensation estimate.
    """
    claim = claim_service.submit_claim(db, claim_in)
    return schemas.ClaimCreated(
        id=claim.id,
        claim_code=claim.claim_code,
        status=claim.status,
        estimate=eligibility_service.estimate_for_claim(db, claim),
    )

@router.get("/track/{claim_code}", response_model=schemas.TrackClaimResponse)
def track_claim(claim_code: str, phone: str = Query(...), db: Session = Depends(get_db)):
    return claimant_auth_service.track_claim(db, claim_code, phone)

@router.get("/history/{phone}", response_model=List[schemas.PublicClaim])
def claim_history(phone: str, verify_claim_code: str = Query(None), db: Session = Depends(get_db)):
    """
    All claims filed with a phone number. The caller proves ownership with one
    of those claim codes.
    """
    return claimant_auth_service.authorize_history_access(db, phone, verify_claim_code)

@router.post("/{claim_id}/attachments", response_model=schemas.Attachment, status_code=201)
def upload_attachment(
    claim_id: int,
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    store: BlobStore = Depends(get_store),
):
    content = file.file.read()
    return claim_service.add_attachment(
        db, claim_id, file.filename, content, file.content_type or "application/octet-stream", store
    )
