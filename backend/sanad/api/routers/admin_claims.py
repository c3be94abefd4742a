import logging
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from sanad import schemas
from sanad.api.deps import get_db, require_staff
from sanad.crud import crud_timeline
from sanad.services import claim_service, lifecycle_service

router = APIRouter(
    prefix="/claims",
    tags=["Claims (staff)"],
    dependencies=[Depends(require_staff)],
)

logger = logging.getLogger(__name__)

# --- Read Endpoints ---

@router.get("/", response_model=List[schemas.Claim])
def list_claims(
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
):
    """
    Retrieve claims newest first, filtered by status, category or a search term.
    """
    return claim_service.list_claims(db, status=status, category=category, search=search, skip=skip, limit=limit)

@router.get("/{claim_id}", response_model=schemas.ClaimDetail)
def read_claim(claim_id: int, db: Session = Depends(get_db)):
    """
    Full claim detail: attachments, timeline, communications, settlement,
    verification, AI output, the live estimate and the statuses it may move to.
    """
    return claim_service.get_claim_detail(db, claim_id)

# --- Update Endpoints ---

@router.patch("/{claim_id}", response_model=schemas.Claim)
def update_claim(claim_id: int, claim_in: schemas.ClaimUpdate, db: Session = Depends(get_db)):
    return claim_service.update_claim(db, claim_id, claim_in)

@router.post("/{claim_id}/status", response_model=schemas.Claim)
def change_claim_status(claim_id: int, status_in: schemas.StatusChange, db: Session = Depends(get_db)):
    return lifecycle_service.change_status(db, claim_id, status_in.status, status_in.note)

@router.post("/{claim_id}/timeline", response_model=schemas.TimelineEvent, status_code=201)
def add_timeline_event(claim_id: int, event_in: schemas.TimelineEventCreate, db: Session = Depends(get_db)):
    claim = claim_service.get_claim_or_404(db, claim_id)
    return crud_timeline.create_timeline_event(db, claim.id, event_in)

@router.post("/{claim_id}/communications", response_model=schemas.Communication, status_code=201)
def add_communication(claim_id: int, comm_in: schemas.CommunicationCreate, db: Session = Depends(get_db)):
    return claim_service.record_communication(db, claim_id, comm_in)

@router.patch("/{claim_id}/communications/{communication_id}", response_model=schemas.Communication)
def record_company_response(
    claim_id: int,
    communication_id: int,
    response_in: schemas.CompanyResponseUpdate,
    db: Session = Depends(get_db),
):
    return claim_service.record_company_response(db, claim_id, communication_id, response_in.company_response)

@router.post("/{claim_id}/settlement", response_model=schemas.Settlement, status_code=201)
def create_settlement(claim_id: int, settlement_in: schemas.SettlementCreate, db: Session = Depends(get_db)):
    """
    Records the financial outcome and closes the claim as resolved.
    """
    return lifecycle_service.create_settlement(db, claim_id, settlement_in)
