import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sanad import models, schemas
from sanad.core import exceptions
from sanad.core.config import settings
from sanad.crud import crud_claim, crud_timeline
from sanad.models.claim import ClaimCategory, ClaimStatus
from sanad.schemas.claim import ISSUE_TYPES_BY_CATEGORY
from sanad.services import claim_code_service, eligibility_service, lifecycle_service
from sanad.utils.file_handling import BlobStore

logger = logging.getLogger(__name__)

# --- Intake ---

def submit_claim(db: Session, claim_in: schemas.ClaimCreate, year: Optional[int] = None) -> models.Claim:
    """
    Creates a claim with a fresh SAN-{year}-{sequence} code, its initial
    eligibility estimate and the 'creation' timeline event, in one commit.

    Two intakes racing for the same sequence collide on the unique claim_code
    index; the loser rolls back and retries with the next sequence.
    """
    year = year or datetime.utcnow().year
    values = claim_in.model_dump()
    estimate = eligibility_service.compute_eligibility(
        claim_in.issue_type, claim_in.delay_hours, eligibility_service.get_conversion_rate(db)
    )

    for attempt in range(settings.CLAIM_CODE_MAX_ATTEMPTS):
        claim_code = claim_code_service.next_claim_code(db, year, offset=attempt)
        try:
            new_claim = crud_claim.add_claim(db, {
                **values,
                "claim_code": claim_code,
                "status": ClaimStatus.new,
                "eligibility_status": estimate.status,
                "estimated_sdr_amount": estimate.sdr_amount,
                "estimated_local_amount": estimate.local_amount,
            })
        except IntegrityError:
            db.rollback()
            logger.warning(f"Claim code {claim_code} already taken (attempt {attempt + 1}). Retrying.")
            continue

        crud_timeline.add_event(db, new_claim.id, "creation", "Claim created successfully.")
        db.commit()
        db.refresh(new_claim)
        logger.info(f"Created claim {new_claim.claim_code} ({new_claim.category.value}/{new_claim.issue_type}).")
        return new_claim

    raise exceptions.Conflict(
        f"Could not allocate a unique claim code after {settings.CLAIM_CODE_MAX_ATTEMPTS} attempts."
    )

# --- Reads ---

def get_claim_or_404(db: Session, claim_id: int) -> models.Claim:
    claim = crud_claim.get_claim(db, claim_id)
    if not claim:
        raise exceptions.NotFound(f"Claim {claim_id} not found.")
    return claim

def list_claims(
    db: Session,
    status: Optional[str] = None,
    category: Optional[str] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Claim]:
    status_filter = lifecycle_service.parse_status(status) if status else None
    category_filter = None
    if category:
        try:
            category_filter = ClaimCategory(category)
        except ValueError:
            raise exceptions.ValidationError(f"Unknown claim category '{category}'.")
    return crud_claim.get_claims(db, status=status_filter, category=category_filter, search=search, skip=skip, limit=limit)

def get_claim_detail(db: Session, claim_id: int) -> schemas.ClaimDetail:
    claim = crud_claim.get_claim_detail(db, claim_id)
    if not claim:
        raise exceptions.NotFound(f"Claim {claim_id} not found.")
    detail = schemas.ClaimDetail.model_validate(claim)
    detail.timeline_events = sorted(detail.timeline_events, key=lambda e: e.id, reverse=True)
    detail.estimate = eligibility_service.estimate_for_claim(db, claim)
    detail.allowed_transitions = lifecycle_service.allowed_transitions(claim.status)
    return detail

# --- Staff edits ---

# Columns that are NOT NULL on claims; a partial edit may change them but never clear them
REQUIRED_CLAIM_FIELDS = (
    "issue_type", "company_name", "reference_number", "incident_date", "description", "customer_name",
)


def _cleared_required_fields(update_data: dict) -> List[str]:
    cleared = []
    for field in REQUIRED_CLAIM_FIELDS:
        if field not in update_data:
            continue
        value = update_data[field]
        if value is None or (isinstance(value, str) and not value.strip()):
            cleared.append(field)
    return cleared


def update_claim(db: Session, claim_id: int, claim_in: schemas.ClaimUpdate) -> models.Claim:
    """
    Applies a partial edit. A status in the payload goes through the state
    machine in the same commit as the field changes, and any field change
    is logged as one 'note' event naming the edited fields.
    """
    claim = get_claim_or_404(db, claim_id)
    update_data = claim_in.model_dump(exclude_unset=True)
    new_status = update_data.pop("status", None)

    cleared = _cleared_required_fields(update_data)
    if cleared:
        raise exceptions.ValidationError(
            f"These claim fields cannot be empty: {', '.join(cleared)}.", {"fields": cleared}
        )
    issue_type = update_data.get("issue_type")
    if issue_type is not None and issue_type not in ISSUE_TYPES_BY_CATEGORY[claim.category]:
        raise exceptions.ValidationError(
            f"issue_type '{issue_type}' is not valid for {claim.category.value} claims."
        )
    target = lifecycle_service.parse_status(new_status) if new_status else None
    changed = sorted(field for field, value in update_data.items() if getattr(claim, field) != value)

    try:
        if changed:
            update_data["updated_at"] = datetime.utcnow()
            crud_claim.apply_claim_fields(db, claim, update_data)
            message = f"Claim details updated: {', '.join(changed)}."
            if not lifecycle_service.is_terminal(claim.status) and (
                "issue_type" in changed or "delay_hours" in changed
            ):
                estimate = eligibility_service.estimate_for_claim(db, claim)
                eligibility_service.store_estimate(claim, estimate)
                message += f" Estimate is now {estimate.status}, {estimate.sdr_amount} SDR."
            crud_timeline.add_event(db, claim.id, "note", message)
        if target is not None and target != claim.status:
            lifecycle_service.apply_transition(db, claim, target)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(claim)
    return claim

# --- Attachments ---

def add_attachment(db: Session, claim_id: int, file_name: str, content: bytes, mime_type: str, store: BlobStore) -> models.Attachment:
    claim = get_claim_or_404(db, claim_id)
    if not content:
        raise exceptions.ValidationError("Uploaded file is empty.")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise exceptions.ValidationError("Uploaded file exceeds the size limit.")

    reference = store.store(file_name, content)
    attachment = crud_claim.add_attachment(db, claim.id, file_name, reference, mime_type)
    db.commit()
    db.refresh(attachment)
    logger.info(f"Stored attachment '{file_name}' for claim {claim.claim_code}.")
    return attachment

# --- Communications ---

def record_communication(db: Session, claim_id: int, comm_in: schemas.CommunicationCreate) -> models.Communication:
    claim = get_claim_or_404(db, claim_id)
    values = comm_in.model_dump()
    if values.get("sent_at") is None:
        values["sent_at"] = datetime.utcnow()
    communication = crud_claim.add_communication(db, claim.id, values)
    crud_timeline.add_event(
        db, claim.id, "communication",
        f"Contacted {claim.company_name} by {comm_in.method} ({comm_in.recipient}).",
    )
    db.commit()
    db.refresh(communication)
    return communication

def record_company_response(db: Session, claim_id: int, communication_id: int, response_text: str) -> models.Communication:
    claim = get_claim_or_404(db, claim_id)
    communication = crud_claim.get_communication(db, claim.id, communication_id)
    if not communication:
        raise exceptions.NotFound(f"Communication {communication_id} not found for claim {claim_id}.")
    communication.company_response = response_text
    db.add(communication)
    crud_timeline.add_event(db, claim.id, "company_response", f"{claim.company_name} responded via {communication.method}.")
    db.commit()
    db.refresh(communication)
    return communication
