import logging
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload
from typing import Any, Dict, List, Optional

from sanad import models

logger = logging.getLogger(__name__)

# --- GET Functions ---

def get_claim(db: Session, claim_id: int) -> Optional[models.Claim]:
    return db.query(models.Claim).filter(models.Claim.id == claim_id).first()

def get_claim_detail(db: Session, claim_id: int) -> Optional[models.Claim]:
    """
    Retrieves a single claim with every sub-entity eagerly loaded for the admin view.
    """
    return db.query(models.Claim).options(
        joinedload(models.Claim.attachments),
        joinedload(models.Claim.timeline_events),
        joinedload(models.Claim.communications),
        joinedload(models.Claim.settlement),
        joinedload(models.Claim.flight_verification),
        joinedload(models.Claim.ai_output),
    ).filter(models.Claim.id == claim_id).first()

def get_claim_by_code(db: Session, claim_code: str) -> Optional[models.Claim]:
    return db.query(models.Claim).filter(models.Claim.claim_code == claim_code).first()

def get_claims(
    db: Session,
    status: Optional[models.ClaimStatus] = None,
    category: Optional[models.ClaimCategory] = None,
    search: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[models.Claim]:
    """
    Lists claims newest first, optionally filtered by status, category and a
    case-insensitive search over code, customer name, phone and company.
    """
    query = db.query(models.Claim)
    if status is not None:
        query = query.filter(models.Claim.status == status)
    if category is not None:
        query = query.filter(models.Claim.category == category)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            models.Claim.claim_code.ilike(pattern),
            models.Claim.customer_name.ilike(pattern),
            models.Claim.customer_phone.ilike(pattern),
            models.Claim.company_name.ilike(pattern),
        ))
    return query.order_by(models.Claim.id.desc()).offset(skip).limit(limit).all()

def get_claims_by_phone(db: Session, phone: str) -> List[models.Claim]:
    return db.query(models.Claim).filter(
        models.Claim.customer_phone == phone
    ).order_by(models.Claim.id.desc()).all()

def get_last_claim_id(db: Session) -> int:
    """The highest internal ID issued so far, 0 for an empty table."""
    return db.query(func.max(models.Claim.id)).scalar() or 0

# --- CREATE / UPDATE Functions ---

def add_claim(db: Session, values: Dict[str, Any]) -> models.Claim:
    """
    Stages a new claim and flushes it, so a duplicate claim_code surfaces as an
    IntegrityError here. The caller owns the transaction.
    """
    new_claim = models.Claim(**values)
    db.add(new_claim)
    db.flush()
    return new_claim

def apply_claim_fields(db: Session, claim: models.Claim, update_data: Dict[str, Any]) -> models.Claim:
    for field, value in update_data.items():
        setattr(claim, field, value)
    db.add(claim)
    db.flush()
    return claim

# --- Attachments ---

def add_attachment(db: Session, claim_id: int, file_name: str, file_path: str, mime_type: str) -> models.Attachment:
    attachment = models.Attachment(
        claim_id=claim_id, file_name=file_name, file_path=file_path, mime_type=mime_type
    )
    db.add(attachment)
    db.flush()
    return attachment

def get_attachments(db: Session, claim_id: int) -> List[models.Attachment]:
    return db.query(models.Attachment).filter(models.Attachment.claim_id == claim_id).order_by(models.Attachment.id).all()

def get_attachments_by_ids(db: Session, claim_id: int, attachment_ids: List[int]) -> List[models.Attachment]:
    return db.query(models.Attachment).filter(
        models.Attachment.claim_id == claim_id,
        models.Attachment.id.in_(attachment_ids),
    ).order_by(models.Attachment.id).all()

# --- Communications ---

def add_communication(db: Session, claim_id: int, values: Dict[str, Any]) -> models.Communication:
    communication = models.Communication(claim_id=claim_id, **values)
    db.add(communication)
    db.flush()
    return communication

def get_communication(db: Session, claim_id: int, communication_id: int) -> Optional[models.Communication]:
    return db.query(models.Communication).filter(
        models.Communication.claim_id == claim_id,
        models.Communication.id == communication_id,
    ).first()

def get_communications(db: Session, claim_id: int) -> List[models.Communication]:
    return db.query(models.Communication).filter(
        models.Communication.claim_id == claim_id
    ).order_by(models.Communication.id.desc()).all()
