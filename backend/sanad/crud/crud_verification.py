import logging
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional

from sanad import models

logger = logging.getLogger(__name__)

# --- Flight verification ---

def get_flight_verification(db: Session, claim_id: int) -> Optional[models.FlightVerification]:
    return db.query(models.FlightVerification).filter(models.FlightVerification.claim_id == claim_id).first()

def upsert_flight_verification(db: Session, claim_id: int, fields: Dict[str, Any]) -> models.FlightVerification:
    """
    Creates the claim's verification record or updates the existing one in place.
    Flushes only; the orchestrator decides when to commit.
    """
    record = get_flight_verification(db, claim_id)
    if record is None:
        record = models.FlightVerification(claim_id=claim_id)
        logger.info(f"Creating flight verification record for claim {claim_id}")
    for field, value in fields.items():
        setattr(record, field, value)
    db.add(record)
    db.flush()
    return record

# --- AI output ---

def get_ai_output(db: Session, claim_id: int) -> Optional[models.AiOutput]:
    return db.query(models.AiOutput).filter(models.AiOutput.claim_id == claim_id).first()

def upsert_ai_output(db: Session, claim_id: int, fields: Dict[str, Any]) -> models.AiOutput:
    output = get_ai_output(db, claim_id)
    if output is None:
        output = models.AiOutput(claim_id=claim_id)
    for field, value in fields.items():
        setattr(output, field, value)
    db.add(output)
    db.flush()
    return output
