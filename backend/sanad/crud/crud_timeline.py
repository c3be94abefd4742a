import logging
from sqlalchemy.orm import Session
from typing import List

from sanad import models, schemas

logger = logging.getLogger(__name__)

# The timeline is append-only: there is intentionally no update or delete here.

def add_event(db: Session, claim_id: int, event_type: str, message: str) -> models.TimelineEvent:
    """
    Stages a timeline event in the current transaction and flushes it.
    The caller commits, together with the state change the event documents.
    """
    event = models.TimelineEvent(claim_id=claim_id, event_type=event_type, message=message)
    db.add(event)
    db.flush()
    logger.info(f"Timeline [{event_type}] claim {claim_id}: {message}")
    return event

def create_timeline_event(db: Session, claim_id: int, event_in: schemas.TimelineEventCreate) -> models.TimelineEvent:
    """
    Records a staff-authored note or information request.
    """
    event = add_event(db, claim_id, event_in.event_type, event_in.message)
    db.commit()
    db.refresh(event)
    return event

def get_timeline_events(db: Session, claim_id: int, newest_first: bool = True) -> List[models.TimelineEvent]:
    order = models.TimelineEvent.id.desc() if newest_first else models.TimelineEvent.id.asc()
    return db.query(models.TimelineEvent).filter(models.TimelineEvent.claim_id == claim_id).order_by(order).all()

def count_events(db: Session, claim_id: int) -> int:
    return db.query(models.TimelineEvent).filter(models.TimelineEvent.claim_id == claim_id).count()
