from sqlalchemy.orm import Session
from typing import Optional

from sanad import models

def get_settlement(db: Session, claim_id: int) -> Optional[models.Settlement]:
    return db.query(models.Settlement).filter(models.Settlement.claim_id == claim_id).first()

def add_settlement(db: Session, claim_id: int, compensation_type: str, compensation_amount: int,
                   fee_percent: int, user_net: int) -> models.Settlement:
    """
    Stages the settlement row and flushes so the unique constraint on claim_id
    fires inside the caller's transaction.
    """
    settlement = models.Settlement(
        claim_id=claim_id,
        compensation_type=compensation_type,
        compensation_amount=compensation_amount,
        fee_percent=fee_percent,
        user_net=user_net,
    )
    db.add(settlement)
    db.flush()
    return settlement
