"""
Claim status state machine and settlement closing.

Every accepted transition persists the new status and writes exactly one
timeline event in the same commit. Settlement is the one-way exit: it forces
the resolved status from wherever the claim is.
"""
import logging
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from sanad import models, schemas
from sanad.core import exceptions
from sanad.crud import crud_claim, crud_settlement, crud_timeline
from sanad.models.claim import ClaimStatus
from sanad.services import eligibility_service

logger = logging.getLogger(__name__)

TERMINAL_STATUSES: FrozenSet[ClaimStatus] = frozenset({ClaimStatus.resolved, ClaimStatus.rejected})

TRANSITIONS: Dict[ClaimStatus, FrozenSet[ClaimStatus]] = {
    ClaimStatus.new: frozenset({
        ClaimStatus.in_review, ClaimStatus.processing, ClaimStatus.need_info, ClaimStatus.rejected,
    }),
    ClaimStatus.in_review: frozenset({
        ClaimStatus.need_info, ClaimStatus.processing, ClaimStatus.submitted,
        ClaimStatus.approved, ClaimStatus.rejected,
    }),
    ClaimStatus.processing: frozenset({
        ClaimStatus.in_review, ClaimStatus.need_info, ClaimStatus.submitted, ClaimStatus.rejected,
    }),
    ClaimStatus.need_info: frozenset({
        ClaimStatus.in_review, ClaimStatus.processing, ClaimStatus.rejected,
    }),
    ClaimStatus.submitted: frozenset({
        ClaimStatus.waiting_response, ClaimStatus.approved, ClaimStatus.rejected,
    }),
    ClaimStatus.waiting_response: frozenset({
        ClaimStatus.need_info, ClaimStatus.submitted, ClaimStatus.approved, ClaimStatus.rejected,
    }),
    ClaimStatus.approved: frozenset({ClaimStatus.resolved}),
    ClaimStatus.resolved: frozenset(),
    ClaimStatus.rejected: frozenset(),
}

# Older screens used "settled" for the closed state
STATUS_ALIASES = {"settled": ClaimStatus.resolved}


def parse_status(value) -> ClaimStatus:
    if isinstance(value, ClaimStatus):
        return value
    key = (value or "").strip().lower()
    if key in STATUS_ALIASES:
        return STATUS_ALIASES[key]
    try:
        return ClaimStatus(key)
    except ValueError:
        raise exceptions.ValidationError(
            f"Unknown claim status '{value}'.",
            {"allowed": [s.value for s in ClaimStatus]},
        )


def is_terminal(status: ClaimStatus) -> bool:
    return status in TERMINAL_STATUSES


def can_transition(current: ClaimStatus, target: ClaimStatus) -> bool:
    return target in TRANSITIONS[current]


def allowed_transitions(current: ClaimStatus) -> List[ClaimStatus]:
    return sorted(TRANSITIONS[current], key=lambda s: s.value)


def apply_transition(db: Session, claim: models.Claim, target: ClaimStatus, note: Optional[str] = None) -> models.TimelineEvent:
    """
    Validates and stages a transition plus its audit event without committing.
    """
    current = claim.status
    if not can_transition(current, target):
        raise exceptions.InvalidTransition(
            f"Cannot move claim {claim.claim_code} from '{current.value}' to '{target.value}'.",
            {"from": current.value, "to": target.value,
             "allowed": [s.value for s in allowed_transitions(current)]},
        )

    now = datetime.utcnow()
    update_data = {"status": target, "updated_at": now}
    if target == ClaimStatus.submitted and claim.submitted_at is None:
        update_data["submitted_at"] = now
    crud_claim.apply_claim_fields(db, claim, update_data)

    if is_terminal(target):
        eligibility_service.freeze_estimate(db, claim)

    message = f"Status changed: {current.value} -> {target.value}"
    if note:
        message = f"{message}. {note}"
    return crud_timeline.add_event(db, claim.id, "status_change", message)


def change_status(db: Session, claim_id: int, new_status, note: Optional[str] = None) -> models.Claim:
    claim = crud_claim.get_claim(db, claim_id)
    if not claim:
        raise exceptions.NotFound(f"Claim {claim_id} not found.")
    target = parse_status(new_status)
    previous = claim.status

    try:
        apply_transition(db, claim, target, note)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(claim)
    logger.info(f"Claim {claim.claim_code} moved from {previous.value} to {target.value}.")
    return claim


def compute_user_net(compensation_amount: int, fee_percent: int) -> int:
    fee = (compensation_amount * fee_percent + 50) // 100
    return compensation_amount - fee


def create_settlement(db: Session, claim_id: int, settlement_in: schemas.SettlementCreate) -> models.Settlement:
    """
    Closes a claim with its financial outcome. One settlement per claim; the
    claim is forced into the resolved status regardless of where it was.
    """
    claim = crud_claim.get_claim(db, claim_id)
    if not claim:
        raise exceptions.NotFound(f"Claim {claim_id} not found.")
    if crud_settlement.get_settlement(db, claim_id):
        raise exceptions.Conflict(f"Claim {claim.claim_code} is already settled.")

    user_net = settlement_in.user_net
    if user_net is None:
        user_net = compute_user_net(settlement_in.compensation_amount, settlement_in.fee_percent)
    if user_net > settlement_in.compensation_amount:
        raise exceptions.ValidationError("Net amount paid to the user cannot exceed the compensation amount.")

    previous = claim.status
    claim_code = claim.claim_code
    try:
        settlement = crud_settlement.add_settlement(
            db,
            claim_id=claim.id,
            compensation_type=settlement_in.compensation_type,
            compensation_amount=settlement_in.compensation_amount,
            fee_percent=settlement_in.fee_percent,
            user_net=user_net,
        )
        crud_claim.apply_claim_fields(db, claim, {"status": ClaimStatus.resolved, "updated_at": datetime.utcnow()})
        eligibility_service.freeze_estimate(db, claim)
        crud_timeline.add_event(
            db, claim.id, "settlement",
            f"Claim settled and closed ({settlement_in.compensation_type}, "
            f"amount {settlement_in.compensation_amount}, net {user_net}). "
            f"Status: {previous.value} -> {ClaimStatus.resolved.value}",
        )
        db.commit()
    except IntegrityError:
        # Lost a race with a concurrent settlement for the same claim
        db.rollback()
        raise exceptions.Conflict(f"Claim {claim_code} is already settled.")
    except Exception:
        db.rollback()
        raise

    db.refresh(settlement)
    logger.info(f"Claim {claim_code} settled; status forced from {previous.value} to resolved.")
    return settlement
