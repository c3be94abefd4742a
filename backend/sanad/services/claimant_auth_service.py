"""
Claimant self-service access.

Claimants have no accounts: knowing a claim code plus the phone number it was
filed with is treated as proof of ownership. This is a weak second factor and
all of it lives here, so it can be hardened without touching claim logic.
"""
import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from sanad import models, schemas
from sanad.core import exceptions
from sanad.crud import crud_claim, crud_timeline
from sanad.services import eligibility_service
from sanad.utils.phone import digit_count, normalize_phone

logger = logging.getLogger(__name__)

MIN_HISTORY_PHONE_DIGITS = 10


def _owns(claim: Optional[models.Claim], phone: str) -> bool:
    return claim is not None and claim.customer_phone == normalize_phone(phone)


def authorize_claim_access(db: Session, claim_code: str, phone: str) -> models.Claim:
    """Returns the claim only when the phone matches; a wrong code and a wrong phone look the same."""
    claim = crud_claim.get_claim_by_code(db, (claim_code or "").strip().upper())
    if not _owns(claim, phone or ""):
        logger.info(f"Claimant access denied for claim code '{claim_code}'")
        raise exceptions.NotFound("No claim matches these details.")
    return claim


def authorize_history_access(db: Session, phone: str, verify_claim_code: Optional[str]) -> List[models.Claim]:
    if digit_count(phone) < MIN_HISTORY_PHONE_DIGITS:
        raise exceptions.ValidationError("Invalid phone number.")
    if not verify_claim_code:
        raise exceptions.Unauthorized("A claim code is required to verify your identity.")

    verify_claim = crud_claim.get_claim_by_code(db, verify_claim_code.strip().upper())
    if not _owns(verify_claim, phone):
        logger.info("Claimant history access denied: claim code does not belong to phone")
        raise exceptions.AccessDenied("Verification details are incorrect.")
    return crud_claim.get_claims_by_phone(db, normalize_phone(phone))


def track_claim(db: Session, claim_code: str, phone: str) -> schemas.TrackClaimResponse:
    claim = authorize_claim_access(db, claim_code, phone)
    timeline = crud_timeline.get_timeline_events(db, claim.id, newest_first=True)
    return schemas.TrackClaimResponse(
        claim=schemas.PublicClaim.model_validate(claim),
        estimate=eligibility_service.estimate_for_claim(db, claim),
        timeline=[schemas.TimelineEvent.model_validate(event) for event in timeline],
    )
