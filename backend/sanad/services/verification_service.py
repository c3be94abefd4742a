"""
Flight claim verification: boarding pass OCR, flight status lookup and
document relevance checks.

The external capabilities are passed in as plain async callables so callers
(and tests) can swap them. Every capability call is bounded by
EXTERNAL_CALL_TIMEOUT_SECONDS and every attempt, failed or not, leaves a
'verification' event on the claim's timeline.
"""
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sanad import models, schemas
from sanad.core import exceptions
from sanad.core.config import settings
from sanad.crud import crud_claim, crud_timeline, crud_verification
from sanad.models.claim import ClaimCategory
from sanad.models.flight_verification import FlightStatus, VerificationStatus
from sanad.schemas.verification import BoardingPassData, DocumentVerificationResult, FlightStatusResult
from sanad.services import (
    claim_service,
    document_verification_service,
    eligibility_service,
    flight_status_service,
    lifecycle_service,
    ocr_service,
)
from sanad.utils.capability import call_with_timeout
from sanad.utils.file_handling import BlobStore, get_blob_store

logger = logging.getLogger(__name__)

ExtractFn = Callable[[bytes, str], Awaitable[BoardingPassData]]
LookupFn = Callable[[str, datetime, Optional[str]], Awaitable[FlightStatusResult]]
ClassifyFn = Callable[[bytes, str], Awaitable[DocumentVerificationResult]]


def _record_failure(db: Session, claim_id: int, message: str) -> None:
    """Best-effort audit entry for a failed attempt, written in its own commit."""
    try:
        crud_timeline.add_event(db, claim_id, "verification", message)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Could not record verification failure for claim {claim_id}: {e}", exc_info=True)


# --- Boarding pass OCR ---

async def upload_boarding_pass(
    db: Session,
    claim_id: int,
    file_name: str,
    content: bytes,
    mime_type: str,
    *,
    extract: Optional[ExtractFn] = None,
    store: Optional[BlobStore] = None,
) -> schemas.BoardingPassUploadResult:
    """
    Stores a boarding pass image, reads flight facts off it and upserts the
    claim's FlightVerification record (status back to 'pending').

    Runs as the sub-steps store, ocr, verification_record, attachment and
    timeline. If one fails, the database work is rolled back, a timeline event
    names the failed step and VerificationStepFailed is raised.
    """
    extract = extract or ocr_service.extract_boarding_pass_data
    store = store or get_blob_store()

    claim = claim_service.get_claim_or_404(db, claim_id)
    if claim.category != ClaimCategory.flight:
        raise exceptions.InvalidCategory(
            "Boarding pass verification is only available for flight claims.",
            {"claim_id": claim_id, "category": claim.category.value},
        )
    if not Path(file_name or "").name:
        raise exceptions.ValidationError("Filename cannot be empty.")
    if not content:
        raise exceptions.ValidationError("Uploaded file is empty.")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise exceptions.ValidationError("Uploaded file exceeds the size limit.")

    claim_code = claim.claim_code
    step = "store"
    try:
        reference = store.store(file_name, content)

        step = "ocr"
        ocr_data = await call_with_timeout("ocr", extract(content, mime_type))

        step = "verification_record"
        verification = crud_verification.upsert_flight_verification(db, claim_id, {
            "flight_number": ocr_data.flight_number,
            "airline": ocr_data.airline,
            "departure_airport": ocr_data.departure_airport,
            "arrival_airport": ocr_data.arrival_airport,
            "scheduled_departure": ocr_data.scheduled_departure,
            "passenger_name": ocr_data.passenger_name,
            "ocr_confidence": ocr_data.confidence,
            "boarding_pass_path": reference,
            "verification_status": VerificationStatus.pending,
            # A new boarding pass invalidates any earlier flight status check
            "flight_status": None,
            "actual_departure": None,
            "delay_minutes": None,
            "verification_source": None,
            "verification_raw_data": None,
            "verified_at": None,
        })

        step = "attachment"
        attachment = crud_claim.add_attachment(db, claim_id, file_name, reference, mime_type)

        step = "timeline"
        if ocr_data.flight_number:
            message = f"Boarding pass read: flight {ocr_data.flight_number} (confidence {ocr_data.confidence}%)."
        else:
            message = "Boarding pass uploaded, but no flight number could be read."
        crud_timeline.add_event(db, claim_id, "verification", message)
        db.commit()
    except (exceptions.ExternalCapabilityError, SQLAlchemyError) as e:
        db.rollback()
        error = e.message if isinstance(e, exceptions.SanadError) else str(e)
        logger.error(f"Boarding pass processing failed for claim {claim_code} at step '{step}': {error}")
        _record_failure(db, claim_id, f"Boarding pass processing failed at step '{step}'.")
        raise exceptions.VerificationStepFailed(
            step, f"Boarding pass processing failed at step '{step}'.", {"claim_id": claim_id, "error": error}
        )

    db.refresh(verification)
    logger.info(f"Boarding pass processed for claim {claim_code}: flight {ocr_data.flight_number}")
    return schemas.BoardingPassUploadResult(
        verification=schemas.FlightVerification.model_validate(verification),
        ocr_data=ocr_data,
        attachment_id=attachment.id,
    )


# --- Flight status ---

def describe_flight_result(flight_number: str, result: FlightStatusResult) -> str:
    if result.flight_status == FlightStatus.delayed and result.delay_minutes:
        return f"Verified: flight {flight_number} was delayed {result.delay_minutes} minutes."
    if result.flight_status == FlightStatus.cancelled:
        return f"Verified: flight {flight_number} was cancelled."
    if result.flight_status == FlightStatus.diverted:
        return f"Verified: flight {flight_number} was diverted."
    if result.flight_status == FlightStatus.on_time:
        return f"Verified: flight {flight_number} departed on time."
    return f"Could not verify the status of flight {flight_number}."


async def verify_flight_status(
    db: Session,
    claim_id: int,
    *,
    lookup: Optional[LookupFn] = None,
) -> schemas.FlightCheckResult:
    """
    Checks the boarding pass flight against the flight status provider.

    Provider failures never escape: they are stored as an 'unknown' result with
    verification status 'error'. A measured delay on an open delay claim
    becomes its delay_hours and the estimate is recomputed.
    """
    lookup = lookup or flight_status_service.lookup_flight_status

    claim = claim_service.get_claim_or_404(db, claim_id)
    record = crud_verification.get_flight_verification(db, claim_id)
    if record is None:
        raise exceptions.MissingPrerequisite(
            "Upload a boarding pass first.", {"claim_id": claim_id}
        )
    if not record.flight_number or not record.scheduled_departure:
        raise exceptions.MissingPrerequisite(
            "Flight number and scheduled departure are required. Upload a clearer boarding pass.",
            {"claim_id": claim_id},
        )

    flight_number = record.flight_number
    try:
        result = await call_with_timeout(
            "flight_status", lookup(flight_number, record.scheduled_departure, record.departure_airport)
        )
    except exceptions.ExternalCapabilityError as e:
        result = FlightStatusResult(
            flight_status=FlightStatus.unknown, source="unavailable", raw_payload={"error": e.message}
        )

    payload = result.model_dump(mode="json")["raw_payload"]
    verified = result.flight_status != FlightStatus.unknown
    try:
        verification = crud_verification.upsert_flight_verification(db, claim_id, {
            "flight_status": result.flight_status,
            "actual_departure": result.actual_departure,
            "delay_minutes": result.delay_minutes,
            "verification_source": result.source,
            "verification_raw_data": payload,
            "verification_status": VerificationStatus.verified if verified else VerificationStatus.error,
            "verified_at": datetime.utcnow(),
        })

        if (
            claim.issue_type == "delay"
            and not lifecycle_service.is_terminal(claim.status)
            and result.delay_minutes is not None
            and result.flight_status in (FlightStatus.delayed, FlightStatus.on_time)
        ):
            claim.delay_hours = round(max(result.delay_minutes, 0) / 60, 2)
            claim.updated_at = datetime.utcnow()
            eligibility_service.store_estimate(claim, eligibility_service.estimate_for_claim(db, claim))
            db.add(claim)

        crud_timeline.add_event(db, claim_id, "verification", describe_flight_result(flight_number, result))
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to persist flight status for claim {claim_id}", exc_info=True)
        raise

    db.refresh(verification)
    db.refresh(claim)
    logger.info(f"Flight {flight_number} for claim {claim.claim_code}: {result.flight_status.value} ({result.source})")
    return schemas.FlightCheckResult(
        verification=schemas.FlightVerification.model_validate(verification),
        flight_result=result,
        estimate=eligibility_service.estimate_for_claim(db, claim),
    )


def get_flight_verification(db: Session, claim_id: int) -> Optional[models.FlightVerification]:
    claim_service.get_claim_or_404(db, claim_id)
    return crud_verification.get_flight_verification(db, claim_id)


# --- Document relevance ---

async def verify_documents(
    db: Session,
    claim_id: int,
    attachment_ids: List[int],
    *,
    classify: Optional[ClassifyFn] = None,
    store: Optional[BlobStore] = None,
) -> List[schemas.DocumentCheckOutcome]:
    """
    Classifies each attachment in turn. A document that cannot be read or
    classified gets the 'unknown', confidence-0 placeholder and the batch
    carries on.
    """
    classify = classify or document_verification_service.classify_document
    store = store or get_blob_store()

    claim = claim_service.get_claim_or_404(db, claim_id)
    requested = list(dict.fromkeys(attachment_ids))
    attachments = crud_claim.get_attachments_by_ids(db, claim_id, requested)
    found = {attachment.id: attachment for attachment in attachments}
    missing = [attachment_id for attachment_id in requested if attachment_id not in found]
    if missing:
        raise exceptions.NotFound(
            f"Attachments not found for claim {claim_id}.", {"attachment_ids": missing}
        )

    outcomes: List[schemas.DocumentCheckOutcome] = []
    for attachment_id in requested:
        attachment = found[attachment_id]
        try:
            content = store.resolve(attachment.file_path)
            result = await call_with_timeout(
                "document_classification", classify(content, attachment.mime_type or "image/jpeg")
            )
            outcomes.append(schemas.DocumentCheckOutcome(
                attachment_id=attachment.id, file_name=attachment.file_name, succeeded=True, result=result,
            ))
        except exceptions.ExternalCapabilityError as e:
            logger.warning(f"Document check failed for attachment {attachment.id} on claim {claim.claim_code}: {e.message}")
            outcomes.append(schemas.DocumentCheckOutcome(
                attachment_id=attachment.id,
                file_name=attachment.file_name,
                succeeded=False,
                error=e.message,
                result=document_verification_service.unreadable_result(
                    f"Error processing file: {attachment.file_name}"
                ),
            ))

    succeeded = sum(1 for outcome in outcomes if outcome.succeeded)
    relevant = sum(1 for outcome in outcomes if outcome.succeeded and outcome.result.is_relevant)
    message = f"Document check: {succeeded} of {len(outcomes)} analyzed, {relevant} relevant to the claim."
    try:
        crud_timeline.add_event(db, claim_id, "verification", message)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to record document check for claim {claim_id}", exc_info=True)
        raise
    return outcomes
