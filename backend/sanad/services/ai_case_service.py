import hashlib
import json
import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from sanad import schemas
from sanad.core import exceptions
from sanad.crud import crud_timeline, crud_verification
from sanad.services import claim_service, llm_service
from sanad.utils.capability import call_with_timeout

logger = logging.getLogger(__name__)

AnalyzeFn = Callable[[str, Dict[str, Any]], Awaitable[Dict[str, Any]]]

CANONICAL_FIELDS = ("summary", "case_strength", "eligibility_reasoning", "claim_draft", "next_action")

# Spellings the model has been seen to use for each canonical field
FIELD_SYNONYMS = {
    "summary": ("ai_summary", "summary"),
    "case_strength": ("ai_case_strength", "case_strength", "caseStrength"),
    "eligibility_reasoning": ("ai_eligibility_reasoning", "eligibility_reasoning", "eligibilityReasoning"),
    "claim_draft": ("ai_claim_draft", "claim_draft", "claimDraft"),
    "next_action": ("ai_next_action", "next_action", "nextAction"),
}

# Fields each mode is responsible for; everything else keeps its stored value
MODE_FIELDS = {
    "analyze": ("summary", "case_strength", "eligibility_reasoning", "next_action"),
    "draft": ("claim_draft", "next_action"),
    "followup": ("summary", "claim_draft", "next_action"),
}

MODE_LABELS = {
    "analyze": "case analysis",
    "draft": "claim draft",
    "followup": "follow-up / escalation",
}

CASE_STRENGTHS = {
    "strong": "strong", "قوية": "strong", "قوي": "strong",
    "medium": "medium", "moderate": "medium", "متوسطة": "medium", "متوسط": "medium",
    "weak": "weak", "ضعيفة": "weak", "ضعيف": "weak",
}


def _as_text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False)


def normalize_case_strength(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    return CASE_STRENGTHS.get(value.strip().lower())


def normalize_case_output(raw: Dict[str, Any]) -> schemas.CaseAnalysisFields:
    """Maps whatever key spellings the model used onto the canonical field set."""
    values: Dict[str, Any] = {}
    for field, keys in FIELD_SYNONYMS.items():
        values[field] = next((raw[key] for key in keys if raw.get(key) not in (None, "")), None)

    return schemas.CaseAnalysisFields(
        summary=_as_text(values["summary"]),
        case_strength=normalize_case_strength(values["case_strength"]),
        eligibility_reasoning=_as_text(values["eligibility_reasoning"]),
        claim_draft=_as_text(values["claim_draft"]),
        next_action=_as_text(values["next_action"]),
    )


def compute_input_hash(
    claim_data: Dict[str, Any],
    evidence_text: str,
    airline_response_text: Optional[str],
    mode: str,
) -> str:
    """SHA-256 over the canonical JSON of everything the agent sees."""
    canonical = json.dumps(
        {
            "claim_data": claim_data,
            "evidence_text": evidence_text or "",
            "airline_response_text": airline_response_text,
            "mode": mode,
        },
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _stored_fields(output) -> Dict[str, Any]:
    return {field: getattr(output, field) for field in CANONICAL_FIELDS}


async def run_case_agent(
    db: Session,
    request: schemas.AiCaseRequest,
    *,
    analyze: Optional[AnalyzeFn] = None,
) -> schemas.AiCaseResponse:
    """
    Runs the case agent for one claim, reusing the stored result when the
    exact same input was last run in the same mode.

    Two concurrent calls on one claim may both miss the cache; the later
    write wins, which is harmless since both ran on the same input.
    """
    analyze = analyze or llm_service.run_case_analysis

    claim = claim_service.get_claim_or_404(db, request.claim_id)
    claim_data = request.claim_data.model_dump(by_alias=True)
    input_hash = compute_input_hash(claim_data, request.evidence_text, request.airline_response_text, request.mode)

    existing = crud_verification.get_ai_output(db, claim.id)
    if existing is not None and existing.last_input_hash == input_hash and existing.last_mode == request.mode:
        logger.info(f"AI case agent cache hit for claim {claim.claim_code} ({request.mode}).")
        return schemas.AiCaseResponse(**_stored_fields(existing), mode=request.mode, cached=True)

    context = {
        "claim_data": claim_data,
        "evidence_text": request.evidence_text,
        "airline_response_text": request.airline_response_text,
    }
    label = MODE_LABELS[request.mode]
    try:
        raw = await call_with_timeout("ai", analyze(request.mode, context))
    except exceptions.ExternalCapabilityError as e:
        logger.error(f"AI case agent failed for claim {claim.claim_code} ({request.mode}): {e.message}")
        try:
            crud_timeline.add_event(db, claim.id, "ai_action", f"Sanad agent {label} failed: {e.message}")
            db.commit()
        except SQLAlchemyError:
            db.rollback()
            logger.error(f"Could not record AI failure for claim {claim.claim_code}", exc_info=True)
        raise exceptions.VerificationStepFailed(
            "ai", f"The AI agent could not complete the {label}.", {"claim_id": claim.id, "error": e.message}
        )

    normalized = normalize_case_output(raw)
    updates = {field: getattr(normalized, field) for field in MODE_FIELDS[request.mode]}
    updates.update({"last_input_hash": input_hash, "last_mode": request.mode})
    try:
        output = crud_verification.upsert_ai_output(db, claim.id, updates)
        crud_timeline.add_event(db, claim.id, "ai_action", f"Sanad agent generated a {label}.")
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Failed to store AI output for claim {claim.claim_code}", exc_info=True)
        raise

    db.refresh(output)
    return schemas.AiCaseResponse(**_stored_fields(output), mode=request.mode, cached=False)
