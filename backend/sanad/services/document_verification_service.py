import logging
from typing import Any, Dict

from sanad.schemas.verification import DocumentVerificationResult
from sanad.services import llm_service

logger = logging.getLogger(__name__)

DOCUMENT_TYPES = {"boarding_pass", "ticket", "receipt", "invoice", "id_document", "other", "unknown"}

DOCUMENT_VERIFICATION_PROMPT = """You are an expert in analyzing and verifying documents submitted with compensation claims.

Analyze the attached image and determine:
1. The document type: boarding_pass, ticket, receipt, invoice, id_document, other or unknown
2. Whether the document is relevant to a flight or delivery compensation claim
3. The data it contains
4. Notes on the document's authenticity and legibility
5. Any warnings (suspicious document, unclear data, etc.)

Return ONLY a JSON object:
{
  "document_type": "boarding_pass" | "ticket" | "receipt" | "invoice" | "id_document" | "other" | "unknown",
  "is_relevant": true/false,
  "extracted_fields": {
    "flight_number": "...", "airline": "...", "passenger_name": "...",
    "departure_airport": "...", "arrival_airport": "...", "date": "YYYY-MM-DD",
    "amount": "...", "currency": "...", "order_number": "...", "company_name": "..."
  },
  "notes": "notes about the document",
  "confidence": 0-100,
  "warnings": ["..."]
}

If you cannot read the document, return confidence 0 and document_type "unknown"."""

# The model does not always keep to the requested key names
_KEY_SYNONYMS = {
    "document_type": ("document_type", "documentType", "type"),
    "is_relevant": ("is_relevant", "isRelevant", "isRelevantToClaim", "is_relevant_to_claim"),
    "extracted_fields": ("extracted_fields", "extractedFields", "extractedData", "extracted_data"),
    "notes": ("notes", "verification_notes", "verificationNotes"),
    "confidence": ("confidence",),
    "warnings": ("warnings",),
}


def unreadable_result(note: str) -> DocumentVerificationResult:
    return DocumentVerificationResult(
        document_type="unknown", is_relevant=False, extracted_fields={},
        notes=note, confidence=0, warnings=["Data extraction failed"],
    )


def _as_relevance_flag(value: Any) -> bool:
    """Only a real boolean or the words true/false count; anything else is not relevant."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return False


def normalize_document_reply(parsed: Dict[str, Any]) -> DocumentVerificationResult:
    values: Dict[str, Any] = {}
    for field, keys in _KEY_SYNONYMS.items():
        for key in keys:
            if key in parsed and parsed[key] is not None:
                values[field] = parsed[key]
                break

    document_type = str(values.get("document_type", "unknown")).strip().lower()
    fields = values.get("extracted_fields")
    warnings = values.get("warnings")
    return DocumentVerificationResult(
        document_type=document_type if document_type in DOCUMENT_TYPES else "unknown",
        is_relevant=_as_relevance_flag(values.get("is_relevant")),
        extracted_fields={k: v for k, v in fields.items() if v not in (None, "")} if isinstance(fields, dict) else {},
        notes=str(values.get("notes") or ""),
        confidence=values.get("confidence", 0),
        warnings=[str(w) for w in warnings] if isinstance(warnings, list) else [],
    )


async def classify_document(image_bytes: bytes, mime_type: str) -> DocumentVerificationResult:
    """
    Classifies one document image. Raises ExternalCapabilityError on call
    failure; an unparseable reply becomes the unreadable placeholder.
    """
    logger.info("Document check: classifying document.")
    content = await llm_service.call_vision(
        DOCUMENT_VERIFICATION_PROMPT, image_bytes, mime_type, capability="document_classification", max_tokens=1500
    )
    parsed = llm_service.extract_json_object(content)
    if parsed is None:
        return unreadable_result("The document could not be analyzed.")
    return normalize_document_reply(parsed)
