import logging

from pydantic import ValidationError as PydanticValidationError

from sanad.schemas.verification import BoardingPassData
from sanad.services import llm_service

logger = logging.getLogger(__name__)

OCR_PROMPT = """You are an expert at extracting flight information from boarding passes.

Analyze the provided boarding pass image and extract:
- Flight number (e.g., SV123, EK456, QR789)
- Airline name
- Departure airport IATA code
- Arrival airport IATA code
- Scheduled departure date and time
- Passenger name

Return ONLY a valid JSON object with this exact structure:
{
  "flight_number": "string or null",
  "airline": "string or null",
  "departure_airport": "IATA code (e.g., RUH) or null",
  "arrival_airport": "IATA code (e.g., LHR) or null",
  "scheduled_departure": "ISO 8601 datetime string or null",
  "passenger_name": "string or null",
  "confidence": 0-100
}

Set confidence by how clearly you could read the information:
- 90-100: all fields clearly visible
- 70-89: most fields visible, some inferred
- 50-69: some fields unclear or estimated
- below 50: many fields missing or unreadable

If the image is not a boarding pass, return every field as null and confidence 0."""


def parse_boarding_pass_reply(content: str) -> BoardingPassData:
    """Validates a model reply into BoardingPassData; anything unreadable becomes the empty shape."""
    parsed = llm_service.extract_json_object(content)
    if parsed is None:
        logger.warning("Boarding pass OCR reply contained no JSON object.")
        return BoardingPassData()

    cleaned = {key: (value or None) for key, value in parsed.items() if key != "confidence"}
    cleaned["confidence"] = parsed.get("confidence", 0)
    try:
        return BoardingPassData.model_validate(cleaned)
    except PydanticValidationError:
        # Usually an unparseable date; keep the rest of what was read
        cleaned["scheduled_departure"] = None
        try:
            return BoardingPassData.model_validate(cleaned)
        except PydanticValidationError as e:
            logger.warning(f"Boarding pass OCR reply failed validation: {e}")
            return BoardingPassData()


async def extract_boarding_pass_data(image_bytes: bytes, mime_type: str) -> BoardingPassData:
    """
    Reads flight facts off a boarding pass image. Raises ExternalCapabilityError
    when the model cannot be reached; an unrecognized image returns the
    all-null, confidence-0 result.
    """
    logger.info("OCR: extracting boarding pass data.")
    content = await llm_service.call_vision(OCR_PROMPT, image_bytes, mime_type, capability="ocr")
    return parse_boarding_pass_reply(content)
