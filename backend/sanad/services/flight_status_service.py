import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple, Union
from urllib.parse import urlparse

import httpx

from sanad.core.config import settings
from sanad.models.flight_verification import FlightStatus
from sanad.schemas.verification import FlightStatusResult

logger = logging.getLogger(__name__)

DELAY_THRESHOLD_MINUTES = 15
SOURCE_AERODATABOX = "aerodatabox"
SOURCE_MOCK = "mock"

# Scenarios served when no provider key is configured, chosen by flight number
MOCK_SCENARIOS = [
    (FlightStatus.delayed, 180),
    (FlightStatus.delayed, 45),
    (FlightStatus.on_time, 0),
    (FlightStatus.cancelled, None),
]


def parse_provider_time(value: Optional[str]) -> Optional[datetime]:
    """Parses AeroDataBox times like '2024-05-01 08:30Z' into naive UTC datetimes."""
    if not value:
        return None
    text = value.strip().replace("Z", "+00:00")
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        logger.warning(f"Could not parse provider time '{value}'")
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def map_flight_status(
    provider_status: Optional[str],
    scheduled: Optional[datetime],
    actual: Optional[datetime],
) -> Tuple[FlightStatus, Optional[int]]:
    """
    Maps the provider's status text and departure times to (status, delay_minutes).

    Precedence: a cancellation keyword wins, then a diversion keyword, then the
    actual-vs-scheduled delta (delayed above 15 minutes), then generic status
    text. Anything else is unknown.
    """
    delay_minutes = None
    if scheduled is not None and actual is not None:
        delay_minutes = round((actual - scheduled).total_seconds() / 60)

    status = (provider_status or "").lower()
    if "cancel" in status:
        return FlightStatus.cancelled, delay_minutes
    if "divert" in status:
        return FlightStatus.diverted, delay_minutes
    if delay_minutes is not None:
        flight_status = FlightStatus.delayed if delay_minutes > DELAY_THRESHOLD_MINUTES else FlightStatus.on_time
        return flight_status, delay_minutes
    if any(word in status for word in ("landed", "arrived", "scheduled", "departed")):
        return FlightStatus.on_time, None
    return FlightStatus.unknown, None


def _unknown(source: str, error: str) -> FlightStatusResult:
    return FlightStatusResult(flight_status=FlightStatus.unknown, source=source, raw_payload={"error": error})


def mock_flight_status(flight_number: str, scheduled: datetime) -> FlightStatusResult:
    """Deterministic stand-in for the provider: the same flight number always gets the same scenario."""
    flight_hash = sum(ord(char) for char in flight_number)
    status, delay = MOCK_SCENARIOS[flight_hash % len(MOCK_SCENARIOS)]
    actual = scheduled + timedelta(minutes=delay) if delay is not None else None
    return FlightStatusResult(
        flight_status=status,
        actual_departure=actual,
        delay_minutes=delay,
        source=SOURCE_MOCK,
        raw_payload={
            "note": "This is mock data. Configure AERODATABOX_API_KEY for real verification.",
            "flight_number": flight_number,
            "scheduled_date": scheduled.isoformat(),
        },
    )


def normalize_provider_flight(payload: Any) -> FlightStatusResult:
    """Turns one AeroDataBox response body into a FlightStatusResult."""
    flight = payload[0] if isinstance(payload, list) and payload else payload
    if not flight or not isinstance(flight, dict):
        return _unknown(SOURCE_AERODATABOX, "No flight data returned")

    departure = flight.get("departure") or {}
    scheduled = parse_provider_time((departure.get("scheduledTime") or {}).get("utc"))
    actual = parse_provider_time((departure.get("actualTime") or {}).get("utc"))
    flight_status, delay_minutes = map_flight_status(flight.get("status"), scheduled, actual)
    return FlightStatusResult(
        flight_status=flight_status,
        actual_departure=actual,
        delay_minutes=delay_minutes,
        source=SOURCE_AERODATABOX,
        raw_payload=flight,
    )


async def lookup_flight_status(
    flight_number: str,
    scheduled_date: Union[date, datetime],
    departure_airport: Optional[str] = None,
) -> FlightStatusResult:
    """
    Asks AeroDataBox for a flight's departure status on a given day.
    Provider failures (not found, HTTP errors, timeouts, unreachable host) come
    back as an 'unknown' result carrying the error in raw_payload.
    """
    scheduled = scheduled_date if isinstance(scheduled_date, datetime) else datetime.combine(scheduled_date, datetime.min.time())
    if not settings.AERODATABOX_API_KEY:
        logger.warning("AeroDataBox API key not configured - using mock verification")
        return mock_flight_status(flight_number, scheduled)

    base_url = settings.AERODATABOX_BASE_URL.rstrip("/")
    url = f"{base_url}/flights/number/{flight_number}/{scheduled.strftime('%Y-%m-%d')}"
    headers = {
        "X-RapidAPI-Key": settings.AERODATABOX_API_KEY,
        "X-RapidAPI-Host": urlparse(base_url).netloc,
    }
    logger.info(f"Looking up flight {flight_number} on {scheduled.date()} (departure airport: {departure_airport or 'n/a'})")

    try:
        async with httpx.AsyncClient(timeout=settings.EXTERNAL_CALL_TIMEOUT_SECONDS) as http_client:
            response = await http_client.get(url, headers=headers)
        if response.status_code == 404:
            return _unknown(SOURCE_AERODATABOX, "Flight not found")
        response.raise_for_status()
        if response.status_code == 204 or not response.content:
            return _unknown(SOURCE_AERODATABOX, "No flight data returned")
        payload: Dict[str, Any] = response.json()
    except httpx.HTTPStatusError as e:
        logger.error(f"Flight status API error for {flight_number}: {e.response.status_code}")
        return _unknown(SOURCE_AERODATABOX, f"API error: {e.response.status_code}")
    except httpx.HTTPError as e:
        logger.error(f"Flight status API request failed for {flight_number}: {e}", exc_info=True)
        return _unknown(SOURCE_AERODATABOX, f"Request failed: {e.__class__.__name__}")
    except ValueError as e:
        logger.error(f"Flight status API returned invalid JSON for {flight_number}: {e}")
        return _unknown(SOURCE_AERODATABOX, "Invalid response body")

    return normalize_provider_flight(payload)
