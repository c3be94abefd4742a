"""
Pytest configuration and fixtures for the Sanad backend tests.

Every test gets a fresh in-memory SQLite database. External capabilities
(OCR, flight status, document classification, the case agent, blob storage)
are replaced by small in-process fakes.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["OPENAI_API_KEY"] = ""
os.environ["AERODATABOX_API_KEY"] = ""

from datetime import datetime
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sanad import schemas
from sanad.api import deps
from sanad.core import exceptions
from sanad.core.config import settings
from sanad.db.base import Base
from sanad.main import app
from sanad.models.flight_verification import FlightStatus
from sanad.schemas.verification import BoardingPassData, DocumentVerificationResult, FlightStatusResult
from sanad.services import claim_service

STAFF_TOKEN = "staff-test-token"
CLAIMANT_PHONE = "0501234567"

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# =============================================================================
# Fakes
# =============================================================================

class FakeBlobStore:
    def __init__(self):
        self.blobs: Dict[str, bytes] = {}
        self.fail_on_store = False

    def store(self, file_name: str, content: bytes) -> str:
        if self.fail_on_store:
            raise exceptions.ExternalCapabilityError("blob_store", "disk full")
        reference = f"blob-{len(self.blobs) + 1}-{file_name}"
        self.blobs[reference] = content
        return reference

    def resolve(self, reference: str) -> bytes:
        if reference not in self.blobs:
            raise exceptions.ExternalCapabilityError("blob_store", f"Stored file '{reference}' not found.")
        return self.blobs[reference]


class FakeOcr:
    def __init__(self, data: Optional[BoardingPassData] = None, error: Optional[Exception] = None):
        self.data = data if data is not None else BoardingPassData(
            flight_number="SV123",
            airline="Saudia",
            departure_airport="RUH",
            arrival_airport="JED",
            scheduled_departure=datetime(2026, 3, 1, 8, 30),
            passenger_name="Sara Ahmed",
            confidence=92,
        )
        self.error = error
        self.calls = 0

    async def __call__(self, image_bytes: bytes, mime_type: str) -> BoardingPassData:
        self.calls += 1
        if self.error:
            raise self.error
        return self.data


class FakeFlightLookup:
    def __init__(self, result: Optional[FlightStatusResult] = None, error: Optional[Exception] = None):
        self.result = result if result is not None else FlightStatusResult(
            flight_status=FlightStatus.delayed,
            actual_departure=datetime(2026, 3, 1, 15, 30),
            delay_minutes=420,
            source="fake",
            raw_payload={"status": "Departed"},
        )
        self.error = error
        self.calls: List[tuple] = []

    async def __call__(self, flight_number, scheduled_date, departure_airport=None) -> FlightStatusResult:
        self.calls.append((flight_number, scheduled_date, departure_airport))
        if self.error:
            raise self.error
        return self.result


class FakeClassifier:
    def __init__(self, fail_for: Optional[set] = None):
        self.fail_for = fail_for or set()
        self.calls = 0

    async def __call__(self, image_bytes: bytes, mime_type: str) -> DocumentVerificationResult:
        self.calls += 1
        if image_bytes in self.fail_for:
            raise exceptions.ExternalCapabilityError("document_classification", "model unavailable")
        return DocumentVerificationResult(
            document_type="boarding_pass",
            is_relevant=True,
            extracted_fields={"flight_number": "SV123"},
            notes="Clear scan",
            confidence=88,
        )


class FakeCaseAgent:
    def __init__(self, reply: Optional[Dict[str, Any]] = None, error: Optional[Exception] = None):
        self.reply = reply if reply is not None else {
            "ai_summary": "Seven hour delay on SV123.",
            "ai_case_strength": "strong",
            "ai_eligibility_reasoning": "Delay exceeds six hours.",
            "ai_next_action": "Send the claim.",
        }
        self.error = error
        self.calls: List[tuple] = []

    async def __call__(self, mode: str, context: Dict[str, Any]) -> Dict[str, Any]:
        self.calls.append((mode, context))
        if self.error:
            raise self.error
        return self.reply


# =============================================================================
# Factory Helpers
# =============================================================================

def claim_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "category": "flight",
        "issue_type": "delay",
        "company_name": "Saudia",
        "reference_number": "SV123",
        "incident_date": "2026-03-01T08:30:00",
        "description": "Flight departed seven hours late.",
        "customer_name": "Sara Ahmed",
        "customer_phone": CLAIMANT_PHONE,
        "flight_from": "RUH",
        "flight_to": "JED",
        "delay_hours": 7,
    }
    payload.update(overrides)
    return payload


def make_claim(db, year: int = 2026, **overrides):
    """Submits a claim through the intake service, the same path the API uses."""
    return claim_service.submit_claim(db, schemas.ClaimCreate(**claim_payload(**overrides)), year=year)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def flight_claim(db):
    return make_claim(db)


@pytest.fixture
def delivery_claim(db):
    return make_claim(
        db,
        category="delivery",
        issue_type="late_delivery",
        company_name="FastShip",
        reference_number="ORD-9981",
        delay_hours=None,
        flight_from=None,
        flight_to=None,
        delivery_city="Riyadh",
    )


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def client(db, blob_store, monkeypatch):
    monkeypatch.setattr(settings, "STAFF_API_KEYS", [STAFF_TOKEN])

    def override_get_db():
        yield db

    app.dependency_overrides[deps.get_db] = override_get_db
    app.dependency_overrides[deps.get_store] = lambda: blob_store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def staff_headers():
    return {"Authorization": f"Bearer {STAFF_TOKEN}"}
