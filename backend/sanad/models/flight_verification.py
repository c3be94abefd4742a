import enum
from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, JSON, Enum as SQLAlchemyEnum
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from datetime import datetime

from sanad.db.base_class import Base

class FlightStatus(enum.Enum):
    on_time = "on_time"
    delayed = "delayed"
    cancelled = "cancelled"
    diverted = "diverted"
    unknown = "unknown"

class VerificationStatus(enum.Enum):
    pending = "pending"
    verified = "verified"
    error = "error"

class FlightVerification(Base):
    __tablename__ = "flight_verifications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    claim_id = Column(Integer, ForeignKey("claims.id", ondelete="CASCADE"), nullable=False, unique=True)

    # --- Boarding pass OCR ---
    flight_number = Column(String(20))
    airline = Column(String(255))
    departure_airport = Column(String(10))
    arrival_airport = Column(String(10))
    scheduled_departure = Column(DateTime)
    passenger_name = Column(String(255))
    ocr_confidence = Column(Integer, default=0) # 0-100
    boarding_pass_path = Column(String(512))

    # --- External flight status ---
    actual_departure = Column(DateTime)
    delay_minutes = Column(Integer)
    flight_status = Column(SQLAlchemyEnum(FlightStatus))
    verification_status = Column(SQLAlchemyEnum(VerificationStatus), nullable=False, default=VerificationStatus.pending)
    verification_source = Column(String(50))
    verification_raw_data = Column(JSON().with_variant(JSONB, "postgresql"))
    verified_at = Column(DateTime)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    claim = relationship("Claim", back_populates="flight_verification")
