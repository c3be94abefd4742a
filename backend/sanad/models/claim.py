from sqlalchemy import Column, Integer, String, Enum, DateTime, Text, Float
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from sanad.db.base_class import Base

class ClaimStatus(enum.Enum):
    new = "new"
    need_info = "need_info"
    in_review = "in_review"
    processing = "processing"
    submitted = "submitted"
    waiting_response = "waiting_response"
    approved = "approved"
    resolved = "resolved"
    rejected = "rejected"

class ClaimCategory(enum.Enum):
    flight = "flight"
    delivery = "delivery"

class Claim(Base):
    __tablename__ = "claims"

    # --- Identity ---
    id = Column(Integer, primary_key=True, autoincrement=True)
    claim_code = Column(String(32), nullable=False, unique=True, index=True) # SAN-2026-00001
    category = Column(Enum(ClaimCategory), nullable=False, index=True)
    issue_type = Column(String(50), nullable=False)
    status = Column(Enum(ClaimStatus), nullable=False, default=ClaimStatus.new, index=True)

    # --- Party ---
    customer_name = Column(String(255), nullable=False)
    customer_phone = Column(String(32), nullable=False, index=True)
    customer_email = Column(String(255))
    company_name = Column(String(255), nullable=False) # airline or merchant
    reference_number = Column(String(255), nullable=False) # booking ref / flight no / order id

    # --- Incident ---
    incident_date = Column(DateTime, nullable=False)
    description = Column(Text, nullable=False)
    flight_from = Column(String(100))
    flight_to = Column(String(100))
    delay_hours = Column(Float)
    delivery_city = Column(String(100))

    # --- Eligibility estimate ---
    eligibility_status = Column(String(30), default="unknown")
    estimated_sdr_amount = Column(Integer, default=0)
    estimated_local_amount = Column(Integer, default=0)
    # Set once the claim reaches a terminal status; estimates stop following the live rate
    frozen_conversion_rate = Column(Float)

    # --- Staff workspace ---
    internal_notes = Column(Text)
    draft_text = Column(Text)

    # --- Timestamps ---
    submitted_at = Column(DateTime)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # --- Relationships ---
    attachments = relationship("Attachment", back_populates="claim", cascade="all, delete-orphan", passive_deletes=True)
    timeline_events = relationship(
        "TimelineEvent", back_populates="claim", cascade="all, delete-orphan", passive_deletes=True,
        order_by="TimelineEvent.id",
    )
    communications = relationship("Communication", back_populates="claim", cascade="all, delete-orphan", passive_deletes=True)
    settlement = relationship("Settlement", back_populates="claim", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    flight_verification = relationship("FlightVerification", back_populates="claim", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
    ai_output = relationship("AiOutput", back_populates="claim", uselist=False, cascade="all, delete-orphan", passive_deletes=True)
