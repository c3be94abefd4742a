from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from sanad.db.base_class import Base

class AiOutput(Base):
    __tablename__ = "ai_outputs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    claim_id = Column(Integer, ForeignKey("claims.id", ondelete="CASCADE"), nullable=False, unique=True)

    summary = Column(Text)
    case_strength = Column(String(10)) # strong | medium | weak
    eligibility_reasoning = Column(Text)
    claim_draft = Column(Text)
    next_action = Column(Text)

    # Cache key: hash of the exact agent input plus the mode it ran in
    last_input_hash = Column(String(64))
    last_mode = Column(String(20)) # analyze | draft | followup

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    claim = relationship("Claim", back_populates="ai_output")
