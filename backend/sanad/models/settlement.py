from sqlalchemy import Column, Integer, String, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from sanad.db.base_class import Base

class Settlement(Base):
    __tablename__ = "settlements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    # One settlement per claim, enforced by the database as well as the service
    claim_id = Column(Integer, ForeignKey("claims.id", ondelete="CASCADE"), nullable=False, unique=True)
    compensation_type = Column(String(20), nullable=False) # cash | voucher | refund
    compensation_amount = Column(Integer, nullable=False) # smallest currency unit
    fee_percent = Column(Integer, default=0)
    user_net = Column(Integer, nullable=False)
    closed_at = Column(DateTime, default=datetime.utcnow)

    claim = relationship("Claim", back_populates="settlement")
