from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime

from sanad.db.base_class import Base

class Communication(Base):
    __tablename__ = "communications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    claim_id = Column(Integer, ForeignKey("claims.id", ondelete="CASCADE"), nullable=False, index=True)
    method = Column(String(20), nullable=False) # email | sms | phone
    recipient = Column(String(255), nullable=False)
    sent_at = Column(DateTime)
    company_response = Column(Text) # recorded manually by staff
    created_at = Column(DateTime, default=datetime.utcnow)

    claim = relationship("Claim", back_populates="communications")
