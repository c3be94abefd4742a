from sqlalchemy import Column, String, Text, DateTime
from datetime import datetime

from sanad.db.base_class import Base

class AppSetting(Base):
    """Admin-editable key/value settings, e.g. the SDR_TO_SAR conversion rate."""
    __tablename__ = "app_settings"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
