from sqlalchemy.orm import Session
from typing import Optional

from sanad import models

SDR_TO_SAR = "SDR_TO_SAR"

def get_setting(db: Session, key: str) -> Optional[str]:
    row = db.query(models.AppSetting).filter(models.AppSetting.key == key).first()
    return row.value if row else None

def set_setting(db: Session, key: str, value: str) -> models.AppSetting:
    row = db.query(models.AppSetting).filter(models.AppSetting.key == key).first()
    if row:
        row.value = value
    else:
        row = models.AppSetting(key=key, value=value)
    db.add(row)
    db.commit()
    db.refresh(row)
    return row
