import logging
from typing import Generator, Optional

from fastapi import Header

from sanad.core import exceptions
from sanad.core.config import settings
from sanad.db.session import SessionLocal
from sanad.utils.file_handling import BlobStore, get_blob_store

logger = logging.getLogger(__name__)


def get_db() -> Generator:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store() -> BlobStore:
    return get_blob_store()


def require_staff(authorization: Optional[str] = Header(None)) -> str:
    """
    Staff gate for admin routes: expects 'Authorization: Bearer <token>' with a
    token listed in STAFF_API_KEYS. Returns the token on success.
    """
    scheme, _, token = (authorization or "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise exceptions.Unauthorized("Staff credentials are required.")
    if token.strip() not in settings.STAFF_API_KEYS:
        logger.warning("Rejected request with an unknown staff token")
        raise exceptions.Unauthorized("Invalid staff credentials.")
    return token.strip()
