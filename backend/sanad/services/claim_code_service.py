import re
from typing import Optional, Tuple

from sqlalchemy.orm import Session

from sanad.core import exceptions
from sanad.core.config import settings
from sanad.crud import crud_claim

SEQUENCE_WIDTH = 5


def format_claim_code(year: int, sequence: int, prefix: Optional[str] = None) -> str:
    return f"{prefix or settings.CLAIM_CODE_PREFIX}-{year}-{sequence:0{SEQUENCE_WIDTH}d}"


def parse_claim_code(code: str, prefix: Optional[str] = None) -> Tuple[int, int]:
    """Returns (year, sequence) for a well-formed claim code."""
    pattern = rf"^{re.escape(prefix or settings.CLAIM_CODE_PREFIX)}-(\d{{4}})-(\d{{{SEQUENCE_WIDTH},}})$"
    match = re.match(pattern, (code or "").strip())
    if not match:
        raise exceptions.ValidationError(f"'{code}' is not a valid claim code.")
    return int(match.group(1)), int(match.group(2))


def next_claim_code(db: Session, year: int, offset: int = 0) -> str:
    """
    Derives the next code from the last issued internal ID. Not safe on its own
    under concurrent writers: claim_service retries on a unique-constraint
    violation, bumping ``offset`` each attempt.
    """
    return format_claim_code(year, crud_claim.get_last_claim_id(db) + 1 + offset)
