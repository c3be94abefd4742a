import re

_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_PHONE_PATTERN = re.compile(r"^\+?\d{9,15}$")


def normalize_phone(value: str) -> str:
    """Strips separators so '050 123-4567' and '0501234567' compare equal."""
    return _PHONE_SEPARATORS.sub("", value or "")


def is_valid_phone(value: str) -> bool:
    return bool(_PHONE_PATTERN.match(normalize_phone(value)))


def digit_count(value: str) -> int:
    return sum(ch.isdigit() for ch in value or "")
