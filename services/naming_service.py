"""
Naming service: room codes and display names

Pure functions, no state transitions.
"""
import random
import re
import string
from typing import Optional

from core.exceptions import ValidationError

ROOM_CODE_LENGTH = 6
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits

_ROOM_CODE_RE = re.compile(r"^[A-Z0-9]{6}$")


def generate_room_code() -> str:
    """
    Generate a random 6 character room code from A-Z and 0-9

    Examples: K3ZQ7A, 09XWBD

    Notes:
    - uniqueness is not checked here (the caller retries against the database)
    - 36^6 = 2,176,782,336 possible codes
    """
    return ''.join(random.choices(ROOM_CODE_ALPHABET, k=ROOM_CODE_LENGTH))


def normalize_room_code(code: Optional[str]) -> str:
    """
    Strip and uppercase a room code, then check its format

    Raises:
        ValidationError: not exactly 6 characters of [A-Z0-9]
    """
    normalized = (code or "").strip().upper()
    if not _ROOM_CODE_RE.match(normalized):
        raise ValidationError("room_code", "Invalid room code format")
    return normalized


def is_valid_room_code(code: Optional[str]) -> bool:
    return bool(_ROOM_CODE_RE.match((code or "").strip().upper()))


def require_text(field: str, value: Optional[str], max_length: int = 255) -> str:
    """Trim a required text field, rejecting empty or oversized values"""
    text = (value or "").strip()
    if not text:
        raise ValidationError(field, f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(field, f"{field} must be at most {max_length} characters")
    return text


def optional_text(value: Optional[str]) -> Optional[str]:
    """Trim an optional text field; blank becomes None"""
    if value is None:
        return None
    text = value.strip()
    return text or None


def same_name(a: str, b: str) -> bool:
    return a.strip().casefold() == b.strip().casefold()
