"""
Request input validation and normalization for the JSON API.

Parses query-string flags and numbers, checks id formats, and cleans free-text
fields before they reach the services. Bad input raises ValidationError with
the offending field, which the app's error handler turns into a 400.
"""

from __future__ import annotations
import re
from typing import Any, Dict, Optional

from flask import request

from .errors import ValidationError

_UUID_PATTERN = re.compile(
    r'^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$', re.IGNORECASE
)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def is_valid_uuid(value: str | None) -> bool:
    return bool(value) and bool(_UUID_PATTERN.match(value))


def require_uuid(value: str | None, field: str) -> str:
    if not is_valid_uuid(value):
        raise ValidationError(f"Invalid {field}", field=field)
    return value


def parse_bool(value: Any, default: bool = True) -> bool:
    """Lenient boolean for query flags: unknown or missing values use the default."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    v = str(value).strip().lower()
    if v in _TRUE_VALUES:
        return True
    if v in _FALSE_VALUES:
        return False
    return default


def parse_int(value: Any, field: str, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer", field=field)


def clean_text(text: Optional[str], max_len: Optional[int] = None) -> str:
    """
    Free-text fields (notes, messages):
    - strip, and bound length when max_len is given
    - remove control chars only; keep reasonable punctuation
    - normalize repeated tabs/spaces
    """
    t = (text or "").strip()
    if not t:
        return ""
    if max_len:
        t = t[:max_len]
    t = re.sub(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]", "", t)
    t = re.sub(r"[ \t]{2,}", " ", t)
    return t


def json_body() -> Dict[str, Any]:
    """Request JSON object, or an empty dict for missing/non-object bodies."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def optional_choice(value: Optional[str], choices, field: str) -> Optional[str]:
    """Normalize an optional filter value; reject values outside `choices`."""
    v = (value or "").strip().lower()
    if not v:
        return None
    if v not in choices:
        raise ValidationError(f"Invalid {field}: {value}", field=field)
    return v
