from __future__ import annotations

import re
from typing import Any

from ..core.exceptions import ValidationError

_MOBILE_RE = re.compile(r"^\d{10}$")
_EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")


def require_non_empty(value: Any, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} is required and must be a non-empty string")
    return value.strip()


def is_valid_mobile(value: str) -> bool:
    return bool(_MOBILE_RE.match(value or ""))


def is_valid_email(value: str) -> bool:
    return bool(_EMAIL_RE.match(value or ""))


def parse_id(value: Any, *, label: str = "ID") -> int:
    """Parse a record id coming from a URL or JSON body."""
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {label}")
    if isinstance(value, int):
        ident = value
    elif isinstance(value, str) and value.strip().isdigit():
        ident = int(value.strip())
    else:
        raise ValidationError(f"Invalid {label}")
    if ident <= 0:
        raise ValidationError(f"Invalid {label}")
    return ident


def parse_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a number")
    try:
        return float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be a number")
