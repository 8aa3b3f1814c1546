from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from ..core.exceptions import ValidationError


def parse_iso_date(value: str) -> date:
    """Parse YYYY-MM-DD string into date."""
    return datetime.strptime(value, "%Y-%m-%d").date()


def parse_optional_datetime(value: Any, field_name: str) -> Optional[datetime]:
    """Parse an ISO date/datetime from a JSON body.

    ``None`` and empty strings map to ``None`` (used to clear date fields).
    Timezone-aware values are converted to naive local time.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a date")
    v = value.strip()
    if not v:
        return None
    if v.endswith("Z"):
        v = v[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(v)
    except ValueError:
        raise ValidationError(f"{field_name} must be a date")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def tomorrow_window(now: datetime) -> tuple[datetime, datetime]:
    """Return ``[tomorrow 00:00, tomorrow 00:00 + 24h)`` relative to ``now``."""
    start = datetime.combine(now.date() + timedelta(days=1), time.min)
    return start, start + timedelta(days=1)


def format_display_date(value: Optional[datetime], default: str) -> str:
    return value.strftime("%d/%m/%Y") if value else default


def now_local() -> datetime:
    """Current local time.

    Note: Wrapped so tests can patch/mocked easier.
    """
    return datetime.now()


def parse_end_bound(value: Any, field_name: str) -> Optional[datetime]:
    """Like ``parse_optional_datetime``, but a bare date covers that whole day."""
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime.combine(value, time.max)
    parsed = parse_optional_datetime(value, field_name)
    if parsed is not None and isinstance(value, str) and "T" not in value and " " not in value.strip():
        return datetime.combine(parsed.date(), time.max)
    return parsed
