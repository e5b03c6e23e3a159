import re
from datetime import date, time, timedelta

from ..domain.errors import InvalidFormatError

_DATE_RE = re.compile(r"[0-9]{4}-[0-9]{2}-[0-9]{2}")
_TIME_RE = re.compile(r"([01]?[0-9]|2[0-3]):([0-5][0-9])")


def validate_date(value: str) -> date:
    """Parse a strict YYYY-MM-DD string; impossible calendar dates are rejected."""
    if not isinstance(value, str) or not _DATE_RE.fullmatch(value):
        raise InvalidFormatError("Invalid date format. Use YYYY-MM-DD")
    try:
        parsed = date.fromisoformat(value)
    except ValueError as exc:
        raise InvalidFormatError("Invalid date format. Use YYYY-MM-DD") from exc
    if parsed.isoformat() != value:
        raise InvalidFormatError("Invalid date format. Use YYYY-MM-DD")
    return parsed


def validate_time(value: str, *, field: str = "time") -> time:
    """Parse H:MM or HH:MM (24h, no seconds)."""
    match = _TIME_RE.fullmatch(value) if isinstance(value, str) else None
    if match is None:
        raise InvalidFormatError(f"Invalid {field} format. Use HH:mm")
    return time(int(match.group(1)), int(match.group(2)))


def to_minutes(value: str | time) -> int:
    parsed = validate_time(value) if isinstance(value, str) else value
    return parsed.hour * 60 + parsed.minute


def is_after(start: str | time, end: str | time) -> bool:
    return to_minutes(end) > to_minutes(start)


def format_time(value: time) -> str:
    return value.strftime("%H:%M")


def week_bounds(day: date) -> tuple[date, date]:
    """Return the Monday and Sunday (inclusive) of the week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def today() -> date:
    return date.today()
