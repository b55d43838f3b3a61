"""Time utilities."""
from __future__ import annotations

import re
from datetime import UTC, datetime, timezone

# Alertmanager reports RFC 3339 timestamps with up to nanosecond precision.
_FRACTION_RE = re.compile(r"(\.\d{6})\d+")

# Go's zero time, sent as ``endsAt`` for alerts that haven't ended.
ZERO_TIME_PREFIX = "0001-01-01"


def utcnow() -> datetime:
    """Return current UTC time with timezone awareness."""

    return datetime.now(tz=UTC)


def parse_iso_utc(value: str) -> datetime:
    """Parse an ISO 8601 string and normalize it to UTC."""

    cleaned = _FRACTION_RE.sub(r"\1", value.strip().replace("Z", "+00:00"))
    dt = datetime.fromisoformat(cleaned)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_alert_time(value: str | datetime | None) -> datetime | None:
    """Parse an Alertmanager timestamp, treating the zero time as absent."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if value.startswith(ZERO_TIME_PREFIX):
        return None
    return parse_iso_utc(value)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""

    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


__all__ = ["utcnow", "parse_iso_utc", "parse_alert_time", "as_utc", "ZERO_TIME_PREFIX"]
