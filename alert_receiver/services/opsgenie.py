"""Opsgenie on-call schedule lookup."""
from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx

from alert_receiver.config import get_settings
from alert_receiver.utils.time import utcnow

logger = logging.getLogger(__name__)

SCHEDULES_PATH = "/schedules"

_rotations_cache: dict[str, Any] | None = None
_rotations_cached_at = 0.0


class OpsgenieError(RuntimeError):
    """Raised when the Opsgenie API answers with a non-success status."""


def _api_key() -> str | None:
    return get_settings().PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY


def _get(path: str) -> dict[str, Any]:
    settings = get_settings()
    response = httpx.get(
        f"{settings.OPSGENIE_API_URL}{path}",
        headers={"Authorization": f"GenieKey {_api_key()}"},
        timeout=settings.OPSGENIE_TIMEOUT_SECONDS,
    )
    if not response.is_success:
        raise OpsgenieError(f"({response.status_code}) {response.text}")
    return response.json()


def _fetch_rotations() -> dict[str, Any]:
    schedule_ids = [schedule["id"] for schedule in _get(SCHEDULES_PATH)["data"]]

    timezone = "UTC"
    rotations: dict[tuple[int, int], list[str]] = {}
    for schedule_id in schedule_ids:
        data = _get(f"{SCHEDULES_PATH}/{schedule_id}")["data"]
        timezone = data.get("timezone") or timezone
        for rotation in data.get("rotations") or []:
            restriction = (rotation.get("timeRestriction") or {}).get("restriction") or {}
            window = (restriction.get("startHour", 0), restriction.get("endHour", 0))
            rotations[window] = [p["username"] for p in rotation.get("participants") or []]

    return {"timezone": timezone, "rotations": rotations}


def user_rotations() -> dict[str, Any]:
    """Return the schedule timezone and rotations, cached for a day."""

    global _rotations_cache, _rotations_cached_at
    ttl = get_settings().OPSGENIE_CACHE_TTL_SECONDS
    if _rotations_cache is not None and time.monotonic() - _rotations_cached_at < ttl:
        return _rotations_cache

    _rotations_cache = _fetch_rotations()
    _rotations_cached_at = time.monotonic()
    logger.info("Opsgenie rotations refreshed", extra={"rotations": len(_rotations_cache["rotations"])})
    return _rotations_cache


def clear_cache() -> None:
    global _rotations_cache, _rotations_cached_at
    _rotations_cache = None
    _rotations_cached_at = 0.0


def covers_hour(start_hour: int, end_hour: int, hour: int) -> bool:
    """Return whether the ``[start_hour, end_hour)`` window contains ``hour``.

    Windows with ``start_hour > end_hour`` wrap over midnight.
    """

    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour


def _zone(name: str) -> ZoneInfo:
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown Opsgenie schedule timezone", extra={"timezone": name})
        return ZoneInfo("UTC")


def users_on_rotation(now: datetime | None = None) -> list[str]:
    """Return the emails of everyone currently on call."""

    if not _api_key():
        return []

    rotations = user_rotations()
    current_hour = (now or utcnow()).astimezone(_zone(rotations["timezone"])).hour

    emails: list[str] = []
    for (start_hour, end_hour), participants in rotations["rotations"].items():
        if covers_hour(start_hour, end_hour, current_hour):
            emails.extend(participants)
    return emails


__all__ = ["OpsgenieError", "user_rotations", "users_on_rotation", "covers_hour", "clear_cache"]
