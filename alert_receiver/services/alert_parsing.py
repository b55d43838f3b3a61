"""Turn Alertmanager webhook JSON into canonical alert records."""
from __future__ import annotations

from typing import Any, Iterable, Mapping

from alert_receiver.models.alert import AlertStatus
from alert_receiver.utils.time import parse_alert_time


def normalize_status(status: Any) -> str | None:
    """Return the alert status as one of our lifecycle states.

    Alertmanager's v2 alert API reports ``{"state": "active" | "suppressed" | ...}``
    whereas webhooks send a plain ``"firing"`` / ``"resolved"``.
    """

    if isinstance(status, Mapping):
        status = status.get("state")
    if status == "active":
        return AlertStatus.firing.value
    return status


def parse_alerts(
    raw_alerts: Iterable[Mapping[str, Any]],
    *,
    external_url: str | None,
    datacenter: str | None = None,
) -> list[dict[str, Any]]:
    """Return one alert record per raw alert.

    ``datacenter`` is the group's common datacenter label, used for alerts that
    don't carry their own.
    """

    parsed: list[dict[str, Any]] = []
    for raw_alert in raw_alerts:
        labels = raw_alert.get("labels") or {}
        annotations = raw_alert.get("annotations") or {}
        status = normalize_status(raw_alert.get("status"))

        alert = {
            "external_url": external_url or "",
            "alertname": labels.get("alertname"),
            "datacenter": labels.get("datacenter") or datacenter,
            "identifier": labels.get("id") or "",
            "status": status,
            "starts_at": parse_alert_time(raw_alert.get("startsAt")),
            "ends_at": parse_alert_time(raw_alert.get("endsAt")),
            "generator_url": raw_alert.get("generatorURL"),
            "description": annotations.get("description"),
            "link_url": annotations.get("link_url"),
            "link_text": annotations.get("link_text"),
        }

        if status != AlertStatus.resolved.value:
            alert["ends_at"] = None

        parsed.append(alert)
    return parsed


def group_key(payload: Mapping[str, Any]) -> str | None:
    """Return the alertname that identifies the payload's alert group."""

    return (payload.get("commonLabels") or {}).get("alertname")


def group_base_title(payload: Mapping[str, Any]) -> str:
    """Return the title an alert group's topic is built from."""

    annotations = payload.get("commonAnnotations") or {}
    if annotations.get("topic_title"):
        return annotations["topic_title"]
    group_labels = payload.get("groupLabels") or {}
    return ", ".join(f"{key}: {value}" for key, value in group_labels.items())


def topic_tags(payload: Mapping[str, Any]) -> list[str]:
    """Return the extra tags requested through ``commonAnnotations.topic_tags``."""

    raw = (payload.get("commonAnnotations") or {}).get("topic_tags") or ""
    return [tag.strip() for tag in raw.split(",") if tag.strip()]


__all__ = ["normalize_status", "parse_alerts", "group_key", "group_base_title", "topic_tags"]
