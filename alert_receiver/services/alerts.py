"""Alert history reconciliation.

Incoming alerts are merged into ``alert_receiver_alerts`` by their identity key
``(topic_id, external_url, identifier)``. Only one *active* (firing or
suppressed) row may exist per key; once an alert is resolved or goes stale its
row is history and the next firing alert with that key starts a new row.

Every function returns the ids of the topics whose alerts changed, so callers
only revise topics that need it. Closed topics are filtered out by the callers
that pick a topic, not here: alerts already attached to a closed topic still
resolve and go stale.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import exists, func, select
from sqlalchemy.orm import Session

from alert_receiver.models.alert import ACTIVE_STATUSES, Alert, AlertStatus
from alert_receiver.models.receiver import Receiver
from alert_receiver.models.topic import Topic
from alert_receiver.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)

STALE_DURATION = timedelta(minutes=5)

AlertKey = tuple[int, str, str]

FIRING_UPDATE_COLUMNS = (
    "alertname",
    "status",
    "datacenter",
    "ends_at",
    "description",
    "generator_url",
    "link_url",
    "link_text",
)
RESOLVED_UPDATE_COLUMNS = ("status", "ends_at", "description")
CHANGE_DETECTION_COLUMNS = ("status", "description")


def _key(record: Mapping[str, Any]) -> AlertKey:
    return (record["topic_id"], record["external_url"], record["identifier"])


def _unique_ids(ids: Iterable[int]) -> list[int]:
    return list(dict.fromkeys(ids))


def _active_alerts_by_key(db: Session, topic_ids: Iterable[int]) -> dict[AlertKey, Alert]:
    ids = set(topic_ids)
    if not ids:
        return {}
    stmt = select(Alert).where(Alert.topic_id.in_(ids), Alert.status.in_(ACTIVE_STATUSES))
    return {(row.topic_id, row.external_url, row.identifier): row for row in db.scalars(stmt).all()}


def _differs(row: Alert, record: Mapping[str, Any], columns: Iterable[str]) -> bool:
    for column in columns:
        current = getattr(row, column)
        incoming = record.get(column)
        if isinstance(current, datetime) or isinstance(incoming, datetime):
            current, incoming = as_utc(current), as_utc(incoming)
        if current != incoming:
            return True
    return False


def update_firing(db: Session, alerts: Sequence[Mapping[str, Any]]) -> list[int]:
    """Insert new firing alerts and refresh the ones already active."""

    if not alerts:
        return []

    existing = _active_alerts_by_key(db, (a["topic_id"] for a in alerts))
    changed: list[int] = []
    for record in alerts:
        row = existing.get(_key(record))
        if row is None:
            row = Alert(
                topic_id=record["topic_id"],
                external_url=record["external_url"],
                identifier=record["identifier"],
                starts_at=record.get("starts_at") or utcnow(),
                **{column: record.get(column) for column in FIRING_UPDATE_COLUMNS},
            )
            db.add(row)
            existing[_key(record)] = row
            changed.append(record["topic_id"])
        elif _differs(row, record, FIRING_UPDATE_COLUMNS):
            for column in FIRING_UPDATE_COLUMNS:
                setattr(row, column, record.get(column))
            changed.append(record["topic_id"])

    db.flush()
    return _unique_ids(changed)


def update_resolved_and_suppressed(db: Session, alerts: Sequence[Mapping[str, Any]]) -> list[int]:
    """Apply resolved/suppressed states to alerts that are currently active.

    Alerts that were never seen firing are dropped rather than inserted.
    """

    if not alerts:
        return []

    existing = _active_alerts_by_key(db, (a["topic_id"] for a in alerts))
    changed: list[int] = []
    for record in alerts:
        row = existing.get(_key(record))
        if row is None or not _differs(row, record, CHANGE_DETECTION_COLUMNS):
            continue
        for column in RESOLVED_UPDATE_COLUMNS:
            setattr(row, column, record.get(column))
        changed.append(record["topic_id"])

    db.flush()
    return _unique_ids(changed)


def mark_stale(
    db: Session,
    *,
    external_url: str,
    active_alerts: Sequence[Mapping[str, Any]],
    now: datetime | None = None,
) -> list[int]:
    """Mark alerts Alertmanager no longer reports as stale.

    An active alert from ``external_url`` goes stale when it is missing from
    ``active_alerts`` and started more than :data:`STALE_DURATION` ago.
    """

    db.flush()
    threshold = (now or utcnow()) - STALE_DURATION
    still_active = {(a["topic_id"], a["identifier"]) for a in active_alerts}

    stmt = (
        select(Alert)
        .where(
            Alert.external_url == external_url,
            Alert.status.in_(ACTIVE_STATUSES),
            Alert.starts_at < threshold,
        )
    )
    changed: list[int] = []
    for row in db.scalars(stmt).all():
        if (row.topic_id, row.identifier) in still_active:
            continue
        row.status = AlertStatus.stale.value
        changed.append(row.topic_id)

    db.flush()
    if changed:
        logger.info(
            "Alerts marked stale",
            extra={"external_url": external_url, "count": len(changed)},
        )
    return _unique_ids(changed)


def update_alerts(
    db: Session,
    alerts: Sequence[Mapping[str, Any]],
    *,
    mark_stale_external_url: str | None = None,
) -> list[int]:
    """Merge ``alerts`` into the persisted history and return changed topic ids."""

    unique: dict[AlertKey, Mapping[str, Any]] = {}
    for record in alerts:
        unique.setdefault(_key(record), record)

    groups: dict[str, list[Mapping[str, Any]]] = {}
    for record in unique.values():
        groups.setdefault(record["status"], []).append(record)

    firing = groups.get(AlertStatus.firing.value, [])
    suppressed = groups.get(AlertStatus.suppressed.value, [])
    resolved = groups.get(AlertStatus.resolved.value, [])

    topic_ids = update_firing(db, firing)
    topic_ids += update_resolved_and_suppressed(db, [*resolved, *suppressed])

    if mark_stale_external_url:
        topic_ids += mark_stale(
            db,
            external_url=mark_stale_external_url,
            active_alerts=[*firing, *suppressed],
        )

    return _unique_ids(topic_ids)


def firing_count(db: Session, topic_id: int) -> int:
    stmt = select(func.count()).select_from(Alert).where(
        Alert.topic_id == topic_id, Alert.status == AlertStatus.firing.value
    )
    return db.scalar(stmt) or 0


def datacenters(db: Session, topic_id: int) -> list[str]:
    """Return the distinct datacenters of a topic's alerts, in first-seen order."""

    stmt = (
        select(Alert.datacenter)
        .where(Alert.topic_id == topic_id, Alert.datacenter.is_not(None))
        .group_by(Alert.datacenter)
        .order_by(func.min(Alert.id))
    )
    return list(db.scalars(stmt).all())


def topic_alerts(db: Session, topic_id: int) -> list[Alert]:
    stmt = select(Alert).where(Alert.topic_id == topic_id).order_by(Alert.starts_at, Alert.id)
    return list(db.scalars(stmt).all())


def alert_category_ids(db: Session) -> list[int]:
    """Return the categories any receiver posts alert topics into."""

    stmt = select(Receiver.category_id).distinct()
    return list(db.scalars(stmt).all())


def firing_topics(db: Session, category_ids: Sequence[int] | None = None) -> list[Topic]:
    """Return open alert topics that have at least one firing alert."""

    ids = list(category_ids) if category_ids else alert_category_ids(db)
    if not ids:
        return []
    has_firing = exists().where(Alert.topic_id == Topic.id, Alert.status == AlertStatus.firing.value)
    stmt = (
        select(Topic)
        .where(Topic.closed.is_(False), Topic.category_id.in_(ids), has_firing)
        .order_by(Topic.bumped_at.desc())
    )
    return list(db.scalars(stmt).all())


__all__ = [
    "STALE_DURATION",
    "update_alerts",
    "update_firing",
    "update_resolved_and_suppressed",
    "mark_stale",
    "firing_count",
    "datacenters",
    "topic_alerts",
    "alert_category_ids",
    "firing_topics",
]
