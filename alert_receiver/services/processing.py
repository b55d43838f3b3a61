"""Webhook processing: keep alert topics in sync with Alertmanager."""
from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from alert_receiver.models.alert import AlertStatus
from alert_receiver.models.receiver import Receiver
from alert_receiver.models.topic import Topic
from alert_receiver.services import alerts as alerts_service
from alert_receiver.services import receivers as receivers_service
from alert_receiver.services.alert_parsing import (
    group_base_title,
    group_key,
    parse_alerts,
    topic_tags,
)
from alert_receiver.services.assignment import assign_alert, explicit_assignee
from alert_receiver.services.topics import create_topic, revise_topic
from alert_receiver.utils.locks import receiver_lock_name, synchronize, topic_lock_name

logger = logging.getLogger(__name__)


def _open_topic(db: Session, topic_id: int | None) -> Topic | None:
    if topic_id is None:
        return None
    return db.scalars(select(Topic).where(Topic.id == topic_id, Topic.closed.is_(False))).one_or_none()


def _topic_for_group(db: Session, receiver: Receiver, payload: Mapping[str, Any], alertname: str | None) -> Topic | None:
    """Return the open topic of the alert group, opening one unless the group resolved."""

    common_labels = payload.get("commonLabels") or {}
    annotations = payload.get("commonAnnotations") or {}

    mapped_topic_id = receiver.topic_id_for(alertname)
    topic = _open_topic(db, mapped_topic_id)
    if topic is not None:
        return topic

    if payload.get("status") == AlertStatus.resolved.value:
        logger.info(
            "Ignoring resolved alert group without an open topic",
            extra={"alertname": alertname, "topic_id": mapped_topic_id},
        )
        return None

    topic = create_topic(
        db,
        category_id=receiver.category_id,
        base_title=group_base_title(payload),
        topic_body=annotations.get("topic_body"),
        prev_topic_id=mapped_topic_id,
        tags=[common_labels.get("datacenter"), *topic_tags(payload)],
        firing=payload.get("status") == AlertStatus.firing.value,
    )
    receivers_service.map_topic(receiver, alertname, topic.id)
    db.flush()
    return topic


def process_alert(db: Session, *, token: str, payload: Mapping[str, Any]) -> Topic | None:
    """Apply one Alertmanager webhook notification to its alert group's topic.

    The receiver lock is held until the commit, so a concurrent notification
    for the same group sees the topic map entry written here.
    Returns the topic that was updated, or ``None`` when the notification was
    ignored (unknown receiver, or a resolved group whose topic is closed).
    """

    alertname = group_key(payload)
    datacenter = (payload.get("commonLabels") or {}).get("datacenter")
    extra_tags = topic_tags(payload)

    with synchronize(receiver_lock_name(token)):
        receiver = receivers_service.get_receiver(db, token)
        if receiver is None:
            logger.warning("Alert received for unknown receiver")
            return None

        topic = _topic_for_group(db, receiver, payload, alertname)
        if topic is None:
            return None

        with synchronize(topic_lock_name(topic.id)):
            parsed = parse_alerts(
                payload.get("alerts") or [],
                external_url=payload.get("externalURL"),
                datacenter=datacenter,
            )
            for alert in parsed:
                alert["topic_id"] = topic.id

            changed = alerts_service.update_alerts(db, parsed)
            revise_topic(db, topic, ensure_tags=extra_tags)

            if not topic.is_assigned:
                assign_alert(db, topic, receiver, assignee=explicit_assignee(db, payload))

            db.commit()

    logger.info(
        "Alert notification processed",
        extra={"alertname": alertname, "topic_id": topic.id, "alerts_changed": bool(changed)},
    )
    return topic


def process_grouped_alerts(
    db: Session,
    *,
    token: str,
    data: Sequence[Mapping[str, Any]],
    external_url: str | None,
) -> list[int]:
    """Resync alert state from Alertmanager's full alert list.

    Alerts are routed to topics through the receiver's topic map; alerts of
    unmapped groups are dropped. Active alerts missing from ``data`` go stale.
    Returns the ids of the revised topics.
    """

    receiver = receivers_service.get_receiver(db, token)
    if receiver is None:
        logger.warning("Grouped alerts received for unknown receiver")
        return []

    records = []
    for alert in parse_alerts(data, external_url=external_url):
        topic_id = receiver.topic_id_for(alert["alertname"])
        if topic_id is None:
            continue
        alert["topic_id"] = topic_id
        records.append(alert)

    updated_topic_ids = alerts_service.update_alerts(db, records, mark_stale_external_url=external_url)
    if not updated_topic_ids:
        db.commit()
        return []

    revised: list[int] = []
    for topic in db.scalars(select(Topic).where(Topic.id.in_(updated_topic_ids))).all():
        with synchronize(topic_lock_name(topic.id)):
            if receiver.alertname_for(topic.id) is not None and revise_topic(db, topic):
                revised.append(topic.id)

    db.commit()
    logger.info(
        "Grouped alerts processed",
        extra={"alerts": len(records), "topics_updated": len(updated_topic_ids), "topics_revised": len(revised)},
    )
    return revised


__all__ = ["process_alert", "process_grouped_alerts"]
