"""Topic title, body and tag generation for alert topics."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.orm import Session

from alert_receiver.config import get_settings
from alert_receiver.models.topic import Topic
from alert_receiver.services import alerts as alerts_service
from alert_receiver.utils.time import as_utc, utcnow

logger = logging.getLogger(__name__)

FIRING_TAG = "firing"
MAX_BUMP_RATE = timedelta(minutes=5)

UNTITLED = "Untitled alert"
FIRING_TITLE = "{base_title} ({count} firing)"


def generate_title(base_title: str | None, firing_count: int) -> str:
    base_title = base_title or UNTITLED
    if firing_count > 0:
        return FIRING_TITLE.format(base_title=base_title, count=firing_count)
    return base_title


def local_date(value: datetime) -> str:
    """Render ``value`` as a date tag that readers see in their own timezone."""

    value = as_utc(value)
    return (
        f'[date={value.strftime("%Y-%m-%d")} time={value.strftime("%H:%M:%S")} '
        'format="YYYY-MM-DD HH:mm" displayedTimezone="UTC"]'
    )


def prev_topic_link(db: Session, topic_id: int | None) -> str:
    if topic_id is None:
        return ""
    created_at = db.scalar(select(Topic.created_at).where(Topic.id == topic_id))
    if created_at is None:
        return ""
    base_url = get_settings().base_url
    return f"[Previous alert]({base_url}/t/{topic_id}) {local_date(created_at)}\n\n"


def first_post_body(db: Session, *, topic_body: str | None = "", prev_topic_id: int | None = None) -> str:
    output = topic_body or ""
    if prev_topic_id:
        output += f"\n\n{prev_topic_link(db, prev_topic_id)}"
    return output


def _merge_tags(*groups: Iterable[str | None]) -> list[str]:
    merged: list[str] = []
    for group in groups:
        for tag in group:
            if tag and tag not in merged:
                merged.append(tag)
    return merged


def create_topic(
    db: Session,
    *,
    category_id: int,
    base_title: str,
    topic_body: str | None,
    prev_topic_id: int | None,
    tags: Iterable[str | None] = (),
    firing: bool = False,
) -> Topic:
    """Create the topic tracking a new alert group."""

    initial_tags = _merge_tags(tags)
    if firing and FIRING_TAG not in initial_tags:
        initial_tags.append(FIRING_TAG)

    topic = Topic(
        title=generate_title(base_title, 0),
        raw=first_post_body(db, topic_body=topic_body, prev_topic_id=prev_topic_id),
        category_id=category_id,
        tags=initial_tags,
        base_title=base_title,
        topic_body=topic_body,
        previous_topic_id=prev_topic_id,
        bumped_at=utcnow(),
    )
    db.add(topic)
    db.flush()
    logger.info(
        "Alert topic created",
        extra={"topic_id": topic.id, "category_id": category_id, "previous_topic_id": prev_topic_id},
    )
    return topic


def revise_topic(db: Session, topic: Topic, *, ensure_tags: Iterable[str] = ()) -> bool:
    """Bring title, body and tags in line with the topic's alerts.

    Returns ``True`` when the topic was written to.
    """

    db.flush()
    firing_count = alerts_service.firing_count(db, topic.id)
    firing = firing_count > 0

    title = generate_title(topic.base_title, firing_count)
    raw = first_post_body(db, topic_body=topic.topic_body, prev_topic_id=topic.previous_topic_id)

    existing_tags = list(topic.tags or [])
    new_tags = _merge_tags(existing_tags, ensure_tags, alerts_service.datacenters(db, topic.id))
    if firing:
        if FIRING_TAG not in new_tags:
            new_tags.append(FIRING_TAG)
    elif FIRING_TAG in new_tags:
        new_tags.remove(FIRING_TAG)

    tags_changed = new_tags != existing_tags
    title_changed = topic.title != title
    raw_changed = topic.raw != raw

    if not (raw_changed or title_changed or tags_changed):
        return False

    topic.title = title
    topic.raw = raw
    topic.tags = new_tags

    now = utcnow()
    if firing and title_changed and as_utc(topic.bumped_at) < now - MAX_BUMP_RATE:
        topic.bumped_at = now

    db.flush()
    logger.info(
        "Alert topic revised",
        extra={
            "topic_id": topic.id,
            "firing_count": firing_count,
            "title_changed": title_changed,
            "tags_changed": tags_changed,
        },
    )
    return True


__all__ = [
    "FIRING_TAG",
    "MAX_BUMP_RATE",
    "generate_title",
    "local_date",
    "prev_topic_link",
    "first_post_body",
    "create_topic",
    "revise_topic",
]
