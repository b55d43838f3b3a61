"""Receiver creation and lookup."""
from __future__ import annotations

import logging
import re
import secrets

from sqlalchemy import select
from sqlalchemy.orm import Session

from alert_receiver.config import get_settings
from alert_receiver.models.category import Category
from alert_receiver.models.group import Group
from alert_receiver.models.receiver import Receiver
from alert_receiver.utils.errors import invalid_parameters

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"[a-f0-9]{64}")


def is_valid_token(token: str | None) -> bool:
    return bool(token) and TOKEN_RE.fullmatch(token) is not None


def receiver_url(token: str) -> str:
    return f"{get_settings().base_url}/prometheus/receiver/{token}"


def generate_receiver(
    db: Session,
    *,
    category_id: int,
    assignee_group_id: int | None = None,
    created_by: str | None = None,
) -> tuple[Receiver, str]:
    """Create a receiver posting into ``category_id`` and return it with its URL."""

    category = db.get(Category, category_id)
    if category is None:
        raise invalid_parameters("Unknown category.", {"category_id": category_id})

    if assignee_group_id is not None and db.get(Group, assignee_group_id) is None:
        raise invalid_parameters("Unknown assignee group.", {"assignee_group_id": assignee_group_id})

    receiver = Receiver(
        token=secrets.token_hex(32),
        category_id=category.id,
        assignee_group_id=assignee_group_id,
        created_by=created_by,
        topic_map={},
    )
    db.add(receiver)
    db.commit()
    db.refresh(receiver)
    logger.info(
        "Alert receiver generated",
        extra={"receiver_id": receiver.id, "category_id": category.id, "assignee_group_id": assignee_group_id},
    )
    return receiver, receiver_url(receiver.token)


def get_receiver(db: Session, token: str) -> Receiver | None:
    return db.scalars(select(Receiver).where(Receiver.token == token)).one_or_none()


def find_receiver(db: Session, token: str) -> Receiver:
    """Return the receiver for ``token`` or raise a 400 when it can't be used."""

    receiver = get_receiver(db, token)
    if receiver is None:
        raise invalid_parameters("Unknown receiver token.")
    if db.get(Category, receiver.category_id) is None:
        raise invalid_parameters("Receiver category no longer exists.")
    return receiver


def map_topic(receiver: Receiver, alertname: str | None, topic_id: int) -> None:
    """Point ``alertname`` at ``topic_id`` in the receiver's topic map."""

    topic_map = dict(receiver.topic_map or {})
    topic_map[Receiver.map_key(alertname)] = topic_id
    receiver.topic_map = topic_map


__all__ = [
    "TOKEN_RE",
    "is_valid_token",
    "receiver_url",
    "generate_receiver",
    "get_receiver",
    "find_receiver",
    "map_topic",
]
