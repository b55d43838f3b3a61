"""Automatic assignment of alert topics."""
from __future__ import annotations

import logging
import random
from typing import Any, Mapping

import httpx
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from alert_receiver.config import get_settings
from alert_receiver.models.group import Group, GroupMember
from alert_receiver.models.receiver import Receiver
from alert_receiver.models.topic import Topic
from alert_receiver.models.user import User
from alert_receiver.services import opsgenie

logger = logging.getLogger(__name__)

Assignee = User | Group


def _find_group(db: Session, id_or_name: int | str) -> Group | None:
    text = str(id_or_name).strip()
    if text.isdigit():
        return db.get(Group, int(text))
    return db.scalars(select(Group).where(func.lower(Group.name) == text.lower())).first()


def random_group_member(db: Session, id_or_name: int | str | None) -> User | None:
    """Return a random active member of the group, looked up by id or name."""

    if id_or_name is None:
        return None
    group = _find_group(db, id_or_name)
    if group is None:
        return None
    members = [user for user in group.users if user.is_active]
    return random.choice(members) if members else None


def explicit_assignee(db: Session, payload: Mapping[str, Any]) -> Assignee | None:
    """Return the user or group named by the payload's common annotations."""

    annotations = payload.get("commonAnnotations") or {}
    username = annotations.get("topic_assignee")
    if username:
        user = db.scalars(select(User).where(User.username == username)).first()
        if user is None:
            logger.warning("Requested topic assignee not found", extra={"username": username})
        return user

    group_name = annotations.get("topic_group_assignee") or annotations.get("group_topic_assignee")
    if group_name:
        group = _find_group(db, group_name)
        if group is None:
            logger.warning("Requested topic group assignee not found", extra={"group": group_name})
        return group
    return None


def _on_call_users(db: Session, receiver: Receiver) -> list[User]:
    try:
        emails = opsgenie.users_on_rotation()
    except (opsgenie.OpsgenieError, httpx.HTTPError):
        logger.warning("Opsgenie rotation lookup failed", exc_info=True)
        return []
    if not emails:
        return []

    stmt = select(User).where(User.email.in_(emails), User.is_active.is_(True))
    if receiver.assignee_group_id is not None:
        stmt = stmt.join(GroupMember, GroupMember.user_id == User.id).where(
            GroupMember.group_id == receiver.assignee_group_id
        )
    return list(db.scalars(stmt).all())


def assign_alert(
    db: Session,
    topic: Topic,
    receiver: Receiver,
    *,
    assignee: Assignee | None = None,
) -> Assignee | None:
    """Assign ``topic`` to ``assignee`` or to whoever is on call.

    On-call users come from Opsgenie, restricted to the receiver's assignee
    group; without any, a random member of that group is picked.
    """

    if not get_settings().PROMETHEUS_ALERT_RECEIVER_ENABLE_ASSIGN:
        return None

    if assignee is None:
        candidates = _on_call_users(db, receiver)
        assignee = random.choice(candidates) if candidates else random_group_member(db, receiver.assignee_group_id)

    if assignee is None:
        logger.info("No assignee available for alert topic", extra={"topic_id": topic.id})
        return None

    if isinstance(assignee, Group):
        topic.assigned_group_id = assignee.id
        topic.assigned_user_id = None
    else:
        topic.assigned_user_id = assignee.id
        topic.assigned_group_id = None
    db.flush()
    logger.info(
        "Alert topic assigned",
        extra={"topic_id": topic.id, "assignee_type": type(assignee).__name__, "assignee_id": assignee.id},
    )
    return assignee


__all__ = ["assign_alert", "explicit_assignee", "random_group_member"]
