"""Process-wide runtime flags shared across modules."""
from __future__ import annotations

from datetime import datetime

_scheduler_active = False
_last_webhook_at: dict[str, datetime] = {}


def set_scheduler_active(active: bool) -> None:
    global _scheduler_active
    _scheduler_active = active


def is_scheduler_active() -> bool:
    return _scheduler_active


def record_webhook(kind: str, at: datetime) -> None:
    """Remember when a webhook of ``kind`` was last accepted."""

    _last_webhook_at[kind] = at


def last_webhooks() -> dict[str, str]:
    return {kind: at.isoformat() for kind, at in _last_webhook_at.items()}
