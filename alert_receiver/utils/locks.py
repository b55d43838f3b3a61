"""Process-wide named locks used to serialize work per receiver and per topic.

An entry lives in the registry only while some thread holds or waits on it, so
one-off names (topic ids, retired receiver tokens) don't accumulate.
"""
from __future__ import annotations

import threading
from collections.abc import Iterator
from contextlib import contextmanager


class _Entry:
    __slots__ = ("lock", "users")

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.users = 0


_locks: dict[str, _Entry] = {}
_registry_guard = threading.Lock()


def _acquire_entry(name: str) -> _Entry:
    with _registry_guard:
        entry = _locks.get(name)
        if entry is None:
            entry = _locks[name] = _Entry()
        entry.users += 1
        return entry


def _release_entry(name: str, entry: _Entry) -> None:
    with _registry_guard:
        entry.users -= 1
        if entry.users == 0:
            del _locks[name]


@contextmanager
def synchronize(name: str) -> Iterator[None]:
    """Hold the lock called ``name`` for the duration of the block."""

    entry = _acquire_entry(name)
    try:
        with entry.lock:
            yield
    finally:
        _release_entry(name, entry)


def held_lock_names() -> list[str]:
    """Names currently held or waited on, mostly useful when debugging stalls."""

    with _registry_guard:
        return sorted(_locks)


def receiver_lock_name(token: str) -> str:
    return f"prom-alert-{token}"


def topic_lock_name(topic_id: int) -> str:
    return f"prom_alert_receiver_topic_{topic_id}"


__all__ = ["held_lock_names", "synchronize", "receiver_lock_name", "topic_lock_name"]
