"""Tests for the Opsgenie on-call lookup."""
from datetime import UTC, datetime

import httpx
import pytest
from sqlalchemy import select

from alert_receiver.config import get_settings
from alert_receiver.models import Topic
from alert_receiver.services import opsgenie

SCHEDULES = {"data": [{"id": "uuid1", "name": "Up"}, {"id": "uuid2", "name": "Down"}]}


def _schedule(start_hour: int, end_hour: int, usernames: list[str]) -> dict:
    return {
        "data": {
            "id": "uuid",
            "name": "East",
            "timezone": "Etc/UTC",
            "rotations": [
                {
                    "id": "uuid",
                    "name": "name1",
                    "type": "daily",
                    "participants": [{"type": "user", "username": name} for name in usernames],
                    "timeRestriction": {
                        "type": "time-of-day",
                        "restriction": {"startHour": start_hour, "endHour": end_hour, "startMin": 0, "endMin": 0},
                    },
                }
            ],
        }
    }


RESPONSES = {
    "/schedules": SCHEDULES,
    "/schedules/uuid1": _schedule(21, 5, ["user1@example.com", "user2@example.com"]),
    "/schedules/uuid2": _schedule(0, 8, ["user3@example.com", "user4@example.com"]),
}


@pytest.fixture
def opsgenie_api(monkeypatch):
    calls: list[str] = []

    def _fake_get(path: str) -> dict:
        calls.append(path)
        return RESPONSES[path]

    monkeypatch.setattr(get_settings(), "PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY", "somekey")
    monkeypatch.setattr(opsgenie, "_get", _fake_get)
    return calls


@pytest.mark.parametrize(
    ("hour", "expected"),
    [
        (21, ["user1@example.com", "user2@example.com"]),
        (8, []),
        (5, ["user3@example.com", "user4@example.com"]),
        (3, ["user1@example.com", "user2@example.com", "user3@example.com", "user4@example.com"]),
    ],
)
def test_users_on_rotation(opsgenie_api, hour, expected):
    now = datetime(2010, 1, 10, hour, 0, tzinfo=UTC)
    assert opsgenie.users_on_rotation(now=now) == expected


def test_rotations_are_cached(opsgenie_api):
    now = datetime(2010, 1, 10, 3, 0, tzinfo=UTC)
    opsgenie.users_on_rotation(now=now)
    opsgenie.users_on_rotation(now=now)

    assert opsgenie_api == ["/schedules", "/schedules/uuid1", "/schedules/uuid2"]


def test_no_api_key_means_nobody_on_call(monkeypatch):
    monkeypatch.setattr(get_settings(), "PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY", None)

    def _fail(path: str) -> dict:  # pragma: no cover - must not be called
        raise AssertionError("Opsgenie must not be called without an API key")

    monkeypatch.setattr(opsgenie, "_get", _fail)
    assert opsgenie.users_on_rotation() == []


def test_get_sends_genie_key_and_raises_on_error(monkeypatch):
    monkeypatch.setattr(get_settings(), "PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY", "somekey")
    seen: dict = {}

    def _fake_httpx_get(url, headers=None, timeout=None):
        seen["url"] = url
        seen["headers"] = headers
        return httpx.Response(503, text="unavailable", request=httpx.Request("GET", url))

    monkeypatch.setattr(opsgenie.httpx, "get", _fake_httpx_get)

    with pytest.raises(opsgenie.OpsgenieError, match="503"):
        opsgenie._get("/schedules")

    assert seen["url"] == "https://api.eu.opsgenie.com/v2/schedules"
    assert seen["headers"] == {"Authorization": "GenieKey somekey"}


def test_covers_hour_wraps_over_midnight():
    assert opsgenie.covers_hour(21, 5, 23)
    assert opsgenie.covers_hour(21, 5, 0)
    assert not opsgenie.covers_hour(21, 5, 5)
    assert opsgenie.covers_hour(0, 8, 7)
    assert not opsgenie.covers_hour(0, 8, 8)


@pytest.mark.anyio
async def test_opsgenie_failure_falls_back_to_group_member(
    monkeypatch, client, db_session, make_receiver, make_group, make_user, alert_factory, webhook_factory
):
    monkeypatch.setattr(get_settings(), "PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY", "somekey")

    def _broken(path: str) -> dict:
        raise opsgenie.OpsgenieError("(500) boom")

    monkeypatch.setattr(opsgenie, "_get", _broken)
    member = make_user()
    receiver = make_receiver(assignee_group=make_group(members=(member,)))

    response = await client.post(f"/prometheus/receiver/{receiver.token}", json=webhook_factory([alert_factory()]))
    assert response.status_code == 200

    [topic] = db_session.scalars(select(Topic)).all()
    assert topic.assigned_user_id == member.id
