"""Tests for the alert topic read endpoints."""
import pytest
from sqlalchemy import select

from alert_receiver.models import Topic


@pytest.mark.anyio
async def test_firing_topics(client, db_session, make_receiver, alert_factory, webhook_factory):
    receiver = make_receiver()
    await client.post(f"/prometheus/receiver/{receiver.token}", json=webhook_factory([alert_factory()]))
    [topic] = db_session.scalars(select(Topic)).all()

    response = await client.get("/prometheus/topics/firing")
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["topics"][0]["id"] == topic.id
    assert body["topics"][0]["title"] == topic.title

    response = await client.get("/prometheus/topics/firing", params={"category_id": receiver.category_id + 1000})
    assert response.json() == {"count": 0, "topics": []}


@pytest.mark.anyio
async def test_topic_alerts(client, db_session, make_receiver, alert_factory, webhook_factory):
    receiver = make_receiver()
    payload = webhook_factory([alert_factory(identifier="a1"), alert_factory(identifier="a2")])
    await client.post(f"/prometheus/receiver/{receiver.token}", json=payload)
    [topic] = db_session.scalars(select(Topic)).all()

    response = await client.get(f"/prometheus/topics/{topic.id}/alerts")
    assert response.status_code == 200
    alerts = response.json()
    assert sorted(alert["identifier"] for alert in alerts) == ["a1", "a2"]
    assert {alert["status"] for alert in alerts} == {"firing"}
    assert alerts[0]["external_url"] == "http://alertmanager.example.com"


@pytest.mark.anyio
async def test_topic_alerts_for_missing_topic(client):
    response = await client.get("/prometheus/topics/987654/alerts")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"
