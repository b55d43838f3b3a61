"""Test configuration."""
import os
import secrets
from collections.abc import AsyncIterator, Callable, Iterator
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# --- Default env for the test run
os.environ.setdefault("DATABASE_URL", "sqlite:///./alert_receiver_test.db")
os.environ.setdefault("ADMIN_API_KEY", "test-admin-key")
os.environ.setdefault("BASE_URL", "http://test.localhost")
os.environ.setdefault("ALERT_RECEIVER_ENV", "test")
os.environ.setdefault("JOBS_RUN_IMMEDIATELY", "true")
os.environ.setdefault("PROMETHEUS_ALERT_RECEIVER_OPSGENIE_API_KEY", "")

from alert_receiver.main import app  # noqa: E402
from alert_receiver.db import get_db  # noqa: E402
from alert_receiver.models import (  # noqa: E402
    Base,
    Category,
    Group,
    GroupMember,
    Receiver,
    Topic,
    User,
)
from alert_receiver.services import opsgenie  # noqa: E402
from alert_receiver.utils.time import utcnow  # noqa: E402

DB_PATH = Path("./alert_receiver_test.db")

EXTERNAL_URL = "http://alertmanager.example.com"

# --- Reset the DB file at the start of the session
if DB_PATH.exists():
    DB_PATH.unlink()

engine = create_engine(
    os.environ["DATABASE_URL"],
    connect_args={"check_same_thread": False},
    future=True,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False,
                                   future=True, expire_on_commit=False)

Base.metadata.create_all(bind=engine)


@pytest.fixture
def db_session() -> Iterator[Session]:
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


@pytest.fixture(autouse=True)
def override_db_dependency(db_session: Session) -> Iterator[None]:
    def _get_db() -> Iterator[Session]:
        yield db_session
    app.dependency_overrides[get_db] = _get_db
    yield
    app.dependency_overrides.pop(get_db, None)


@pytest.fixture(autouse=True)
def reset_opsgenie_cache() -> Iterator[None]:
    opsgenie.clear_cache()
    yield
    opsgenie.clear_cache()


@pytest.fixture
async def client() -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client


@pytest.fixture
def admin_headers() -> dict[str, str]:
    return {"Authorization": f"Bearer {os.environ['ADMIN_API_KEY']}"}


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def make_category(db_session: Session) -> Callable[..., Category]:
    def _factory(name: str = "Alerts") -> Category:
        category = Category(name=name, slug=f"{name.lower()}-{uuid4().hex[:8]}")
        db_session.add(category)
        db_session.flush()
        return category

    return _factory


@pytest.fixture
def make_user(db_session: Session) -> Callable[..., User]:
    def _factory(username: str | None = None, *, email: str | None = None) -> User:
        username = username or f"user-{uuid4().hex[:8]}"
        user = User(username=username, email=email or f"{username}@example.com")
        db_session.add(user)
        db_session.flush()
        return user

    return _factory


@pytest.fixture
def make_group(db_session: Session) -> Callable[..., Group]:
    def _factory(name: str | None = None, members: tuple[User, ...] = ()) -> Group:
        group = Group(name=name or f"group-{uuid4().hex[:8]}")
        db_session.add(group)
        db_session.flush()
        for user in members:
            db_session.add(GroupMember(group_id=group.id, user_id=user.id))
        db_session.flush()
        db_session.refresh(group)
        return group

    return _factory


@pytest.fixture
def make_receiver(db_session: Session, make_category) -> Callable[..., Receiver]:
    def _factory(
        *,
        category: Category | None = None,
        assignee_group: Group | None = None,
        topic_map: dict[str, int] | None = None,
    ) -> Receiver:
        category = category or make_category()
        receiver = Receiver(
            token=secrets.token_hex(32),
            category_id=category.id,
            assignee_group_id=assignee_group.id if assignee_group else None,
            topic_map=dict(topic_map or {}),
        )
        db_session.add(receiver)
        db_session.flush()
        return receiver

    return _factory


@pytest.fixture
def make_topic(db_session: Session, make_category) -> Callable[..., Topic]:
    def _factory(
        *,
        category: Category | None = None,
        base_title: str = "Some alert",
        closed: bool = False,
        tags: list[str] | None = None,
    ) -> Topic:
        category = category or make_category()
        topic = Topic(
            title=base_title,
            raw="",
            category_id=category.id,
            base_title=base_title,
            closed=closed,
            tags=list(tags or []),
        )
        db_session.add(topic)
        db_session.flush()
        return topic

    return _factory


def _timestamp(value: datetime) -> str:
    return value.strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def build_alert(
    *,
    alertname: str = "AnAlert",
    identifier: str | None = "alert-1",
    status: Any = "firing",
    datacenter: str | None = "dc1",
    description: str | None = "Something is on the loose",
    starts_at: datetime | None = None,
    ends_at: datetime | None = None,
    annotations: dict[str, str] | None = None,
) -> dict[str, Any]:
    labels = {"alertname": alertname}
    if identifier is not None:
        labels["id"] = identifier
    if datacenter is not None:
        labels["datacenter"] = datacenter
    alert_annotations = dict(annotations or {})
    if description is not None:
        alert_annotations["description"] = description
    return {
        "status": status,
        "labels": labels,
        "annotations": alert_annotations,
        "startsAt": _timestamp(starts_at or utcnow() - timedelta(minutes=1)),
        "endsAt": _timestamp(ends_at) if ends_at else "0001-01-01T00:00:00Z",
        "generatorURL": "http://prometheus.example.com/graph?g0.expr=up",
    }


def build_webhook(
    alerts: list[dict[str, Any]],
    *,
    status: str = "firing",
    alertname: str = "AnAlert",
    datacenter: str | None = "dc1",
    group_labels: dict[str, str] | None = None,
    annotations: dict[str, str] | None = None,
    external_url: str = EXTERNAL_URL,
) -> dict[str, Any]:
    common_labels = {"alertname": alertname}
    if datacenter is not None:
        common_labels["datacenter"] = datacenter
    common_annotations = {
        "topic_title": "Alert investigation required: AnAlert is on the loose",
        "topic_body": "Test topic... test topic... whoop whoop",
    }
    if annotations is not None:
        common_annotations = dict(annotations)
    return {
        "version": "4",
        "groupKey": "{}:{alertname=\"%s\"}" % alertname,
        "status": status,
        "receiver": "forum",
        "externalURL": external_url,
        "groupLabels": group_labels if group_labels is not None else {"alertname": alertname},
        "commonLabels": common_labels,
        "commonAnnotations": common_annotations,
        "alerts": alerts,
    }


@pytest.fixture
def alert_factory() -> Callable[..., dict[str, Any]]:
    return build_alert


@pytest.fixture
def webhook_factory() -> Callable[..., dict[str, Any]]:
    return build_webhook
