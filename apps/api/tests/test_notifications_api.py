from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from goodcall import events
from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.config import get_settings
from goodcall.core.database import Base, get_db
from goodcall.main import app
from goodcall.middleware.rate_limit import reset_rate_limiter
from goodcall.notifications.models import Notification
from goodcall.users.models import User


@pytest.fixture()
def db_session() -> Generator[Session, None, None]:
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "true")
    get_settings.cache_clear()
    reset_rate_limiter()
    events.published_events.clear()
    yield
    get_settings.cache_clear()
    reset_rate_limiter()
    events.published_events.clear()


def _user(session: Session, username: str, role: str) -> User:
    user = User(
        username=username,
        email=f"{username}@goodcall.com",
        password_hash="not-used",
        first_name=username.title(),
        last_name="Test",
        role=role,
    )
    session.add(user)
    session.commit()
    return user


@pytest.fixture()
def manager(db_session: Session) -> User:
    return _user(db_session, "gerente", "gerencia")


@pytest.fixture()
def asesor(db_session: Session) -> User:
    return _user(db_session, "ana", "asesor")


@pytest.fixture()
def current(manager: User) -> dict[str, AuthUser]:
    return {"user": AuthUser(sub=str(manager.id), username=manager.username, role=manager.role)}


@pytest.fixture()
def client(db_session: Session, current: dict[str, AuthUser]) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current["user"]
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _notify(client: TestClient, user: User, title: str) -> dict:
    response = client.post(
        "/api/notifications",
        json={"user_id": str(user.id), "type": "goal", "title": title, "message": f"{title} body"},
    )
    assert response.status_code == 201
    return response.json()


def _act_as(current: dict[str, AuthUser], user: User) -> None:
    current["user"] = AuthUser(sub=str(user.id), username=user.username, role=user.role)


def test_create_publishes_targeted_event(client: TestClient, asesor: User) -> None:
    created = _notify(client, asesor, "Meta alcanzada")
    assert created["is_read"] is False

    envelope = events.published_events[-1]
    assert envelope["event_type"] == "notification.created"
    assert envelope["payload"]["user_id"] == str(asesor.id)
    assert envelope["payload"]["data"]["id"] == created["id"]


def test_unknown_recipient_is_not_found(client: TestClient) -> None:
    response = client.post(
        "/api/notifications",
        json={"user_id": str(uuid.uuid4()), "title": "Hola", "message": "Nadie"},
    )
    assert response.status_code == 404


def test_read_flow_is_scoped_to_recipient(
    client: TestClient,
    db_session: Session,
    asesor: User,
    current: dict[str, AuthUser],
) -> None:
    first = _notify(client, asesor, "Uno")
    _notify(client, asesor, "Dos")
    _notify(client, asesor, "Tres")

    # the manager is not the recipient
    assert client.get(f"/api/notifications/{first['id']}").status_code == 404
    assert client.get("/api/notifications").json() == []

    _act_as(current, asesor)
    assert client.get("/api/notifications/unread-count").json() == {"count": 3}

    read = client.patch(f"/api/notifications/{first['id']}/read")
    assert read.status_code == 200
    assert read.json()["is_read"] is True
    assert read.json()["read_at"] is not None

    unread = client.get("/api/notifications", params={"unread_only": True}).json()
    assert sorted(row["title"] for row in unread) == ["Dos", "Tres"]

    assert client.patch("/api/notifications/read-all").json() == {"updated": 2}
    assert client.get("/api/notifications/unread-count").json() == {"count": 0}

    assert client.delete(f"/api/notifications/{first['id']}").status_code == 200
    assert client.get(f"/api/notifications/{first['id']}").status_code == 404
    assert db_session.query(Notification).count() == 2


def test_only_managers_create_notifications(client: TestClient, asesor: User, current: dict[str, AuthUser]) -> None:
    _act_as(current, asesor)
    response = client.post(
        "/api/notifications",
        json={"user_id": str(asesor.id), "title": "Hola", "message": "Yo mismo"},
    )
    assert response.status_code == 403
