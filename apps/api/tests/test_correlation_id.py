from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from goodcall import events
from goodcall.audit.models import AuditLog
from goodcall.catalog.models import Company
from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.config import get_settings
from goodcall.core.database import Base, get_db
from goodcall.main import app
from goodcall.middleware.rate_limit import reset_rate_limiter
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
def clear_stubs() -> Generator[None, None, None]:
    events.published_events.clear()
    reset_rate_limiter()
    get_settings.cache_clear()
    yield
    events.published_events.clear()
    reset_rate_limiter()
    get_settings.cache_clear()


@pytest.fixture()
def manager(db_session: Session) -> User:
    user = User(
        username="gerente",
        email="gerente@goodcall.com",
        password_hash="not-used",
        first_name="Gema",
        last_name="Ruiz",
        role="gerencia",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def client(db_session: Session, manager: User) -> Generator[TestClient, None, None]:
    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: AuthUser(
        sub=str(manager.id), username=manager.username, role=manager.role
    )
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _create_sale(client: TestClient, db_session: Session, correlation_id: str) -> dict:
    company = Company(name="Movistar", code="MOV")
    db_session.add(company)
    db_session.commit()
    response = client.post(
        "/api/sales",
        json={"client_name": "Cliente", "client_dni": "12345678Z", "company_id": str(company.id)},
        headers={"X-Correlation-Id": correlation_id},
    )
    assert response.status_code == 201
    return response.json()


def test_generated_correlation_id_returned_in_header_and_error_envelope(client: TestClient) -> None:
    response = client.get(f"/api/sales/{uuid.uuid4()}")
    assert response.status_code == 404
    header_value = response.headers.get("x-correlation-id")
    assert header_value
    body = response.json()
    assert body["correlation_id"] == header_value
    assert body["code"] == "NOT_FOUND"


def test_correlation_id_respected_when_provided(client: TestClient) -> None:
    response = client.get(f"/api/sales/{uuid.uuid4()}", headers={"X-Correlation-Id": "abc-123"})
    assert response.status_code == 404
    assert response.headers.get("x-correlation-id") == "abc-123"
    assert response.json()["correlation_id"] == "abc-123"


def test_validation_errors_carry_correlation_id(client: TestClient) -> None:
    response = client.post("/api/sales", json={"client_name": ""}, headers={"X-Correlation-Id": "corr-422"})
    assert response.status_code == 422
    body = response.json()
    assert body["code"] == "VALIDATION_ERROR"
    assert body["correlation_id"] == "corr-422"
    assert body["details"]


def test_audit_uses_request_correlation_id(client: TestClient, db_session: Session) -> None:
    sale = _create_sale(client, db_session, "corr-audit-1")

    entry = db_session.scalar(select(AuditLog).where(AuditLog.action == "sale.created"))
    assert entry is not None
    assert entry.entity_id == sale["id"]
    assert entry.correlation_id == "corr-audit-1"
    assert entry.user_agent


def test_event_envelope_includes_correlation_id(client: TestClient, db_session: Session) -> None:
    _create_sale(client, db_session, "corr-event-1")

    created_events = [item for item in events.published_events if item.get("event_type") == "sale.created"]
    assert created_events
    assert created_events[-1].get("correlation_id") == "corr-event-1"


def test_rate_limited_response_includes_correlation_id(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "false")
    monkeypatch.setenv("RATE_LIMIT_LOGIN_PER_MINUTE", "1")
    get_settings.cache_clear()
    reset_rate_limiter()

    payload = {"username": "nobody", "password": "password-1"}
    first = client.post("/api/auth/login", json=payload, headers={"X-Correlation-Id": "corr-rate-1"})
    assert first.status_code == 401

    second = client.post("/api/auth/login", json=payload, headers={"X-Correlation-Id": "corr-rate-1"})
    assert second.status_code == 429
    assert second.json()["correlation_id"] == "corr-rate-1"
    assert second.headers.get("x-correlation-id") == "corr-rate-1"


def test_malformed_or_oversized_correlation_id_is_replaced(client: TestClient) -> None:
    for incoming in ("x" * 129, "bad id with spaces", "semi;colon"):
        response = client.get(f"/api/sales/{uuid.uuid4()}", headers={"X-Correlation-Id": incoming})
        assert response.status_code == 404
        returned = response.headers.get("x-correlation-id")
        assert returned != incoming
        assert uuid.UUID(returned)
        assert response.json()["correlation_id"] == returned


def test_recent_events_buffer_is_bounded() -> None:
    for index in range(events.RECENT_EVENTS_LIMIT + 10):
        events.publish(events.build_envelope("test.tick", None, {"index": index}))

    assert len(events.published_events) == events.RECENT_EVENTS_LIMIT
    assert events.published_events[0]["payload"]["index"] == 10
    assert events.published_events[-1]["payload"]["index"] == events.RECENT_EVENTS_LIMIT + 9
