from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from starlette.requests import Request
from starlette.routing import Route

from goodcall.catalog.models import Company
from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.config import get_settings
from goodcall.core.database import Base, get_db
from goodcall.main import app
from goodcall.metrics import resolve_http_path_label
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
def configure_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("METRICS_ENABLED", "true")
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "true")
    get_settings.cache_clear()
    reset_rate_limiter()
    yield
    get_settings.cache_clear()
    reset_rate_limiter()


@pytest.fixture()
def developer(db_session: Session) -> User:
    user = User(
        username="dev",
        email="dev@goodcall.com",
        password_hash="not-used",
        first_name="Dev",
        last_name="Ops",
        role="developer",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture()
def current() -> dict[str, AuthUser]:
    return {}


@pytest.fixture()
def client(db_session: Session, developer: User, current: dict[str, AuthUser]) -> Generator[TestClient, None, None]:
    current["user"] = AuthUser(sub=str(developer.id), username=developer.username, role=developer.role)

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = lambda: current["user"]

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def test_metrics_endpoint_exposes_http_and_domain_metrics(client: TestClient, db_session: Session) -> None:
    assert client.get("/health").status_code == 200

    company = Company(name="Vodafone", code="VOD")
    db_session.add(company)
    db_session.commit()

    sale = client.post(
        "/api/sales",
        json={"client_name": "Metrics Client", "client_dni": "X1234567L", "company_id": str(company.id)},
    )
    assert sale.status_code == 201
    assert client.delete(f"/api/sales/{sale.json()['id']}").status_code == 200
    assert client.post(f"/api/sales/{sale.json()['id']}/restore").status_code == 200
    client.post("/api/auth/login", json={"username": "ghost", "password": "password-1"})

    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    body = metrics.text

    assert "http_requests_total" in body
    assert "http_request_duration_seconds" in body
    assert 'path="/health"' in body
    assert 'path="/api/sales/{id}"' in body
    assert 'soft_deletes_total{model="Sale"}' in body
    assert 'soft_delete_restores_total{model="Sale"}' in body
    assert 'auth_login_attempts_total{outcome="unknown_user"}' in body


def test_metrics_require_capability(client: TestClient, current: dict[str, AuthUser]) -> None:
    current["user"] = AuthUser(sub=current["user"].sub, username="dev", role="asesor")

    response = client.get("/metrics")
    assert response.status_code == 403
    assert response.json()["code"] == "FORBIDDEN"


def test_metrics_hidden_when_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("METRICS_ENABLED", "false")
    get_settings.cache_clear()

    assert client.get("/metrics").status_code == 404


def _labelled_request(path: str, route: Route | None) -> Request:
    scope = {"type": "http", "method": "GET", "path": path, "headers": [], "query_string": b""}
    if route is not None:
        scope["route"] = route
    return Request(scope)


def test_path_label_keeps_router_prefix_for_relative_templates() -> None:
    route = Route("/sales/{sale_id}", endpoint=lambda request: None)

    assert resolve_http_path_label(_labelled_request("/api/sales/42", route)) == "/api/sales/{id}"
    assert resolve_http_path_label(_labelled_request("/sales/42", route)) == "/sales/{id}"


def test_path_label_without_route_hides_identifiers() -> None:
    label = resolve_http_path_label(_labelled_request("/api/goals/5f0c6d2e-8a51-4c9b-9d3e-6a1f2b3c4d5e", None))
    assert label == "/api/goals/{id}"
