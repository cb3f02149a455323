from __future__ import annotations

from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

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
def setup_env(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("RATE_LIMIT_DISABLED", "true")
    get_settings.cache_clear()
    reset_rate_limiter()
    yield
    get_settings.cache_clear()
    reset_rate_limiter()


@pytest.fixture()
def current(db_session: Session) -> dict[str, AuthUser]:
    manager = User(
        username="gerente",
        email="gerente@goodcall.com",
        password_hash="not-used",
        first_name="Gema",
        last_name="Ruiz",
        role="gerencia",
    )
    db_session.add(manager)
    db_session.commit()
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


@pytest.mark.parametrize(
    ("path", "payload"),
    [
        ("/api/companies", {"name": "Movistar", "code": "MOV"}),
        ("/api/technologies", {"name": "Fibra", "code": "FTTH"}),
        ("/api/sale-statuses", {"name": "Pendiente", "code": "PEND", "color": "#FFA500"}),
    ],
)
def test_reference_data_lifecycle(client: TestClient, path: str, payload: dict) -> None:
    created = client.post(path, json=payload)
    assert created.status_code == 201
    item_id = created.json()["id"]

    assert client.post(path, json=payload).status_code == 409

    renamed = client.patch(f"{path}/{item_id}", json={"display_order": 5})
    assert renamed.status_code == 200
    assert renamed.json()["display_order"] == 5
    assert renamed.json()["name"] == payload["name"]

    assert client.delete(f"{path}/{item_id}").status_code == 200
    assert client.get(f"{path}/{item_id}").status_code == 404
    assert client.get(path).json() == []
    assert [row["id"] for row in client.get(f"{path}/deleted").json()] == [item_id]

    # the name stays taken while the row is soft-deleted
    assert client.post(path, json=payload).status_code == 409

    restored = client.post(f"{path}/{item_id}/restore")
    assert restored.status_code == 200
    assert [row["id"] for row in client.get(path).json()] == [item_id]


def test_list_orders_by_display_order_and_filters_inactive(client: TestClient) -> None:
    client.post("/api/companies", json={"name": "Vodafone", "display_order": 2})
    client.post("/api/companies", json={"name": "Movistar", "display_order": 1})
    client.post("/api/companies", json={"name": "Jazztel", "display_order": 3, "is_active": False})

    names = [row["name"] for row in client.get("/api/companies").json()]
    assert names == ["Movistar", "Vodafone", "Jazztel"]

    active = [row["name"] for row in client.get("/api/companies", params={"active_only": True}).json()]
    assert active == ["Movistar", "Vodafone"]


def test_sale_status_color_must_be_hex(client: TestClient) -> None:
    response = client.post("/api/sale-statuses", json={"name": "Raro", "color": "red"})
    assert response.status_code == 422


def test_catalog_writes_need_catalog_permission(
    client: TestClient,
    db_session: Session,
    current: dict[str, AuthUser],
) -> None:
    created = client.post("/api/companies", json={"name": "Orange"})
    current["user"] = AuthUser(sub=current["user"].sub, username="coord", role="coordinador")

    assert client.get("/api/companies").status_code == 200
    assert client.post("/api/companies", json={"name": "Digi"}).status_code == 403
    assert client.delete(f"/api/companies/{created.json()['id']}").status_code == 403
