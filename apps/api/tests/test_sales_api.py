from __future__ import annotations

import uuid
from collections.abc import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from goodcall import events
from goodcall.catalog.models import Company, SaleStatus, Technology
from goodcall.core.auth import AuthUser, get_current_user
from goodcall.core.config import get_settings
from goodcall.core.database import Base, get_db
from goodcall.core.soft_delete import including_deleted
from goodcall.main import app
from goodcall.middleware.rate_limit import reset_rate_limiter
from goodcall.notifications.models import Notification
from goodcall.sales.models import Sale
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


def _user(session: Session, username: str, role: str = "asesor") -> User:
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
    return _user(db_session, "gerente", role="gerencia")


@pytest.fixture()
def company(db_session: Session) -> Company:
    item = Company(name="Movistar", code="MOV")
    db_session.add(item)
    db_session.commit()
    return item


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


def _act_as(current: dict[str, AuthUser], user: User) -> None:
    current["user"] = AuthUser(sub=str(user.id), username=user.username, role=user.role)


def _sale_payload(company: Company, **overrides: object) -> dict:
    payload: dict = {
        "client_name": "Cliente Uno",
        "client_dni": "12345678Z",
        "client_phone": "600000000",
        "products": ["fibra", "movil"],
        "company_id": str(company.id),
        "sale_date": "2024-03-10T10:00:00Z",
    }
    payload.update(overrides)
    return payload


def test_create_sale_with_references(client: TestClient, db_session: Session, company: Company, manager: User) -> None:
    technology = Technology(name="Fibra", code="FTTH")
    status = SaleStatus(name="Pendiente", code="PEND", color="#FFA500")
    db_session.add_all([technology, status])
    db_session.commit()

    response = client.post(
        "/api/sales",
        json=_sale_payload(company, technology_id=str(technology.id), sale_status_id=str(status.id)),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["asesor_id"] == str(manager.id)
    assert body["asesor"]["username"] == "gerente"
    assert body["company"]["name"] == "Movistar"
    assert body["technology"]["name"] == "Fibra"
    assert body["sale_status"]["color"] == "#FFA500"
    assert body["products"] == ["fibra", "movil"]
    assert body["sale_date"].startswith("2024-03-10T10:00:00")


def test_reference_to_deleted_company_is_not_found(client: TestClient, db_session: Session, company: Company) -> None:
    db_session.delete(company)
    db_session.commit()

    response = client.post("/api/sales", json=_sale_payload(company))
    assert response.status_code == 404
    assert response.json()["message"] == "company not found"

    missing = client.post("/api/sales", json=_sale_payload(company, company_id=str(uuid.uuid4())))
    assert missing.status_code == 404


def test_sale_for_other_asesor_notifies_them(client: TestClient, db_session: Session, company: Company) -> None:
    ana = _user(db_session, "ana")

    response = client.post("/api/sales", json=_sale_payload(company, asesor_id=str(ana.id)))
    assert response.status_code == 201

    notification = db_session.scalar(select(Notification).where(Notification.user_id == ana.id))
    assert notification is not None
    assert notification.type == "sale"
    assert notification.related_entity_id == response.json()["id"]

    types = [event["event_type"] for event in events.published_events]
    assert types == ["sale.created", "notification.created"]


def test_list_filters_and_pagination(client: TestClient, db_session: Session, company: Company) -> None:
    ana = _user(db_session, "ana")
    for day in range(1, 6):
        response = client.post(
            "/api/sales",
            json=_sale_payload(company, asesor_id=str(ana.id), sale_date=f"2024-03-0{day}T09:00:00Z"),
        )
        assert response.status_code == 201
    client.post("/api/sales", json=_sale_payload(company, sale_date="2024-04-02T09:00:00Z"))

    page = client.get("/api/sales", params={"asesor_id": str(ana.id), "page": 1, "limit": 2})
    assert page.status_code == 200
    body = page.json()
    assert body["total"] == 5
    assert body["page"] == 1
    assert body["limit"] == 2
    assert [row["sale_date"][:10] for row in body["data"]] == ["2024-03-05", "2024-03-04"]

    march = client.get(
        "/api/sales",
        params={"start_date": "2024-03-01T00:00:00Z", "end_date": "2024-03-31T23:59:59Z"},
    )
    assert march.json()["total"] == 5
    assert client.get("/api/sales").json()["total"] == 6


def test_delete_hides_sale_and_restore_brings_it_back(client: TestClient, db_session: Session, company: Company) -> None:
    sale_id = client.post("/api/sales", json=_sale_payload(company)).json()["id"]

    assert client.delete(f"/api/sales/{sale_id}").status_code == 200
    assert client.get(f"/api/sales/{sale_id}").status_code == 404
    assert client.get("/api/sales").json()["total"] == 0
    assert [row["id"] for row in client.get("/api/sales/deleted").json()] == [sale_id]

    stored = db_session.scalar(including_deleted(select(Sale).where(Sale.id == uuid.UUID(sale_id))))
    assert stored is not None
    assert stored.deleted_at is not None

    restored = client.post(f"/api/sales/{sale_id}/restore")
    assert restored.status_code == 200
    assert restored.json()["deleted_at"] is None
    assert client.get("/api/sales").json()["total"] == 1


def test_update_sale(client: TestClient, company: Company) -> None:
    sale_id = client.post("/api/sales", json=_sale_payload(company)).json()["id"]

    response = client.patch(f"/api/sales/{sale_id}", json={"client_name": "Cliente Dos", "products": ["tv"]})
    assert response.status_code == 200
    assert response.json()["client_name"] == "Cliente Dos"
    assert response.json()["products"] == ["tv"]
    assert response.json()["client_dni"] == "12345678Z"
    assert any(event["event_type"] == "sale.updated" for event in events.published_events)


def test_asesor_only_sees_own_sales(
    client: TestClient,
    db_session: Session,
    company: Company,
    current: dict[str, AuthUser],
) -> None:
    ana = _user(db_session, "ana")
    luis = _user(db_session, "luis")
    ana_sale = client.post("/api/sales", json=_sale_payload(company, asesor_id=str(ana.id))).json()
    luis_sale = client.post("/api/sales", json=_sale_payload(company, asesor_id=str(luis.id))).json()

    _act_as(current, ana)
    listing = client.get("/api/sales").json()
    assert [row["id"] for row in listing["data"]] == [ana_sale["id"]]
    assert client.get(f"/api/sales/{luis_sale['id']}").status_code == 404
    assert client.patch(f"/api/sales/{luis_sale['id']}", json={"client_name": "X"}).status_code == 404

    own = client.post("/api/sales", json=_sale_payload(company))
    assert own.status_code == 201
    assert own.json()["asesor_id"] == str(ana.id)

    foreign = client.post("/api/sales", json=_sale_payload(company, asesor_id=str(luis.id)))
    assert foreign.status_code == 403

    assert client.delete(f"/api/sales/{ana_sale['id']}").status_code == 403
