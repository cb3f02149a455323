from __future__ import annotations

import uuid
from collections.abc import Callable, Generator
from datetime import datetime, timezone
from typing import Any

import pytest
from sqlalchemy import create_engine, delete, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from goodcall import models  # noqa: F401
from goodcall.catalog.models import Company, SaleStatus, Technology
from goodcall.core.database import Base
from goodcall.core.soft_delete import (
    SOFT_DELETE_MODELS,
    find_active,
    find_including_deleted,
    including_deleted,
    install_soft_delete,
    is_soft_deletable,
    restore,
    soft_delete_installed,
)
from goodcall.goals.models import Goal
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


def _user(session: Session, username: str = "asesor1", **overrides: Any) -> User:
    values: dict[str, Any] = {
        "username": username,
        "email": f"{username}@goodcall.com",
        "password_hash": "not-a-real-hash",
        "first_name": "Ana",
        "last_name": "Lopez",
        "role": "asesor",
    }
    values.update(overrides)
    user = User(**values)
    session.add(user)
    session.commit()
    return user


def _company(session: Session, name: str = "Movistar") -> Company:
    company = Company(name=name, code=name[:3].upper())
    session.add(company)
    session.commit()
    return company


def _technology(session: Session) -> Technology:
    technology = Technology(name="Fibra")
    session.add(technology)
    session.commit()
    return technology


def _sale_status(session: Session) -> SaleStatus:
    sale_status = SaleStatus(name="Pendiente", code="PEND", color="#FFA500")
    session.add(sale_status)
    session.commit()
    return sale_status


def _sale(session: Session, asesor: User | None = None, company: Company | None = None) -> Sale:
    asesor = asesor or _user(session, f"asesor-{uuid.uuid4().hex[:8]}")
    company = company or _company(session, f"Company {uuid.uuid4().hex[:6]}")
    sale = Sale(
        client_name="Cliente Uno",
        client_dni="12345678A",
        asesor_id=asesor.id,
        company_id=company.id,
        sale_date=datetime(2024, 3, 10, 12, 0, tzinfo=timezone.utc),
    )
    session.add(sale)
    session.commit()
    return sale


FACTORIES: dict[str, tuple[type[Any], Callable[[Session], Any]]] = {
    "User": (User, _user),
    "Company": (Company, _company),
    "Technology": (Technology, _technology),
    "SaleStatus": (SaleStatus, _sale_status),
    "Sale": (Sale, _sale),
}


def test_allow_list_covers_every_soft_deletable_model() -> None:
    assert set(FACTORIES) == set(SOFT_DELETE_MODELS)
    for model, _ in FACTORIES.values():
        assert is_soft_deletable(model)
    assert not is_soft_deletable(Goal)
    assert not is_soft_deletable(Notification)


def test_interceptor_installs_once() -> None:
    assert soft_delete_installed()
    assert install_soft_delete(Base.registry) is False


@pytest.mark.parametrize("model_name", sorted(FACTORIES))
def test_delete_single_hides_row_from_default_reads(db_session: Session, model_name: str) -> None:
    model, factory = FACTORIES[model_name]
    instance = factory(db_session)
    instance_id = instance.id

    db_session.delete(instance)
    db_session.commit()

    assert db_session.scalar(select(model).where(model.id == instance_id)) is None
    assert find_active(db_session, model, instance_id) is None

    found = find_including_deleted(db_session, model, instance_id)
    assert found is not None
    assert found.deleted_at is not None


@pytest.mark.parametrize("model_name", sorted(FACTORIES))
def test_restore_makes_row_visible_again(db_session: Session, model_name: str) -> None:
    model, factory = FACTORIES[model_name]
    instance = factory(db_session)
    instance_id = instance.id
    db_session.delete(instance)
    db_session.commit()

    restored = restore(db_session, model, instance_id)
    db_session.commit()

    assert restored is not None
    assert restored.deleted_at is None
    assert find_active(db_session, model, instance_id) is not None


def test_restore_of_unknown_row_returns_none(db_session: Session) -> None:
    assert restore(db_session, Company, uuid.uuid4()) is None


def test_bulk_delete_is_rewritten_to_update(db_session: Session) -> None:
    keep = _company(db_session, "Orange")
    _company(db_session, "Vodafone")
    _company(db_session, "MasMovil")

    db_session.execute(delete(Company).where(Company.name.in_(["Vodafone", "MasMovil"])))
    db_session.commit()

    visible = db_session.scalars(select(Company)).all()
    assert [company.id for company in visible] == [keep.id]

    everything = db_session.scalars(including_deleted(select(Company).order_by(Company.name))).all()
    assert [company.name for company in everything] == ["MasMovil", "Orange", "Vodafone"]
    assert [company.deleted_at is not None for company in everything] == [True, False, True]


def test_count_excludes_soft_deleted_rows(db_session: Session) -> None:
    _company(db_session, "Orange")
    doomed = _company(db_session, "Vodafone")
    db_session.delete(doomed)
    db_session.commit()

    assert db_session.scalar(select(func.count(Company.id))) == 1
    assert db_session.scalar(including_deleted(select(func.count(Company.id)))) == 2


def test_explicit_deleted_at_filter_wins(db_session: Session) -> None:
    _company(db_session, "Orange")
    doomed = _company(db_session, "Vodafone")
    db_session.delete(doomed)
    db_session.commit()

    deleted = db_session.scalars(select(Company).where(Company.deleted_at.is_not(None))).all()
    assert [company.name for company in deleted] == ["Vodafone"]


def test_join_through_soft_deleted_user_excludes_sale(db_session: Session) -> None:
    asesor = _user(db_session, "gone")
    sale = _sale(db_session, asesor=asesor)
    db_session.delete(asesor)
    db_session.commit()

    assert db_session.scalar(select(Sale).where(Sale.id == sale.id)) is not None
    joined = db_session.scalars(select(Sale).join(Sale.asesor).where(Sale.id == sale.id)).all()
    assert joined == []


def test_relationship_of_live_row_still_loads_deleted_parent(db_session: Session) -> None:
    asesor = _user(db_session, "gone")
    sale = _sale(db_session, asesor=asesor)
    sale_id = sale.id
    db_session.delete(asesor)
    db_session.commit()
    db_session.expire_all()

    reloaded = db_session.scalar(select(Sale).where(Sale.id == sale_id))
    assert reloaded is not None
    assert reloaded.asesor.username == "gone"
    assert reloaded.asesor.deleted_at is not None


def test_models_outside_allow_list_are_deleted_physically(db_session: Session) -> None:
    user = _user(db_session)
    notification = Notification(user_id=user.id, title="Hola", message="Nueva venta")
    goal = Goal(goal_type="global", year=2024, month=3, target_sales=10)
    db_session.add_all([notification, goal])
    db_session.commit()
    notification_id, goal_id = notification.id, goal.id

    db_session.delete(notification)
    db_session.delete(goal)
    db_session.commit()

    assert db_session.scalar(including_deleted(select(Notification).where(Notification.id == notification_id))) is None
    assert db_session.scalar(including_deleted(select(Goal).where(Goal.id == goal_id))) is None
