"""Initial data: the first administrator account plus default companies and sale statuses.

Run with ``python -m goodcall.seed``. Rows are matched by unique name (soft-deleted ones
included), so running it again creates nothing new.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from goodcall.core.config import get_settings
from goodcall.core.database import SessionLocal, get_engine
from goodcall.core.passwords import hash_password
from goodcall.core.rbac import UserRole
from goodcall.core.soft_delete import including_deleted
from goodcall.logging import configure_logging
from goodcall.models import Company, SaleStatus, User


logger = logging.getLogger("goodcall.seed")

DEFAULT_COMPANIES: list[dict[str, Any]] = [
    {"name": "Movistar", "code": "MOV", "display_order": 1},
    {"name": "Vodafone", "code": "VOD", "display_order": 2},
    {"name": "Orange", "code": "ORA", "display_order": 3},
    {"name": "MasMovil", "code": "MAS", "display_order": 4},
]

DEFAULT_SALE_STATUSES: list[dict[str, Any]] = [
    {"name": "Pendiente", "code": "PEND", "color": "#FFA500", "is_final": False, "display_order": 1},
    {"name": "Firmado", "code": "FIRM", "color": "#008000", "is_final": False, "display_order": 2},
    {"name": "Instalado", "code": "INST", "color": "#0000FF", "is_final": True, "display_order": 3},
    {"name": "Cancelado", "code": "CANC", "color": "#FF0000", "is_final": True, "display_order": 4},
]


def _ensure_named(session: Session, model: type[Any], rows: list[dict[str, Any]]) -> int:
    created = 0
    for row in rows:
        exists = session.scalar(including_deleted(select(model.id).where(model.name == row["name"])))
        if exists is None:
            session.add(model(**row))
            created += 1
    return created


def seed_database(session: Session) -> dict[str, int]:
    settings = get_settings()
    created = {"users": 0, "companies": 0, "sale_statuses": 0}

    admin = session.scalar(including_deleted(select(User.id).where(User.username == settings.seed_admin_username)))
    if admin is None:
        session.add(
            User(
                username=settings.seed_admin_username,
                email=settings.seed_admin_email,
                password_hash=hash_password(settings.seed_admin_password),
                first_name="Admin",
                last_name="Developer",
                role=UserRole.DEVELOPER.value,
                must_change_password=True,
            )
        )
        created["users"] = 1

    created["companies"] = _ensure_named(session, Company, DEFAULT_COMPANIES)
    created["sale_statuses"] = _ensure_named(session, SaleStatus, DEFAULT_SALE_STATUSES)
    session.commit()
    return created


def main() -> None:
    configure_logging()
    session = SessionLocal(bind=get_engine())
    try:
        created = seed_database(session)
    finally:
        session.close()
    logger.info("seed.completed", extra={"model": ",".join(f"{key}={value}" for key, value in created.items())})


if __name__ == "__main__":
    main()
