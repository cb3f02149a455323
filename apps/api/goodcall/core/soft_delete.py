"""Soft-delete interception for the persistence gateway.

Entity kinds named in ``SOFT_DELETE_MODELS`` are never physically removed:

* ``session.delete(obj)`` is turned into an UPDATE setting ``deleted_at`` during flush;
* ``delete(Model).where(...)`` is re-issued as ``update(Model).where(...)`` with ``deleted_at``;
* every SELECT gets ``deleted_at IS NULL`` for each of these kinds, unless the caller's
  WHERE clause already mentions that kind's ``deleted_at`` or the statement carries the
  ``include_deleted`` execution option.

Every other kind passes through untouched. The hooks hang off the ORM ``Session`` class and
must be installed exactly once, before any session runs a query; ``core.database`` does it at
import time.
"""

from __future__ import annotations

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlalchemy import DateTime, Executable, Select, event, select, update
from sqlalchemy.orm import Mapped, ORMExecuteState, Session, mapped_column, with_loader_criteria
from sqlalchemy.orm import registry as Registry
from sqlalchemy.sql import visitors
from sqlalchemy.sql.schema import Column

from goodcall.metrics import observe_restore, observe_soft_delete


logger = logging.getLogger("goodcall.soft_delete")

SOFT_DELETE_MODELS: frozenset[str] = frozenset({"User", "Sale", "Company", "SaleStatus", "Technology"})
INCLUDE_DELETED_OPTION = "include_deleted"

_ExecutableT = TypeVar("_ExecutableT", bound=Executable)

_install_lock = threading.Lock()
_installed = False


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SoftDeleteMixin:
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True, index=True)


def is_soft_deletable(model: Any) -> bool:
    return isinstance(model, type) and issubclass(model, SoftDeleteMixin) and model.__name__ in SOFT_DELETE_MODELS


def including_deleted(statement: _ExecutableT) -> _ExecutableT:
    return statement.execution_options(**{INCLUDE_DELETED_OPTION: True})


def find_active(session: Session, model: type[Any], ident: uuid.UUID) -> Any | None:
    stmt = select(model).where(model.id == ident)
    if is_soft_deletable(model):
        stmt = stmt.where(model.deleted_at.is_(None))
    return session.scalar(stmt)


def find_including_deleted(session: Session, model: type[Any], ident: uuid.UUID) -> Any | None:
    return session.scalar(including_deleted(select(model).where(model.id == ident)))


def restore(session: Session, model: type[Any], ident: uuid.UUID) -> Any | None:
    """Clear ``deleted_at`` on one row. Returns ``None`` when the row does not exist at all.

    The caller owns the transaction and must commit.
    """
    instance = find_including_deleted(session, model, ident)
    if instance is None:
        return None
    if instance.deleted_at is not None:
        instance.deleted_at = None
        session.add(instance)
        observe_restore(model.__name__)
        logger.debug("soft_delete.restored", extra={"model": model.__name__, "entity_id": str(ident)})
    return instance


def _soft_delete_classes(mapper_registry: Registry) -> list[type[Any]]:
    return [mapper.class_ for mapper in mapper_registry.mappers if is_soft_deletable(mapper.class_)]


def _names_deleted_at(whereclause: Any, model: type[Any]) -> bool:
    if whereclause is None:
        return False
    table = model.__table__
    for element in visitors.iterate(whereclause):
        if isinstance(element, Column) and element.key == "deleted_at" and element.table is table:
            return True
    return False


def _exclude_soft_deleted(state: ORMExecuteState, classes: list[type[Any]]) -> None:
    statement = state.statement
    whereclause = statement.whereclause
    # top-level only: refreshes and lazy loads of rows already in hand stay unfiltered
    criteria = [
        with_loader_criteria(
            model,
            lambda cls: cls.deleted_at.is_(None),
            include_aliases=True,
            propagate_to_loaders=False,
        )
        for model in classes
        if not _names_deleted_at(whereclause, model)
    ]
    if criteria:
        state.statement = statement.options(*criteria)


def _soft_delete_many(state: ORMExecuteState) -> Any | None:
    mapper = state.bind_mapper
    if mapper is None or not is_soft_deletable(mapper.class_):
        return None

    model = mapper.class_
    rewritten = update(model).values(deleted_at=utcnow())
    whereclause = state.statement.whereclause
    if whereclause is not None:
        rewritten = rewritten.where(whereclause)

    observe_soft_delete(model.__name__)
    logger.debug("soft_delete.bulk_rewritten", extra={"model": model.__name__})
    return state.session.execute(rewritten)


def _make_execute_hook(mapper_registry: Registry) -> Callable[[ORMExecuteState], Any]:
    def _intercept(state: ORMExecuteState) -> Any | None:
        if state.is_delete:
            return _soft_delete_many(state)

        if (
            state.is_select
            and isinstance(state.statement, Select)
            and not state.is_column_load
            and not state.is_relationship_load
            and not state.execution_options.get(INCLUDE_DELETED_OPTION, False)
        ):
            _exclude_soft_deleted(state, _soft_delete_classes(mapper_registry))
        return None

    return _intercept


def _soft_delete_pending(session: Session, flush_context: Any, instances: Any) -> None:
    for instance in list(session.deleted):
        model = type(instance)
        if not is_soft_deletable(model):
            continue
        instance.deleted_at = utcnow()
        # re-adding un-marks the pending DELETE, the flush then emits an UPDATE
        session.add(instance)
        observe_soft_delete(model.__name__)
        logger.debug("soft_delete.rewritten", extra={"model": model.__name__, "entity_id": str(instance.id)})


def install_soft_delete(mapper_registry: Registry) -> bool:
    global _installed

    with _install_lock:
        if _installed:
            return False
        event.listen(Session, "do_orm_execute", _make_execute_hook(mapper_registry))
        event.listen(Session, "before_flush", _soft_delete_pending)
        _installed = True

    logger.info("soft_delete.installed", extra={"model": ",".join(sorted(SOFT_DELETE_MODELS))})
    return True


def soft_delete_installed() -> bool:
    return _installed
