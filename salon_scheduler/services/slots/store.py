# salon_scheduler/services/slots/store.py
"""
Row store consumed by the scheduling engine.

The engine only needs a generic table surface:
  select / insert / update / delete / increment

Filters are {column: value} dicts:
  {"date": "2024-06-10"}            → date = '2024-06-10'
  {"worker_id": ["w1", "w2"]}       → worker_id IN ('w1', 'w2')
  {"booking_date__lt": "2024-06-10"} → booking_date < '2024-06-10'
Supported suffixes: ne, lt, lte, gt, gte, in.

SqlStore implements it over SQLAlchemy. Session work is blocking, so
every call runs in a worker thread (asyncio.to_thread) and the event
loop only sees await points.
"""

import asyncio
import logging
from typing import Any, Protocol

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ...models.tables import (
    Bookings,
    MerchantSettings,
    Profiles,
    Services,
    Slots,
    WorkerUnavailability,
    Workers,
)
from .errors import StoreError

logger = logging.getLogger(__name__)

Row = dict[str, Any]
Filters = dict[str, Any]

TABLES = {
    model.__tablename__: model
    for model in (
        Slots,
        Workers,
        WorkerUnavailability,
        Bookings,
        MerchantSettings,
        Services,
        Profiles,
    )
}


class SlotStore(Protocol):
    """Generic async table surface used by the engine."""

    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: list[str] | None = None,
    ) -> list[Row]: ...

    async def insert(self, table: str, rows: list[Row]) -> list[Row]: ...

    async def update(self, table: str, filters: Filters, patch: Row) -> int: ...

    async def delete(self, table: str, filters: Filters) -> int: ...

    async def increment(
        self,
        table: str,
        filters: Filters,
        column: str,
        amount: int | float,
    ) -> int: ...


# ── Filter compilation ───────────────────────────────────────────────────


def _conditions(table, filters: Filters | None) -> list:
    conditions = []
    for key, value in (filters or {}).items():
        name, _, op = key.partition("__")
        if name not in table.c:
            raise ValueError(f"Unknown column {table.name}.{name}")
        column = table.c[name]

        if not op:
            op = "in" if isinstance(value, (list, tuple, set)) else "eq"

        if op == "eq":
            conditions.append(column.is_(None) if value is None else column == value)
        elif op == "ne":
            conditions.append(column.is_not(None) if value is None else column != value)
        elif op == "lt":
            conditions.append(column < value)
        elif op == "lte":
            conditions.append(column <= value)
        elif op == "gt":
            conditions.append(column > value)
        elif op == "gte":
            conditions.append(column >= value)
        elif op == "in":
            conditions.append(column.in_(list(value)))
        else:
            raise ValueError(f"Unknown filter operator {op!r}")
    return conditions


def _ordering(table, order_by: list[str] | None) -> list:
    clauses = []
    for name in order_by or []:
        if name.startswith("-"):
            clauses.append(table.c[name[1:]].desc())
        else:
            clauses.append(table.c[name].asc())
    return clauses


def _to_row(obj) -> Row:
    return {c.name: getattr(obj, c.name) for c in obj.__table__.columns}


# ── SQLAlchemy implementation ────────────────────────────────────────────


class SqlStore:
    """SlotStore over a SQLAlchemy session factory."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    def _table(self, name: str):
        try:
            return TABLES[name].__table__
        except KeyError:
            raise ValueError(f"Unknown table {name!r}") from None

    async def _run(self, action: str, table: str, fn, *args):
        try:
            return await asyncio.to_thread(fn, *args)
        except SQLAlchemyError as e:
            logger.exception(f"Store {action} on {table} failed")
            raise StoreError(f"Could not {action} {table}: {e}") from e

    # ── Read ─────────────────────────────────────────────────────────────

    async def select(
        self,
        table: str,
        filters: Filters | None = None,
        order_by: list[str] | None = None,
    ) -> list[Row]:
        return await self._run("select", table, self._select, table, filters, order_by)

    def _select(self, name: str, filters: Filters | None, order_by: list[str] | None) -> list[Row]:
        table = self._table(name)
        stmt = select(table).where(*_conditions(table, filters)).order_by(*_ordering(table, order_by))

        db: Session = self.session_factory()
        try:
            return [dict(row) for row in db.execute(stmt).mappings().all()]
        finally:
            db.close()

    # ── Write ────────────────────────────────────────────────────────────

    async def insert(self, table: str, rows: list[Row]) -> list[Row]:
        if not rows:
            return []
        return await self._run("insert", table, self._insert, table, rows)

    def _insert(self, name: str, rows: list[Row]) -> list[Row]:
        model = TABLES.get(name)
        if model is None:
            raise ValueError(f"Unknown table {name!r}")

        db: Session = self.session_factory()
        try:
            objs = [model(**row) for row in rows]
            db.add_all(objs)
            db.flush()
            inserted = [_to_row(obj) for obj in objs]
            db.commit()
            return inserted
        finally:
            db.close()

    async def update(self, table: str, filters: Filters, patch: Row) -> int:
        return await self._run("update", table, self._update, table, filters, patch)

    def _update(self, name: str, filters: Filters, patch: Row) -> int:
        table = self._table(name)
        stmt = update(table).where(*_conditions(table, filters)).values(**patch)
        return self._execute_write(stmt)

    async def increment(
        self,
        table: str,
        filters: Filters,
        column: str,
        amount: int | float,
    ) -> int:
        return await self._run("update", table, self._increment, table, filters, column, amount)

    def _increment(self, name: str, filters: Filters, column: str, amount) -> int:
        table = self._table(name)
        stmt = (
            update(table)
            .where(*_conditions(table, filters))
            .values({column: table.c[column] + amount})
        )
        return self._execute_write(stmt)

    async def delete(self, table: str, filters: Filters) -> int:
        return await self._run("delete", table, self._delete, table, filters)

    def _delete(self, name: str, filters: Filters) -> int:
        table = self._table(name)
        stmt = delete(table).where(*_conditions(table, filters))
        return self._execute_write(stmt)

    def _execute_write(self, stmt) -> int:
        db: Session = self.session_factory()
        try:
            result = db.execute(stmt)
            db.commit()
            return result.rowcount
        finally:
            db.close()
