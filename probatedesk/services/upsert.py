"""Idempotent "one current row per key" upsert.

Phase records (will search, probate pack, schedules), journey ledger rows
and reminders all keep exactly one row per natural key. Concurrent writers
resolve at the database's unique constraint: last writer wins on the single
row, never two rows.
"""

from typing import Any, TypeVar

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

ModelT = TypeVar("ModelT")

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def upsert_current(
    db: Session,
    model: type[ModelT],
    *,
    key: dict[str, Any],
    values: dict[str, Any],
    insert_only: dict[str, Any] | None = None,
) -> ModelT:
    """
    Insert or update the row identified by ``key`` and return it.

    ``key`` columns must be covered by a unique constraint on the table.
    ``values`` are written on both insert and update; ``insert_only`` only
    on first insert (e.g. timestamps that must not move).

    Does not commit; the caller owns the transaction so the upsert can be
    committed together with related writes.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert_fn = _DIALECT_INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"upsert_current does not support dialect {dialect!r}")

    table = model.__table__  # type: ignore[attr-defined]
    row = {**key, **(insert_only or {}), **values}

    # ON CONFLICT DO UPDATE skips Column.onupdate, so bump updated_at here
    update_set = dict(values)
    if "updated_at" in table.c and "updated_at" not in update_set:
        update_set["updated_at"] = func.now()

    stmt = insert_fn(table).values(**row)
    stmt = stmt.on_conflict_do_update(index_elements=list(key.keys()), set_=update_set)
    stmt = stmt.returning(table.c.id)

    row_id = db.execute(stmt).scalar_one()
    return db.get(model, row_id, populate_existing=True)


def insert_missing(
    db: Session,
    model: type,
    rows: list[dict[str, Any]],
    *,
    index_elements: list[str],
) -> None:
    """Insert rows whose key is not present yet; existing rows are untouched."""
    if not rows:
        return
    dialect = db.get_bind().dialect.name
    try:
        insert_fn = _DIALECT_INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f"insert_missing does not support dialect {dialect!r}")
    stmt = insert_fn(model.__table__).values(rows)
    db.execute(stmt.on_conflict_do_nothing(index_elements=index_elements))
