# Overview: Service-layer concurrency primitives; row locks and conditional writes.

from __future__ import annotations

from sqlalchemy import update

from ..extensions import db


def lock_by_write(model, row_id: int, counter_column: str) -> bool:
    """
    Take a write lock on one row by bumping an integer counter column.

    The UPDATE is the first write of the transaction: PostgreSQL holds the
    row lock and SQLite holds the database write lock until commit/rollback,
    so every later read in the same transaction is serialised against other
    writers of the same row. Returns False when the row does not exist.
    """
    column = getattr(model, counter_column)
    stmt = (
        update(model)
        .where(model.id == row_id)
        .values({counter_column: column + 1})
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1


def conditional_update(model, row_id: int, *, guards: dict, values: dict, version_column: str = "version") -> bool:
    """
    Single-statement compare-and-swap.

    UPDATE <model> SET <values>, version = version + 1
    WHERE id = :row_id AND <column> = <expected> for every guard.

    Returns True iff exactly one row matched. Zero rows means another writer
    changed the row first; callers surface that, they never retry.
    """
    conditions = [model.id == row_id]
    for name, expected in guards.items():
        conditions.append(getattr(model, name) == expected)

    payload = dict(values)
    payload[version_column] = getattr(model, version_column) + 1

    stmt = (
        update(model)
        .where(*conditions)
        .values(payload)
        .execution_options(synchronize_session=False)
    )
    result = db.session.execute(stmt)
    return result.rowcount == 1
