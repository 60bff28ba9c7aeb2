"""
rallypoint.services.counters — Relative Counter Adjustments
============================================================

Every derived counter (vote tallies, ``players_joined``, ``thread_count``,
``reply_count``, ``member_count``) moves through these helpers.  Each one
emits a single ``UPDATE … SET col = col ± n`` so the database evaluates the
new value at write time; no caller ever writes a value it read earlier.

The helpers run inside the caller's session and never commit.  Statements
skip ORM synchronisation, so callers ``session.refresh()`` any row they
return.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import case, update
from sqlalchemy.orm import Session


def adjust(
    session: Session,
    model: type,
    row_id: str,
    *,
    where: Any = None,
    **deltas: int,
) -> int:
    """Apply ``col = col + delta`` for every non-zero entry in *deltas*.

    *where* is an optional extra condition (e.g. a capacity guard); when it
    does not hold no row is touched.  Returns the affected row count, so
    ``0`` means the row is missing or the guard refused.
    """
    values = {
        getattr(model, col): getattr(model, col) + delta
        for col, delta in deltas.items()
        if delta
    }
    if not values:
        return 0

    stmt = update(model).where(model.id == row_id)
    if where is not None:
        stmt = stmt.where(where)
    result = session.execute(
        stmt.values(values).execution_options(synchronize_session=False)
    )
    return result.rowcount


def decrement_floor(session: Session, model: type, row_id: str, col: str) -> int:
    """``col = col - 1`` clamped at zero.  Returns the affected row count."""
    column = getattr(model, col)
    result = session.execute(
        update(model)
        .where(model.id == row_id)
        .values({column: case((column > 0, column - 1), else_=0)})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


def advance_timestamp(
    session: Session, model: type, row_id: str, col: str, ts: Any,
) -> int:
    """Move a timestamp column forward to *ts*, never backwards.

    The column holds the maximum *ts* written, whatever order writers
    commit in.
    """
    column = getattr(model, col)
    result = session.execute(
        update(model)
        .where(model.id == row_id)
        .values({column: case((column.is_(None), ts), (column < ts, ts), else_=column)})
        .execution_options(synchronize_session=False)
    )
    return result.rowcount
