"""
rallypoint.services.reconciliation_service — Counter Reconciliation
====================================================================

Admin job that validates every derived counter against the fact rows it
is derived from and corrects drift if found.

How it works:
    1. ``COUNT(*)`` (or ``MAX(created_at)``) of the fact table grouped by
       parent id — the ground truth.
    2. Compare against the stored counter on each parent row.
    3. On mismatch, overwrite the counter with the true value.
    4. Log all corrections for audit.

Checked counters:

=====================================  ==========================================
counter                                derived from
=====================================  ==========================================
``builds.upvotes`` / ``downvotes``     ``build_votes`` by direction
``lfg_posts.players_joined``           ``lfg_participants``
``forum_categories.thread_count``      ``forum_threads``
``forum_threads.reply_count``          ``forum_replies``
``forum_threads.last_reply_at``        latest reply, else thread ``created_at``
``clans.member_count``                 ``users.clan_id``
=====================================  ==========================================
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, func, select, update
from sqlalchemy.orm import Session

from rallypoint.database.engine import get_session
from rallypoint.database.models import (
    Build,
    BuildVote,
    Clan,
    ForumCategory,
    ForumReply,
    ForumThread,
    LfgParticipant,
    LfgPost,
    User,
    VoteDirection,
)

logger = logging.getLogger(__name__)


def _counts(session: Session, fk_column, *where) -> dict[str, int]:
    """``{parent_id: COUNT(*)}`` over a fact table."""
    rows = session.execute(
        select(fk_column.label("parent_id"), func.count().label("actual"))
        .where(*where)
        .group_by(fk_column)
    ).all()
    return {row.parent_id: row.actual for row in rows}


def _check(
    session: Session,
    model: type,
    field: str,
    truth: dict[str, Any],
    default: Any,
    corrections: list[dict],
) -> int:
    """Compare *field* on every *model* row with *truth*; fix mismatches.

    Parents missing from *truth* have no facts, so their true value is
    *default* (or, when *default* is callable, ``default(row)``).
    Returns the number of rows checked.
    """
    column = getattr(model, field)
    rows = session.execute(select(model.id, column.label("stored"))).all()
    for row in rows:
        actual = truth.get(row.id)
        if actual is None:
            actual = default(row.id) if callable(default) else default
        if row.stored != actual:
            corrections.append({
                "table": model.__tablename__,
                "id": row.id,
                "field": field,
                "stored": row.stored,
                "actual": actual,
            })
            session.execute(
                update(model)
                .where(model.id == row.id)
                .values({column: actual})
                .execution_options(synchronize_session=False)
            )
    return len(rows)


def reconcile_counters(engine: Engine) -> dict:
    """Validate all derived counters against their fact tables and fix drift.

    Returns ``{"checked": N, "corrected": M, "corrections": [...], "timestamp": ...}``.
    """
    corrections: list[dict] = []
    checked = 0

    with get_session(engine) as session:
        upvotes = _counts(session, BuildVote.build_id, BuildVote.direction == VoteDirection.UP.value)
        downvotes = _counts(session, BuildVote.build_id, BuildVote.direction == VoteDirection.DOWN.value)
        checked += _check(session, Build, "upvotes", upvotes, 0, corrections)
        checked += _check(session, Build, "downvotes", downvotes, 0, corrections)

        joined = _counts(session, LfgParticipant.lfg_post_id)
        checked += _check(session, LfgPost, "players_joined", joined, 0, corrections)

        threads = _counts(session, ForumThread.category_id)
        checked += _check(session, ForumCategory, "thread_count", threads, 0, corrections)

        replies = _counts(session, ForumReply.thread_id)
        checked += _check(session, ForumThread, "reply_count", replies, 0, corrections)

        latest = {
            row.thread_id: row.latest
            for row in session.execute(
                select(ForumReply.thread_id, func.max(ForumReply.created_at).label("latest"))
                .group_by(ForumReply.thread_id)
            ).all()
        }
        created = dict(session.execute(select(ForumThread.id, ForumThread.created_at)).all())
        checked += _check(
            session, ForumThread, "last_reply_at", latest, created.get, corrections,
        )

        members = _counts(session, User.clan_id, User.clan_id.is_not(None))
        checked += _check(session, Clan, "member_count", members, 0, corrections)

    if corrections:
        logger.warning(
            "Counter reconciliation: corrected %d/%d counters: %s",
            len(corrections), checked, corrections,
        )
    else:
        logger.info("Counter reconciliation: all %d counters match", checked)

    return {
        "checked": checked,
        "corrected": len(corrections),
        "corrections": corrections,
        "timestamp": datetime.now(UTC).isoformat(),
    }
