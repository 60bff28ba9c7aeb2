"""
rallypoint.services.build_service — Builds & Voting
====================================================

Shared builds/guides and their up/down vote tallies.

Vote state per (build, user) is one of {no vote, up, down} and
:func:`cast_vote` is its only transition function:

    ========  ========  ===================  =========================
    before    cast      after                counters
    ========  ========  ===================  =========================
    none      up        up                   upvotes +1
    up        up        none (toggle off)    upvotes -1
    up        down      down (switch)        upvotes -1, downvotes +1
    ========  ========  ===================  =========================

(and symmetrically for ``down``).  The vote row and the counter change
commit together in one transaction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Engine, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rallypoint.database.engine import get_session
from rallypoint.database.models import Build, BuildVote, VoteDirection
from rallypoint.services import counters
from rallypoint.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Columns callers may never set through update_build.
_FROZEN_FIELDS = frozenset({
    "id", "author_id", "upvotes", "downvotes", "view_count", "created_at", "updated_at",
})


@dataclass(frozen=True, slots=True)
class VoteResult:
    """Counters after a vote, plus the caller's resulting vote state."""

    build_id: str
    upvotes: int
    downvotes: int
    user_vote: VoteDirection | None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_builds(engine: Engine, game: str | None = None) -> list[Build]:
    """All builds, best-voted first, newest first within a tie."""
    with get_session(engine) as session:
        stmt = select(Build).order_by(Build.upvotes.desc(), Build.created_at.desc())
        if game:
            stmt = stmt.where(Build.game == game)
        return list(session.scalars(stmt).all())


def get_build(engine: Engine, build_id: str) -> Build | None:
    with get_session(engine) as session:
        return session.get(Build, build_id)


def get_build_vote(engine: Engine, build_id: str, user_id: str) -> BuildVote | None:
    with get_session(engine) as session:
        return _find_vote(session, build_id, user_id)


def _find_vote(session: Session, build_id: str, user_id: str) -> BuildVote | None:
    return session.scalar(
        select(BuildVote).where(
            BuildVote.build_id == build_id, BuildVote.user_id == user_id
        )
    )


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------
def create_build(
    engine: Engine,
    *,
    author_id: str,
    title: str,
    game: str,
    content: str,
    **fields: Any,
) -> Build:
    """Insert a build with zeroed counters."""
    if not title or not title.strip():
        raise ValidationError("Build title must not be empty.")
    if not content or not content.strip():
        raise ValidationError("Build content must not be empty.")

    fields = {k: v for k, v in fields.items() if k not in _FROZEN_FIELDS}
    with get_session(engine) as session:
        build = Build(author_id=author_id, title=title, game=game, content=content, **fields)
        session.add(build)
        session.flush()
        session.refresh(build)
        logger.info("Build %s created by %s", build.id, author_id)
        return build


def update_build(engine: Engine, build_id: str, **changes: Any) -> Build:
    """Apply *changes* to editable fields.  Counter fields are ignored."""
    with get_session(engine) as session:
        build = session.get(Build, build_id)
        if build is None:
            raise NotFoundError(f"Build {build_id} not found.")
        for key, value in changes.items():
            if hasattr(build, key) and key not in _FROZEN_FIELDS:
                setattr(build, key, value)
        session.flush()
        session.refresh(build)
        return build


def delete_build(engine: Engine, build_id: str) -> bool:
    """Delete a build together with its votes.  Returns ``False`` if absent."""
    with get_session(engine) as session:
        build = session.get(Build, build_id)
        if build is None:
            return False
        session.execute(delete(BuildVote).where(BuildVote.build_id == build_id))
        session.delete(build)
    logger.info("Build %s deleted", build_id)
    return True


def record_view(engine: Engine, build_id: str) -> None:
    with get_session(engine) as session:
        if not counters.adjust(session, Build, build_id, view_count=1):
            raise NotFoundError(f"Build {build_id} not found.")


# ---------------------------------------------------------------------------
# Voting
# ---------------------------------------------------------------------------
def cast_vote(
    engine: Engine,
    build_id: str,
    user_id: str,
    direction: VoteDirection | str,
) -> VoteResult:
    """Cast, retract or switch *user_id*'s vote on *build_id*.

    Raises
    ------
    NotFoundError
        The build does not exist.
    ConflictError
        The user's vote changed underneath this call (a concurrent vote by
        the same user).  Nothing is applied; the caller may retry.
    ValidationError
        *direction* is not ``"up"`` or ``"down"``.
    """
    try:
        direction = VoteDirection(direction)
    except ValueError as exc:
        raise ValidationError(f"Unknown vote direction: {direction!r}") from exc

    with get_session(engine) as session:
        build = session.get(Build, build_id)
        if build is None:
            raise NotFoundError(f"Build {build_id} not found.")

        existing = _find_vote(session, build_id, user_id)

        if existing is None:
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(BuildVote(
                        build_id=build_id,
                        user_id=user_id,
                        direction=direction.value,
                    ))
                    session.flush()
            except IntegrityError as exc:
                raise ConflictError("Vote changed concurrently; retry.") from exc
            deltas = {direction.counter: 1}
            user_vote: VoteDirection | None = direction

        elif existing.direction == direction.value:
            removed = session.execute(
                delete(BuildVote)
                .where(BuildVote.id == existing.id, BuildVote.direction == direction.value)
                .execution_options(synchronize_session=False)
            ).rowcount
            if removed != 1:
                raise ConflictError("Vote changed concurrently; retry.")
            deltas = {direction.counter: -1}
            user_vote = None

        else:
            previous = VoteDirection(existing.direction)
            switched = session.execute(
                update(BuildVote)
                .where(BuildVote.id == existing.id, BuildVote.direction == previous.value)
                .values(direction=direction.value)
                .execution_options(synchronize_session=False)
            ).rowcount
            if switched != 1:
                raise ConflictError("Vote changed concurrently; retry.")
            deltas = {previous.counter: -1, direction.counter: 1}
            user_vote = direction

        counters.adjust(session, Build, build_id, **deltas)
        session.refresh(build)

        logger.info(
            "Vote on build %s by %s: %s (now +%d/-%d)",
            build_id, user_id, user_vote or "retracted", build.upvotes, build.downvotes,
        )
        return VoteResult(
            build_id=build.id,
            upvotes=build.upvotes,
            downvotes=build.downvotes,
            user_vote=user_vote,
        )
