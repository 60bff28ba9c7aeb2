"""
rallypoint.services.lfg_service — Looking-for-Group Postings
=============================================================

``LfgPost.players_joined`` always equals the number of ``lfg_participants``
rows for the post.  Join inserts the participant and bumps the counter;
leave deletes the participant and decrements the counter (floored at 0)
only when a row was actually removed.

Capacity: when over-subscription is disallowed (the default, see
``RallypointConfig.allow_lfg_oversubscription``) the increment carries a
``players_joined < players_needed`` guard, so a full post refuses the join
atomically even under concurrent joins.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rallypoint.database.engine import get_session
from rallypoint.database.models import GameRole, LfgParticipant, LfgPost, SkillLevel
from rallypoint.services import counters
from rallypoint.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_FROZEN_FIELDS = frozenset({
    "id", "author_id", "players_joined", "created_at", "updated_at",
})


def _coerce_enum(enum_cls: type, value: Any, field: str) -> str:
    try:
        return enum_cls(value).value
    except ValueError as exc:
        raise ValidationError(f"Invalid {field}: {value!r}") from exc


# ---------------------------------------------------------------------------
# Posts
# ---------------------------------------------------------------------------
def list_lfg_posts(engine: Engine) -> list[LfgPost]:
    """Active posts, newest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(LfgPost)
            .where(LfgPost.is_active.is_(True))
            .order_by(LfgPost.created_at.desc())
        ).all())


def get_lfg_post(engine: Engine, post_id: str) -> LfgPost | None:
    with get_session(engine) as session:
        return session.get(LfgPost, post_id)


def create_lfg_post(
    engine: Engine,
    *,
    author_id: str,
    title: str,
    game: str,
    platform: str,
    players_needed: int = 1,
    skill_level: SkillLevel | str = SkillLevel.INTERMEDIATE,
    role_needed: GameRole | str = GameRole.ANY,
    **fields: Any,
) -> LfgPost:
    if not title or not title.strip():
        raise ValidationError("LFG title must not be empty.")
    if players_needed < 1:
        raise ValidationError("players_needed must be at least 1.")

    fields = {k: v for k, v in fields.items() if k not in _FROZEN_FIELDS}
    with get_session(engine) as session:
        post = LfgPost(
            author_id=author_id,
            title=title,
            game=game,
            platform=platform,
            players_needed=players_needed,
            skill_level=_coerce_enum(SkillLevel, skill_level, "skill_level"),
            role_needed=_coerce_enum(GameRole, role_needed, "role_needed"),
            **fields,
        )
        session.add(post)
        session.flush()
        session.refresh(post)
        logger.info("LFG post %s created by %s (%s)", post.id, author_id, game)
        return post


def update_lfg_post(engine: Engine, post_id: str, **changes: Any) -> LfgPost:
    """Update editable fields.  ``players_joined`` is never settable."""
    if "skill_level" in changes:
        changes["skill_level"] = _coerce_enum(SkillLevel, changes["skill_level"], "skill_level")
    if "role_needed" in changes:
        changes["role_needed"] = _coerce_enum(GameRole, changes["role_needed"], "role_needed")
    if "players_needed" in changes and changes["players_needed"] < 1:
        raise ValidationError("players_needed must be at least 1.")

    with get_session(engine) as session:
        post = session.get(LfgPost, post_id)
        if post is None:
            raise NotFoundError(f"LFG post {post_id} not found.")
        for key, value in changes.items():
            if hasattr(post, key) and key not in _FROZEN_FIELDS:
                setattr(post, key, value)
        session.flush()
        session.refresh(post)
        return post


def delete_lfg_post(engine: Engine, post_id: str) -> bool:
    with get_session(engine) as session:
        post = session.get(LfgPost, post_id)
        if post is None:
            return False
        session.execute(delete(LfgParticipant).where(LfgParticipant.lfg_post_id == post_id))
        session.delete(post)
    logger.info("LFG post %s deleted", post_id)
    return True


def list_participants(engine: Engine, post_id: str) -> list[LfgParticipant]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(LfgParticipant)
            .where(LfgParticipant.lfg_post_id == post_id)
            .order_by(LfgParticipant.joined_at)
        ).all())


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------
def _find_participant(session: Session, post_id: str, user_id: str) -> LfgParticipant | None:
    return session.scalar(
        select(LfgParticipant).where(
            LfgParticipant.lfg_post_id == post_id,
            LfgParticipant.user_id == user_id,
        )
    )


def join_group(
    engine: Engine,
    post_id: str,
    user_id: str,
    role: GameRole | str | None = None,
    *,
    allow_oversubscription: bool = False,
) -> LfgParticipant:
    """Add *user_id* to the post and bump ``players_joined`` by one.

    Raises
    ------
    NotFoundError
        The post does not exist.
    ConflictError
        The user already joined this post.
    ForbiddenError
        The post is inactive, or full while over-subscription is disallowed.
    """
    role_value = _coerce_enum(GameRole, role or GameRole.ANY, "role")

    with get_session(engine) as session:
        post = session.get(LfgPost, post_id)
        if post is None:
            raise NotFoundError(f"LFG post {post_id} not found.")
        if not post.is_active:
            raise ForbiddenError("This LFG post is no longer active.")
        if _find_participant(session, post_id, user_id) is not None:
            raise ConflictError("Already joined this group.")

        participant = LfgParticipant(lfg_post_id=post_id, user_id=user_id, role=role_value)
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(participant)
                session.flush()
        except IntegrityError as exc:
            raise ConflictError("Already joined this group.") from exc

        guard = None
        if not allow_oversubscription:
            guard = LfgPost.players_joined < LfgPost.players_needed
        if not counters.adjust(session, LfgPost, post_id, where=guard, players_joined=1):
            logger.info("Join refused: LFG post %s is full", post_id)
            raise ForbiddenError("This group is already full.")

        session.refresh(participant)
        logger.info("User %s joined LFG post %s as %s", user_id, post_id, role_value)
        return participant


def leave_group(engine: Engine, post_id: str, user_id: str) -> bool:
    """Remove *user_id* from the post.

    Never raises for a missing membership or post: returns ``False`` and
    changes nothing.  ``players_joined`` never drops below zero.
    """
    with get_session(engine) as session:
        removed = session.execute(
            delete(LfgParticipant)
            .where(
                LfgParticipant.lfg_post_id == post_id,
                LfgParticipant.user_id == user_id,
            )
            .execution_options(synchronize_session=False)
        ).rowcount
        if not removed:
            return False
        counters.decrement_floor(session, LfgPost, post_id, "players_joined")

    logger.info("User %s left LFG post %s", user_id, post_id)
    return True
