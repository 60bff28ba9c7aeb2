"""
rallypoint.services.clan_service — Clans & Clan Membership
===========================================================

Membership fact: ``users.clan_id``.  ``Clan.member_count`` is derived from
it and moves by relative updates in the same transaction as the
membership change.  The owner counts as a member from creation.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Engine, or_, select, update
from sqlalchemy.exc import IntegrityError

from rallypoint.constants import CLAN_TAG_MAX_LENGTH, clan_capacity_for
from rallypoint.database.engine import get_session
from rallypoint.database.models import Clan, User
from rallypoint.services import counters
from rallypoint.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = frozenset({
    "name", "description", "logo_url", "banner_url", "is_recruiting",
    "discord_invite", "primary_game", "requirements",
})

OWNER_ROLE = "owner"
MEMBER_ROLE = "member"


def _validate_identity(name: str | None, tag: str | None) -> None:
    if name is not None and not name.strip():
        raise ValidationError("Clan name must not be empty.")
    if tag is not None and not (1 <= len(tag.strip()) <= CLAN_TAG_MAX_LENGTH):
        raise ValidationError(f"Clan tag must be 1-{CLAN_TAG_MAX_LENGTH} characters.")


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def list_clans(engine: Engine) -> list[Clan]:
    """Largest clans first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(Clan).order_by(Clan.member_count.desc(), Clan.name)
        ).all())


def get_clan(engine: Engine, clan_id: str) -> Clan | None:
    with get_session(engine) as session:
        return session.get(Clan, clan_id)


def list_members(engine: Engine, clan_id: str) -> list[User]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(User).where(User.clan_id == clan_id).order_by(User.username)
        ).all())


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------
def create_clan(
    engine: Engine,
    *,
    owner_id: str,
    name: str,
    tag: str,
    **fields: Any,
) -> Clan:
    """Create a clan owned by *owner_id*, who becomes its first member.

    ``max_members`` follows the owner's VIP tier.
    """
    _validate_identity(name, tag)
    fields = {k: v for k, v in fields.items() if k in _EDITABLE_FIELDS - {"name"}}

    with get_session(engine) as session:
        owner = session.get(User, owner_id)
        if owner is None:
            raise NotFoundError(f"User {owner_id} not found.")
        if owner.clan_id is not None:
            raise ConflictError("Leave your current clan before creating one.")

        clan = Clan(
            owner_id=owner_id,
            name=name,
            tag=tag.strip().upper(),
            member_count=1,
            max_members=clan_capacity_for(owner.vip_tier),
            **fields,
        )
        try:
            with session.begin_nested():   # SAVEPOINT
                session.add(clan)
                session.flush()
        except IntegrityError as exc:
            raise ConflictError("Clan name or tag is already taken.") from exc

        owner.clan_id = clan.id
        owner.clan_role = OWNER_ROLE
        session.flush()
        session.refresh(clan)
        logger.info("Clan %s [%s] created by %s", clan.id, clan.tag, owner_id)
        return clan


def update_clan(engine: Engine, clan_id: str, **changes: Any) -> Clan:
    _validate_identity(changes.get("name"), None)
    with get_session(engine) as session:
        clan = session.get(Clan, clan_id)
        if clan is None:
            raise NotFoundError(f"Clan {clan_id} not found.")
        for key, value in changes.items():
            if key in _EDITABLE_FIELDS:
                setattr(clan, key, value)
        try:
            with session.begin_nested():
                session.flush()
        except IntegrityError as exc:
            raise ConflictError("Clan name is already taken.") from exc
        session.refresh(clan)
        return clan


def delete_clan(engine: Engine, clan_id: str) -> bool:
    """Delete a clan and detach all its members."""
    with get_session(engine) as session:
        clan = session.get(Clan, clan_id)
        if clan is None:
            return False
        session.execute(
            update(User)
            .where(User.clan_id == clan_id)
            .values(clan_id=None, clan_role=None)
            .execution_options(synchronize_session=False)
        )
        session.delete(clan)
    logger.info("Clan %s deleted", clan_id)
    return True


# ---------------------------------------------------------------------------
# Membership
# ---------------------------------------------------------------------------
def join_clan(engine: Engine, clan_id: str, user_id: str) -> Clan:
    """Add *user_id* to the clan and bump ``member_count``.

    Raises
    ------
    NotFoundError
        Clan or user does not exist.
    ConflictError
        The user already belongs to a clan.
    ForbiddenError
        The clan is not recruiting or is full.
    """
    with get_session(engine) as session:
        clan = session.get(Clan, clan_id)
        if clan is None:
            raise NotFoundError(f"Clan {clan_id} not found.")
        if session.get(User, user_id) is None:
            raise NotFoundError(f"User {user_id} not found.")
        if not clan.is_recruiting:
            raise ForbiddenError("This clan is not recruiting.")

        joined = session.execute(
            update(User)
            .where(User.id == user_id, User.clan_id.is_(None))
            .values(clan_id=clan_id, clan_role=MEMBER_ROLE)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not joined:
            raise ConflictError("Already a member of a clan.")

        has_room = or_(Clan.max_members.is_(None), Clan.member_count < Clan.max_members)
        if not counters.adjust(session, Clan, clan_id, where=has_room, member_count=1):
            raise ForbiddenError("This clan is full.")

        session.refresh(clan)
        logger.info("User %s joined clan %s", user_id, clan_id)
        return clan


def leave_clan(engine: Engine, clan_id: str, user_id: str) -> bool:
    """Remove *user_id* from the clan.  Returns ``False`` if not a member.

    Raises
    ------
    ForbiddenError
        The user owns the clan (delete it or hand it over instead).
    """
    with get_session(engine) as session:
        clan = session.get(Clan, clan_id)
        if clan is not None and clan.owner_id == user_id:
            raise ForbiddenError("The clan owner cannot leave the clan.")

        left = session.execute(
            update(User)
            .where(User.id == user_id, User.clan_id == clan_id)
            .values(clan_id=None, clan_role=None)
            .execution_options(synchronize_session=False)
        ).rowcount
        if not left:
            return False
        counters.decrement_floor(session, Clan, clan_id, "member_count")

    logger.info("User %s left clan %s", user_id, clan_id)
    return True
