"""
rallypoint.services.user_service — Member Profiles & VIP Tier
==============================================================

Identity (sessions, Discord/Roblox linking) and payments are handled
elsewhere; this module only stores the resulting profile and tier.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Engine, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from rallypoint.database.engine import get_session
from rallypoint.database.models import User, VipTier
from rallypoint.services.errors import ConflictError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

# Profile fields a user (or the upsert path) may set.  Counters and clan
# membership move through their own services.
_EDITABLE_FIELDS = frozenset({
    "email", "username", "first_name", "last_name",
    "profile_image_url", "bio", "vip_tier",
})


def _clean(changes: dict[str, Any]) -> dict[str, Any]:
    cleaned = {k: v for k, v in changes.items() if k in _EDITABLE_FIELDS}
    if "vip_tier" in cleaned:
        try:
            cleaned["vip_tier"] = VipTier(cleaned["vip_tier"]).value
        except ValueError as exc:
            raise ValidationError(f"Unknown VIP tier: {cleaned['vip_tier']!r}") from exc
    return cleaned


def _flush_unique(session: Session) -> None:
    """Flush inside a SAVEPOINT, mapping unique violations to ConflictError."""
    try:
        with session.begin_nested():
            session.flush()
    except IntegrityError as exc:
        raise ConflictError("Email or username is already taken.") from exc


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------
def get_user(engine: Engine, user_id: str) -> User | None:
    with get_session(engine) as session:
        return session.get(User, user_id)


def get_user_by_email(engine: Engine, email: str) -> User | None:
    with get_session(engine) as session:
        return session.scalar(select(User).where(User.email == email))


def get_user_by_username(engine: Engine, username: str) -> User | None:
    with get_session(engine) as session:
        return session.scalar(select(User).where(User.username == username))


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------
def upsert_user(engine: Engine, user_id: str, **fields: Any) -> User:
    """Insert the user, or update the given profile fields if it exists."""
    fields = _clean(fields)
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            user = User(id=user_id, **fields)
            session.add(user)
        else:
            for key, value in fields.items():
                setattr(user, key, value)
        _flush_unique(session)
        session.refresh(user)
        return user


def update_user(engine: Engine, user_id: str, **changes: Any) -> User:
    changes = _clean(changes)
    with get_session(engine) as session:
        user = session.get(User, user_id)
        if user is None:
            raise NotFoundError(f"User {user_id} not found.")
        for key, value in changes.items():
            setattr(user, key, value)
        _flush_unique(session)
        session.refresh(user)
        return user


def set_vip_tier(engine: Engine, user_id: str, tier: VipTier | str) -> User:
    """Record a tier change (called once the payment provider confirms)."""
    user = update_user(engine, user_id, vip_tier=tier)
    logger.info("User %s VIP tier → %s", user_id, user.vip_tier)
    return user
