"""
rallypoint.api.routes.community — Profiles, clans, chat, stats & VIP tiers
===========================================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from rallypoint.api.deps import get_config, get_current_user_id, get_engine, require_owner
from rallypoint.config import RallypointConfig
from rallypoint.constants import CLAN_TAG_MAX_LENGTH, VIP_TIERS
from rallypoint.database.models import ChatMessage, Clan, User
from rallypoint.services import chat_service, clan_service, stats_service, user_service

router = APIRouter(tags=["community"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class ProfileUpdate(BaseModel):
    username: str | None = Field(default=None, min_length=3, max_length=50)
    first_name: str | None = None
    last_name: str | None = None
    bio: str | None = None
    profile_image_url: str | None = None


class ClanCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    tag: str = Field(min_length=1, max_length=CLAN_TAG_MAX_LENGTH)
    description: str | None = None
    primary_game: str | None = None
    requirements: str | None = None
    discord_invite: str | None = None


class MessageCreate(BaseModel):
    content: str
    recipient_id: str | None = None
    clan_id: str | None = None


class MarkRead(BaseModel):
    message_ids: list[str]


def user_dict(u: User) -> dict:
    return {
        "id": u.id,
        "username": u.username,
        "first_name": u.first_name,
        "last_name": u.last_name,
        "bio": u.bio,
        "profile_image_url": u.profile_image_url,
        "vip_tier": u.vip_tier,
        "reputation": u.reputation,
        "games_played": u.games_played,
        "clan_id": u.clan_id,
        "clan_role": u.clan_role,
        "created_at": u.created_at.isoformat() if u.created_at else None,
    }


def clan_dict(c: Clan) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "tag": c.tag,
        "description": c.description,
        "owner_id": c.owner_id,
        "is_recruiting": c.is_recruiting,
        "member_count": c.member_count,
        "max_members": c.max_members,
        "primary_game": c.primary_game,
        "requirements": c.requirements,
        "discord_invite": c.discord_invite,
    }


def message_dict(m: ChatMessage) -> dict:
    return {
        "id": m.id,
        "sender_id": m.sender_id,
        "recipient_id": m.recipient_id,
        "clan_id": m.clan_id,
        "content": m.content,
        "is_read": m.is_read,
        "created_at": m.created_at.isoformat() if m.created_at else None,
    }


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
@router.get("/users/me")
def get_me(user_id: str = Depends(get_current_user_id), engine=Depends(get_engine)):
    user = user_service.get_user(engine, user_id)
    if user is None:
        raise HTTPException(404, "User not found")
    return user_dict(user)


@router.patch("/users/me")
def update_me(
    body: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    return user_dict(user_service.update_user(engine, user_id, **changes))


@router.get("/users/{user_id}")
def get_user(user_id: str, engine=Depends(get_engine)):
    user = user_service.get_user(engine, user_id)
    if user is None:
        raise HTTPException(404, "User not found")
    return user_dict(user)


# ---------------------------------------------------------------------------
# Clans
# ---------------------------------------------------------------------------
@router.get("/clans")
def list_clans(engine=Depends(get_engine)):
    return {"clans": [clan_dict(c) for c in clan_service.list_clans(engine)]}


@router.get("/clans/{clan_id}")
def get_clan(clan_id: str, engine=Depends(get_engine)):
    clan = clan_service.get_clan(engine, clan_id)
    if clan is None:
        raise HTTPException(404, "Clan not found")
    return {
        **clan_dict(clan),
        "members": [user_dict(u) for u in clan_service.list_members(engine, clan_id)],
    }


@router.post("/clans", status_code=201)
def create_clan(
    body: ClanCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return clan_dict(clan_service.create_clan(engine, owner_id=user_id, **body.model_dump()))


@router.delete("/clans/{clan_id}", status_code=204)
def delete_clan(
    clan_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    clan = clan_service.get_clan(engine, clan_id)
    if clan is None:
        raise HTTPException(404, "Clan not found")
    require_owner(clan.owner_id, user_id, "clan")
    clan_service.delete_clan(engine, clan_id)


@router.post("/clans/{clan_id}/join")
def join_clan(
    clan_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return clan_dict(clan_service.join_clan(engine, clan_id, user_id))


@router.post("/clans/{clan_id}/leave")
def leave_clan(
    clan_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"left": clan_service.leave_clan(engine, clan_id, user_id)}


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------
@router.get("/chat")
def list_messages(
    clan_id: str | None = Query(None),
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    cfg: RallypointConfig = Depends(get_config),
):
    """Clan channel history when *clan_id* is given, otherwise the caller's inbox."""
    if clan_id:
        user = user_service.get_user(engine, user_id)
        if user is None or user.clan_id != clan_id:
            raise HTTPException(403, "Not a member of this clan")
        messages = chat_service.list_messages(
            engine, clan_id=clan_id, limit=cfg.chat_history_limit,
        )
    else:
        messages = chat_service.list_messages(
            engine, recipient_id=user_id, limit=cfg.chat_history_limit,
        )
    return {"messages": [message_dict(m) for m in messages]}


@router.post("/chat", status_code=201)
def send_message(
    body: MessageCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    if body.clan_id:
        user = user_service.get_user(engine, user_id)
        if user is None or user.clan_id != body.clan_id:
            raise HTTPException(403, "Not a member of this clan")
    message = chat_service.create_message(
        engine,
        sender_id=user_id,
        content=body.content,
        recipient_id=body.recipient_id,
        clan_id=body.clan_id,
    )
    return message_dict(message)


@router.post("/chat/read")
def mark_read(
    body: MarkRead,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"updated": chat_service.mark_read(engine, user_id, body.message_ids)}


# ---------------------------------------------------------------------------
# Stats & VIP catalogue
# ---------------------------------------------------------------------------
@router.get("/stats")
def get_stats(engine=Depends(get_engine)):
    return stats_service.get_stats(engine)


@router.get("/vip/tiers")
def list_vip_tiers():
    return {
        "tiers": [
            {"tier": tier.value, **info} for tier, info in VIP_TIERS.items()
        ],
    }
