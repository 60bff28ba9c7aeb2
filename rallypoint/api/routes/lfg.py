"""
rallypoint.api.routes.lfg — Looking-for-group postings & membership
====================================================================
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from rallypoint.api.deps import get_config, get_current_user_id, get_engine, require_owner
from rallypoint.config import RallypointConfig
from rallypoint.database.models import GameRole, LfgParticipant, LfgPost, SkillLevel
from rallypoint.services import lfg_service

router = APIRouter(prefix="/lfg", tags=["lfg"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class LfgCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    game: str = Field(min_length=1, max_length=100)
    platform: str = Field(min_length=1, max_length=50)
    description: str | None = None
    region: str | None = None
    skill_level: SkillLevel = SkillLevel.INTERMEDIATE
    role_needed: GameRole = GameRole.ANY
    players_needed: int = Field(default=1, ge=1)
    scheduled_at: datetime | None = None


class LfgUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    region: str | None = None
    skill_level: SkillLevel | None = None
    role_needed: GameRole | None = None
    players_needed: int | None = Field(default=None, ge=1)
    scheduled_at: datetime | None = None
    is_active: bool | None = None


class JoinBody(BaseModel):
    role: GameRole | None = None


def post_dict(p: LfgPost) -> dict:
    return {
        "id": p.id,
        "author_id": p.author_id,
        "title": p.title,
        "description": p.description,
        "game": p.game,
        "platform": p.platform,
        "region": p.region,
        "skill_level": p.skill_level,
        "role_needed": p.role_needed,
        "players_needed": p.players_needed,
        "players_joined": p.players_joined,
        "scheduled_at": p.scheduled_at.isoformat() if p.scheduled_at else None,
        "is_active": p.is_active,
        "created_at": p.created_at.isoformat() if p.created_at else None,
    }


def participant_dict(m: LfgParticipant) -> dict:
    return {
        "id": m.id,
        "lfg_post_id": m.lfg_post_id,
        "user_id": m.user_id,
        "role": m.role,
        "joined_at": m.joined_at.isoformat() if m.joined_at else None,
    }


def _require_post(engine, post_id: str) -> LfgPost:
    post = lfg_service.get_lfg_post(engine, post_id)
    if post is None:
        raise HTTPException(404, "LFG post not found")
    return post


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.get("")
def list_posts(engine=Depends(get_engine)):
    return {"posts": [post_dict(p) for p in lfg_service.list_lfg_posts(engine)]}


@router.get("/{post_id}")
def get_post(post_id: str, engine=Depends(get_engine)):
    return post_dict(_require_post(engine, post_id))


@router.post("", status_code=201)
def create_post(
    body: LfgCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return post_dict(lfg_service.create_lfg_post(engine, author_id=user_id, **body.model_dump()))


@router.patch("/{post_id}")
def update_post(
    post_id: str,
    body: LfgUpdate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    require_owner(_require_post(engine, post_id).author_id, user_id, "post")
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    return post_dict(lfg_service.update_lfg_post(engine, post_id, **changes))


@router.delete("/{post_id}", status_code=204)
def delete_post(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    require_owner(_require_post(engine, post_id).author_id, user_id, "post")
    lfg_service.delete_lfg_post(engine, post_id)


@router.get("/{post_id}/participants")
def list_participants(post_id: str, engine=Depends(get_engine)):
    return {
        "participants": [
            participant_dict(m) for m in lfg_service.list_participants(engine, post_id)
        ],
    }


@router.post("/{post_id}/join", status_code=201)
def join(
    post_id: str,
    body: JoinBody | None = None,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    cfg: RallypointConfig = Depends(get_config),
):
    participant = lfg_service.join_group(
        engine,
        post_id,
        user_id,
        body.role if body else None,
        allow_oversubscription=cfg.allow_lfg_oversubscription,
    )
    return participant_dict(participant)


@router.post("/{post_id}/leave")
def leave(
    post_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    return {"left": lfg_service.leave_group(engine, post_id, user_id)}
