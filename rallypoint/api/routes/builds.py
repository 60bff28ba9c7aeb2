"""
rallypoint.api.routes.builds — Build sharing & voting
======================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from rallypoint.api.deps import get_current_user_id, get_engine, require_owner
from rallypoint.database.models import Build, VoteDirection
from rallypoint.services import build_service

router = APIRouter(prefix="/builds", tags=["builds"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class BuildCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    game: str = Field(min_length=1, max_length=100)
    content: str = Field(min_length=1)
    description: str | None = None
    character: str | None = None
    category: str | None = None
    image_url: str | None = None


class BuildUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    content: str | None = Field(default=None, min_length=1)
    description: str | None = None
    character: str | None = None
    category: str | None = None
    image_url: str | None = None


class VoteBody(BaseModel):
    direction: VoteDirection


def build_dict(b: Build) -> dict:
    return {
        "id": b.id,
        "author_id": b.author_id,
        "title": b.title,
        "description": b.description,
        "game": b.game,
        "character": b.character,
        "category": b.category,
        "content": b.content,
        "image_url": b.image_url,
        "upvotes": b.upvotes,
        "downvotes": b.downvotes,
        "score": b.upvotes - b.downvotes,
        "view_count": b.view_count,
        "is_featured": b.is_featured,
        "created_at": b.created_at.isoformat() if b.created_at else None,
    }


def _require_build(engine, build_id: str) -> Build:
    build = build_service.get_build(engine, build_id)
    if build is None:
        raise HTTPException(404, "Build not found")
    return build


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------
@router.get("")
def list_builds(game: str | None = Query(None), engine=Depends(get_engine)):
    return {"builds": [build_dict(b) for b in build_service.list_builds(engine, game)]}


@router.get("/{build_id}")
def get_build(build_id: str, engine=Depends(get_engine)):
    return build_dict(_require_build(engine, build_id))


@router.post("", status_code=201)
def create_build(
    body: BuildCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    build = build_service.create_build(engine, author_id=user_id, **body.model_dump())
    return build_dict(build)


@router.patch("/{build_id}")
def update_build(
    build_id: str,
    body: BuildUpdate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    require_owner(_require_build(engine, build_id).author_id, user_id, "build")
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    return build_dict(build_service.update_build(engine, build_id, **changes))


@router.delete("/{build_id}", status_code=204)
def delete_build(
    build_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    require_owner(_require_build(engine, build_id).author_id, user_id, "build")
    build_service.delete_build(engine, build_id)


@router.post("/{build_id}/view", status_code=204)
def record_view(build_id: str, engine=Depends(get_engine)):
    build_service.record_view(engine, build_id)


@router.post("/{build_id}/vote")
def vote(
    build_id: str,
    body: VoteBody,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    """Cast, retract (same direction again) or switch a vote."""
    result = build_service.cast_vote(engine, build_id, user_id, body.direction)
    return {
        "build_id": result.build_id,
        "upvotes": result.upvotes,
        "downvotes": result.downvotes,
        "user_vote": result.user_vote.value if result.user_vote else None,
    }


@router.get("/{build_id}/vote")
def my_vote(
    build_id: str,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    vote_row = build_service.get_build_vote(engine, build_id, user_id)
    return {"build_id": build_id, "user_vote": vote_row.direction if vote_row else None}
