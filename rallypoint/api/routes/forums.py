"""
rallypoint.api.routes.forums — Categories, threads & replies
=============================================================
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel

from rallypoint.api.deps import get_config, get_current_user_id, get_engine, require_owner
from rallypoint.config import RallypointConfig
from rallypoint.database.models import ForumCategory, ForumReply, ForumThread
from rallypoint.services import forum_service

router = APIRouter(prefix="/forums", tags=["forums"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
# Length limits are enforced by forum_service so errors come back typed.
class ThreadCreate(BaseModel):
    category_id: str
    title: str
    content: str


class ThreadUpdate(BaseModel):
    title: str | None = None
    content: str | None = None


class ReplyCreate(BaseModel):
    content: str
    parent_reply_id: str | None = None


def category_dict(c: ForumCategory) -> dict:
    return {
        "id": c.id,
        "name": c.name,
        "description": c.description,
        "icon": c.icon,
        "color": c.color,
        "order": c.sort_order,
        "thread_count": c.thread_count,
    }


def thread_dict(t: ForumThread) -> dict:
    return {
        "id": t.id,
        "category_id": t.category_id,
        "author_id": t.author_id,
        "title": t.title,
        "content": t.content,
        "is_pinned": t.is_pinned,
        "is_locked": t.is_locked,
        "view_count": t.view_count,
        "reply_count": t.reply_count,
        "last_reply_at": t.last_reply_at.isoformat() if t.last_reply_at else None,
        "created_at": t.created_at.isoformat() if t.created_at else None,
    }


def reply_dict(r: ForumReply) -> dict:
    return {
        "id": r.id,
        "thread_id": r.thread_id,
        "author_id": r.author_id,
        "content": r.content,
        "parent_reply_id": r.parent_reply_id,
        "created_at": r.created_at.isoformat() if r.created_at else None,
    }


def _require_thread(engine, thread_id: str) -> ForumThread:
    thread = forum_service.get_thread(engine, thread_id)
    if thread is None:
        raise HTTPException(404, "Thread not found")
    return thread


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
@router.get("/categories")
def list_categories(engine=Depends(get_engine)):
    return {"categories": [category_dict(c) for c in forum_service.list_categories(engine)]}


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------
@router.get("/threads")
def list_threads(category_id: str | None = Query(None), engine=Depends(get_engine)):
    return {"threads": [thread_dict(t) for t in forum_service.list_threads(engine, category_id)]}


@router.get("/threads/{thread_id}")
def get_thread(thread_id: str, engine=Depends(get_engine)):
    return thread_dict(_require_thread(engine, thread_id))


@router.post("/threads", status_code=201)
def create_thread(
    body: ThreadCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    cfg: RallypointConfig = Depends(get_config),
):
    thread = forum_service.create_thread(
        engine,
        body.category_id,
        user_id,
        body.title,
        body.content,
        title_max_length=cfg.thread_title_max_length,
    )
    return thread_dict(thread)


@router.patch("/threads/{thread_id}")
def update_thread(
    thread_id: str,
    body: ThreadUpdate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
    cfg: RallypointConfig = Depends(get_config),
):
    require_owner(_require_thread(engine, thread_id).author_id, user_id, "thread")
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(400, "No fields to update")
    return thread_dict(forum_service.update_thread(
        engine, thread_id, title_max_length=cfg.thread_title_max_length, **changes,
    ))


@router.post("/threads/{thread_id}/view", status_code=204)
def record_view(thread_id: str, engine=Depends(get_engine)):
    forum_service.record_view(engine, thread_id)


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------
@router.get("/threads/{thread_id}/replies")
def list_replies(thread_id: str, engine=Depends(get_engine)):
    return {"replies": [reply_dict(r) for r in forum_service.list_replies(engine, thread_id)]}


@router.post("/threads/{thread_id}/replies", status_code=201)
def create_reply(
    thread_id: str,
    body: ReplyCreate,
    user_id: str = Depends(get_current_user_id),
    engine=Depends(get_engine),
):
    reply = forum_service.create_reply(
        engine, thread_id, user_id, body.content, parent_reply_id=body.parent_reply_id,
    )
    return reply_dict(reply)
