"""
rallypoint.api.routes.admin — Moderation & maintenance (JWT-protected)
=======================================================================
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from rallypoint.api.deps import get_current_admin, get_engine
from rallypoint.api.routes.builds import build_dict
from rallypoint.api.routes.community import user_dict
from rallypoint.api.routes.forums import category_dict, thread_dict
from rallypoint.database.models import VipTier
from rallypoint.services import (
    build_service,
    forum_service,
    reconciliation_service,
    user_service,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    icon: str | None = None
    color: str | None = None
    order: int = 0


class Flag(BaseModel):
    value: bool = True


class VipUpdate(BaseModel):
    tier: VipTier


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------
@router.post("/reconcile")
def reconcile(admin: dict = Depends(get_current_admin), engine=Depends(get_engine)):
    """Recount every derived counter from its fact table and fix drift."""
    logger.info("Counter reconciliation requested by %s", admin["sub"])
    return reconciliation_service.reconcile_counters(engine)


# ---------------------------------------------------------------------------
# Forum moderation
# ---------------------------------------------------------------------------
@router.post("/forums/categories", status_code=201)
def create_category(
    body: CategoryCreate,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    category = forum_service.create_category(
        engine,
        name=body.name,
        description=body.description,
        icon=body.icon,
        color=body.color,
        sort_order=body.order,
    )
    return category_dict(category)


@router.post("/forums/threads/{thread_id}/lock")
def lock_thread(
    thread_id: str,
    body: Flag,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    return thread_dict(forum_service.set_thread_locked(engine, thread_id, body.value))


@router.post("/forums/threads/{thread_id}/pin")
def pin_thread(
    thread_id: str,
    body: Flag,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    return thread_dict(forum_service.set_thread_pinned(engine, thread_id, body.value))


# ---------------------------------------------------------------------------
# Builds & members
# ---------------------------------------------------------------------------
@router.post("/builds/{build_id}/feature")
def feature_build(
    build_id: str,
    body: Flag,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    return build_dict(build_service.update_build(engine, build_id, is_featured=body.value))


@router.put("/users/{user_id}/vip")
def set_vip_tier(
    user_id: str,
    body: VipUpdate,
    admin: dict = Depends(get_current_admin),
    engine=Depends(get_engine),
):
    if user_service.get_user(engine, user_id) is None:
        raise HTTPException(404, "User not found")
    return user_dict(user_service.set_vip_tier(engine, user_id, body.tier))
