"""
rallypoint.services.forum_service — Forum Categories, Threads & Replies
========================================================================

Counters maintained here:

* ``ForumCategory.thread_count`` — number of threads in the category.
* ``ForumThread.reply_count`` — number of replies in the thread.
* ``ForumThread.last_reply_at`` — latest reply ``created_at``, or the
  thread's own ``created_at`` while it has no replies.

Replies are immutable; there is no edit or delete path for them.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Engine, select

from rallypoint.constants import THREAD_TITLE_MAX_LENGTH
from rallypoint.database.engine import get_session
from rallypoint.database.models import ForumCategory, ForumReply, ForumThread
from rallypoint.services import counters
from rallypoint.services.errors import ForbiddenError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

_THREAD_EDITABLE = frozenset({"title", "content", "is_pinned", "is_locked"})


def _validate_title(title: str | None, max_length: int) -> None:
    if title is None or not title.strip():
        raise ValidationError("Thread title must not be empty.")
    if len(title) > max_length:
        raise ValidationError(f"Thread title must be at most {max_length} characters.")


def _validate_content(content: str | None, what: str) -> None:
    if content is None or not content.strip():
        raise ValidationError(f"{what} content must not be empty.")


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
def list_categories(engine: Engine) -> list[ForumCategory]:
    with get_session(engine) as session:
        return list(session.scalars(
            select(ForumCategory).order_by(ForumCategory.sort_order, ForumCategory.name)
        ).all())


def get_category(engine: Engine, category_id: str) -> ForumCategory | None:
    with get_session(engine) as session:
        return session.get(ForumCategory, category_id)


def create_category(
    engine: Engine,
    *,
    name: str,
    description: str | None = None,
    icon: str | None = None,
    color: str | None = None,
    sort_order: int = 0,
) -> ForumCategory:
    if not name or not name.strip():
        raise ValidationError("Category name must not be empty.")
    with get_session(engine) as session:
        category = ForumCategory(
            name=name, description=description, icon=icon, color=color,
            sort_order=sort_order,
        )
        session.add(category)
        session.flush()
        session.refresh(category)
        return category


# ---------------------------------------------------------------------------
# Threads
# ---------------------------------------------------------------------------
def list_threads(engine: Engine, category_id: str | None = None) -> list[ForumThread]:
    """Pinned threads first, then newest first."""
    with get_session(engine) as session:
        stmt = select(ForumThread).order_by(
            ForumThread.is_pinned.desc(), ForumThread.created_at.desc()
        )
        if category_id:
            stmt = stmt.where(ForumThread.category_id == category_id)
        return list(session.scalars(stmt).all())


def get_thread(engine: Engine, thread_id: str) -> ForumThread | None:
    with get_session(engine) as session:
        return session.get(ForumThread, thread_id)


def create_thread(
    engine: Engine,
    category_id: str,
    author_id: str,
    title: str,
    content: str,
    *,
    title_max_length: int = THREAD_TITLE_MAX_LENGTH,
) -> ForumThread:
    """Insert a thread and bump its category's ``thread_count``.

    Raises
    ------
    ValidationError
        Title empty or longer than *title_max_length*, or content empty.
    NotFoundError
        The category does not exist.
    """
    _validate_title(title, title_max_length)
    _validate_content(content, "Thread")

    created_at = datetime.now(UTC)
    with get_session(engine) as session:
        if session.get(ForumCategory, category_id) is None:
            raise NotFoundError(f"Forum category {category_id} not found.")

        thread = ForumThread(
            category_id=category_id,
            author_id=author_id,
            title=title,
            content=content,
            created_at=created_at,
            last_reply_at=created_at,
        )
        session.add(thread)
        session.flush()
        counters.adjust(session, ForumCategory, category_id, thread_count=1)
        session.refresh(thread)

        logger.info("Thread %s created in category %s by %s", thread.id, category_id, author_id)
        return thread


def update_thread(
    engine: Engine,
    thread_id: str,
    *,
    title_max_length: int = THREAD_TITLE_MAX_LENGTH,
    **changes: Any,
) -> ForumThread:
    """Edit title/content or moderation flags.  Counters are not editable."""
    if "title" in changes:
        _validate_title(changes["title"], title_max_length)
    if "content" in changes:
        _validate_content(changes["content"], "Thread")

    with get_session(engine) as session:
        thread = session.get(ForumThread, thread_id)
        if thread is None:
            raise NotFoundError(f"Thread {thread_id} not found.")
        for key, value in changes.items():
            if key in _THREAD_EDITABLE:
                setattr(thread, key, value)
        session.flush()
        session.refresh(thread)
        return thread


def set_thread_locked(engine: Engine, thread_id: str, locked: bool = True) -> ForumThread:
    thread = update_thread(engine, thread_id, is_locked=locked)
    logger.info("Thread %s %s", thread_id, "locked" if locked else "unlocked")
    return thread


def set_thread_pinned(engine: Engine, thread_id: str, pinned: bool = True) -> ForumThread:
    return update_thread(engine, thread_id, is_pinned=pinned)


def record_view(engine: Engine, thread_id: str) -> None:
    with get_session(engine) as session:
        if not counters.adjust(session, ForumThread, thread_id, view_count=1):
            raise NotFoundError(f"Thread {thread_id} not found.")


# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------
def list_replies(engine: Engine, thread_id: str) -> list[ForumReply]:
    """Replies oldest first."""
    with get_session(engine) as session:
        return list(session.scalars(
            select(ForumReply)
            .where(ForumReply.thread_id == thread_id)
            .order_by(ForumReply.created_at)
        ).all())


def create_reply(
    engine: Engine,
    thread_id: str,
    author_id: str,
    content: str,
    *,
    parent_reply_id: str | None = None,
) -> ForumReply:
    """Insert a reply, bump ``reply_count`` and advance ``last_reply_at``.

    Raises
    ------
    NotFoundError
        The thread does not exist, or *parent_reply_id* is not a reply in it.
    ForbiddenError
        The thread is locked.
    ValidationError
        Content is empty.
    """
    _validate_content(content, "Reply")

    created_at = datetime.now(UTC)
    with get_session(engine) as session:
        thread = session.get(ForumThread, thread_id)
        if thread is None:
            raise NotFoundError(f"Thread {thread_id} not found.")
        if thread.is_locked:
            logger.info("Reply refused: thread %s is locked", thread_id)
            raise ForbiddenError("This thread is locked.")
        if parent_reply_id is not None:
            parent = session.get(ForumReply, parent_reply_id)
            if parent is None or parent.thread_id != thread_id:
                raise NotFoundError(f"Reply {parent_reply_id} not found in thread {thread_id}.")

        reply = ForumReply(
            thread_id=thread_id,
            author_id=author_id,
            content=content,
            parent_reply_id=parent_reply_id,
            created_at=created_at,
        )
        session.add(reply)
        session.flush()
        # Guarded so a lock committed after the read above still wins.
        if not counters.adjust(
            session, ForumThread, thread_id,
            where=ForumThread.is_locked.is_(False), reply_count=1,
        ):
            raise ForbiddenError("This thread is locked.")
        counters.advance_timestamp(session, ForumThread, thread_id, "last_reply_at", created_at)
        session.refresh(reply)
        return reply
