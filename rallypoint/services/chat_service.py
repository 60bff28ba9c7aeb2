"""
rallypoint.services.chat_service — Direct & Clan Chat
======================================================
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select, update

from rallypoint.database.engine import get_session
from rallypoint.database.models import ChatMessage
from rallypoint.services.errors import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 100


def create_message(
    engine: Engine,
    *,
    sender_id: str,
    content: str,
    recipient_id: str | None = None,
    clan_id: str | None = None,
) -> ChatMessage:
    """Send a direct message (*recipient_id*) or a clan message (*clan_id*).

    Exactly one target must be given.
    """
    if (recipient_id is None) == (clan_id is None):
        raise ValidationError("A message needs exactly one of recipient_id or clan_id.")
    if not content or not content.strip():
        raise ValidationError("Message content must not be empty.")

    with get_session(engine) as session:
        message = ChatMessage(
            sender_id=sender_id,
            recipient_id=recipient_id,
            clan_id=clan_id,
            content=content,
        )
        session.add(message)
        session.flush()
        session.refresh(message)
        return message


def list_messages(
    engine: Engine,
    *,
    recipient_id: str | None = None,
    clan_id: str | None = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> list[ChatMessage]:
    """Newest-first history for a clan channel or a user's inbox.

    The clan filter wins when both are given; no filter returns nothing.
    """
    if clan_id:
        condition = ChatMessage.clan_id == clan_id
    elif recipient_id:
        condition = ChatMessage.recipient_id == recipient_id
    else:
        return []

    with get_session(engine) as session:
        return list(session.scalars(
            select(ChatMessage)
            .where(condition)
            .order_by(ChatMessage.created_at.desc())
            .limit(limit)
        ).all())


def mark_read(engine: Engine, recipient_id: str, message_ids: list[str]) -> int:
    """Mark the recipient's messages as read.  Returns the number updated."""
    if not message_ids:
        return 0
    with get_session(engine) as session:
        return session.execute(
            update(ChatMessage)
            .where(
                ChatMessage.recipient_id == recipient_id,
                ChatMessage.id.in_(message_ids),
                ChatMessage.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        ).rowcount
