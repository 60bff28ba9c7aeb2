"""
rallypoint.database.seed — Default Forum Categories
====================================================

Idempotent — only seeds when the ``forum_categories`` table is empty, so
categories renamed or added by admins are never touched.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, func, select

from rallypoint.database.engine import get_session
from rallypoint.database.models import ForumCategory

logger = logging.getLogger(__name__)


DEFAULT_CATEGORIES: list[dict[str, object]] = [
    {
        "name": "General Discussion",
        "description": "General gaming chat and community discussions",
        "icon": "MessageSquare", "color": "primary", "sort_order": 1,
    },
    {
        "name": "Game Guides",
        "description": "Share and discuss game guides and tutorials",
        "icon": "BookOpen", "color": "chart-1", "sort_order": 2,
    },
    {
        "name": "Bug Reports",
        "description": "Report bugs and issues",
        "icon": "Bug", "color": "destructive", "sort_order": 3,
    },
    {
        "name": "Feedback & Suggestions",
        "description": "Share your ideas and feedback",
        "icon": "Lightbulb", "color": "chart-5", "sort_order": 4,
    },
    {
        "name": "Off-Topic",
        "description": "Non-gaming discussions",
        "icon": "Coffee", "color": "muted", "sort_order": 5,
    },
    {
        "name": "VIP Lounge",
        "description": "Exclusive discussions for VIP members",
        "icon": "Crown", "color": "chart-2", "sort_order": 6,
    },
]


def seed_forum_categories(engine: Engine) -> int:
    """Insert :data:`DEFAULT_CATEGORIES` if no category exists yet.

    Returns the number of categories inserted.
    """
    with get_session(engine) as session:
        existing = session.scalar(select(func.count()).select_from(ForumCategory)) or 0
        if existing:
            logger.debug("Forum categories already exist, skipping seed.")
            return 0
        for fields in DEFAULT_CATEGORIES:
            session.add(ForumCategory(**fields))

    logger.info("Seeded %d forum categories.", len(DEFAULT_CATEGORIES))
    return len(DEFAULT_CATEGORIES)
