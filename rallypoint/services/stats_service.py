"""
rallypoint.services.stats_service — Community Totals
=====================================================
"""

from __future__ import annotations

from sqlalchemy import Engine, func, select

from rallypoint.database.engine import get_session
from rallypoint.database.models import Build, Clan, LfgPost, User


def get_stats(engine: Engine) -> dict[str, int]:
    """Headline numbers for the landing page."""
    with get_session(engine) as session:
        total_members = session.scalar(select(func.count()).select_from(User)) or 0
        active_lfg = session.scalar(
            select(func.count()).select_from(LfgPost).where(LfgPost.is_active.is_(True))
        ) or 0
        total_clans = session.scalar(select(func.count()).select_from(Clan)) or 0
        total_builds = session.scalar(select(func.count()).select_from(Build)) or 0

    return {
        "total_members": total_members,
        "active_lfg": active_lfg,
        "total_clans": total_clans,
        "total_builds": total_builds,
    }
