"""
tests/test_reconciliation.py — Counter Reconciliation Tests
============================================================
Injects drift into each derived counter with raw UPDATEs and checks that
reconcile_counters() restores the value implied by the fact rows.
"""

from __future__ import annotations

import logging

from sqlalchemy import update
from sqlalchemy.orm import Session

from rallypoint.database.models import Build, Clan, ForumCategory, ForumThread, LfgPost
from rallypoint.services import (
    build_service,
    clan_service,
    forum_service,
    lfg_service,
    reconciliation_service,
)


def _corrupt(engine, model, row_id: str, **values) -> None:
    with Session(engine) as session:
        session.execute(update(model).where(model.id == row_id).values(**values))
        session.commit()


class TestReconcileCounters:
    def test_clean_database_reports_no_corrections(self, db_engine, build, thread):
        build_service.cast_vote(db_engine, build.id, "user-a", "up")
        forum_service.create_reply(db_engine, thread.id, "user-b", "hi")

        result = reconciliation_service.reconcile_counters(db_engine)

        assert result["corrected"] == 0
        assert result["corrections"] == []
        assert result["checked"] > 0
        assert "timestamp" in result

    def test_fixes_vote_tallies(self, db_engine, build):
        build_service.cast_vote(db_engine, build.id, "user-a", "up")
        build_service.cast_vote(db_engine, build.id, "user-b", "down")
        _corrupt(db_engine, Build, build.id, upvotes=10, downvotes=-3)

        result = reconciliation_service.reconcile_counters(db_engine)

        fixed = build_service.get_build(db_engine, build.id)
        assert (fixed.upvotes, fixed.downvotes) == (1, 1)
        fields = {c["field"] for c in result["corrections"]}
        assert fields == {"upvotes", "downvotes"}

    def test_fixes_players_joined(self, db_engine, lfg_post):
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        _corrupt(db_engine, LfgPost, lfg_post.id, players_joined=0)

        reconciliation_service.reconcile_counters(db_engine)

        assert lfg_service.get_lfg_post(db_engine, lfg_post.id).players_joined == 1

    def test_fixes_forum_counters(self, db_engine, category, thread):
        reply = forum_service.create_reply(db_engine, thread.id, "user-b", "hi")
        _corrupt(db_engine, ForumCategory, category.id, thread_count=5)
        _corrupt(db_engine, ForumThread, thread.id, reply_count=0, last_reply_at=None)

        result = reconciliation_service.reconcile_counters(db_engine)

        assert forum_service.get_category(db_engine, category.id).thread_count == 1
        fixed = forum_service.get_thread(db_engine, thread.id)
        assert fixed.reply_count == 1
        assert fixed.last_reply_at == reply.created_at
        assert result["corrected"] == 3

    def test_thread_without_replies_falls_back_to_created_at(self, db_engine, thread):
        _corrupt(db_engine, ForumThread, thread.id, last_reply_at=None)

        reconciliation_service.reconcile_counters(db_engine)

        fixed = forum_service.get_thread(db_engine, thread.id)
        assert fixed.last_reply_at == fixed.created_at

    def test_fixes_clan_member_count(self, db_engine, make_user):
        make_user("owner")
        clan = clan_service.create_clan(
            db_engine, owner_id="user-owner", name="Night Owls", tag="OWL",
        )
        _corrupt(db_engine, Clan, clan.id, member_count=40)

        reconciliation_service.reconcile_counters(db_engine)

        assert clan_service.get_clan(db_engine, clan.id).member_count == 1

    def test_drift_logged_as_warning(self, db_engine, build, caplog):
        _corrupt(db_engine, Build, build.id, upvotes=3)
        with caplog.at_level(logging.WARNING, logger="rallypoint.services.reconciliation_service"):
            reconciliation_service.reconcile_counters(db_engine)
        assert "corrected 1/" in caplog.text
