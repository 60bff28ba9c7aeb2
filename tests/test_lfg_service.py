"""
tests/test_lfg_service.py — LFG Membership Tests
=================================================
Service-level tests for lfg_service.join_group() / leave_group():
duplicate-join rejection, the zero floor on players_joined, and the
over-subscription policy.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from rallypoint.database.models import GameRole, LfgParticipant, LfgPost
from rallypoint.services import lfg_service
from rallypoint.services.errors import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)


def _joined(engine, post_id: str) -> int:
    return lfg_service.get_lfg_post(engine, post_id).players_joined


def _participant_rows(engine, post_id: str) -> int:
    with Session(engine) as session:
        return session.scalar(
            select(func.count())
            .select_from(LfgParticipant)
            .where(LfgParticipant.lfg_post_id == post_id)
        )


# ===========================================================================
# JoinGroup
# ===========================================================================
class TestJoinGroup:
    def test_join_inserts_participant_and_increments(self, db_engine, lfg_post):
        participant = lfg_service.join_group(db_engine, lfg_post.id, "user-a", GameRole.TANK)
        assert participant.role == GameRole.TANK.value
        assert _joined(db_engine, lfg_post.id) == 1
        assert _participant_rows(db_engine, lfg_post.id) == 1

    def test_role_defaults_to_any(self, db_engine, lfg_post):
        participant = lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        assert participant.role == GameRole.ANY.value

    def test_duplicate_join_conflicts_and_counts_once(self, db_engine, lfg_post):
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        with pytest.raises(ConflictError):
            lfg_service.join_group(db_engine, lfg_post.id, "user-a")

        assert _participant_rows(db_engine, lfg_post.id) == 1
        assert _joined(db_engine, lfg_post.id) == 1

    def test_missing_post_raises_not_found(self, db_engine):
        with pytest.raises(NotFoundError):
            lfg_service.join_group(db_engine, "no-such-post", "user-a")

    def test_inactive_post_is_forbidden(self, db_engine, lfg_post):
        lfg_service.update_lfg_post(db_engine, lfg_post.id, is_active=False)
        with pytest.raises(ForbiddenError):
            lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        assert _participant_rows(db_engine, lfg_post.id) == 0

    def test_unknown_role_rejected(self, db_engine, lfg_post):
        with pytest.raises(ValidationError):
            lfg_service.join_group(db_engine, lfg_post.id, "user-a", "bard")

    def test_join_racing_past_membership_check_conflicts(
        self, db_engine, lfg_post, monkeypatch,
    ):
        """A second join that misses the existing row is stopped by the unique constraint."""
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        monkeypatch.setattr(lfg_service, "_find_participant", lambda *args: None)

        with pytest.raises(ConflictError):
            lfg_service.join_group(db_engine, lfg_post.id, "user-a")

        assert _joined(db_engine, lfg_post.id) == 1
        assert _participant_rows(db_engine, lfg_post.id) == 1


class TestCapacityPolicy:
    def test_full_post_refuses_join_and_rolls_back(self, db_engine, lfg_post):
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        lfg_service.join_group(db_engine, lfg_post.id, "user-b")

        with pytest.raises(ForbiddenError, match="full"):
            lfg_service.join_group(db_engine, lfg_post.id, "user-c")

        assert _joined(db_engine, lfg_post.id) == 2
        assert _participant_rows(db_engine, lfg_post.id) == 2

    def test_oversubscription_allowed_when_enabled(self, db_engine, lfg_post):
        for user in ("user-a", "user-b", "user-c"):
            lfg_service.join_group(db_engine, lfg_post.id, user, allow_oversubscription=True)

        assert _joined(db_engine, lfg_post.id) == 3
        assert _participant_rows(db_engine, lfg_post.id) == 3

    def test_leave_frees_a_slot(self, db_engine, lfg_post):
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        lfg_service.join_group(db_engine, lfg_post.id, "user-b")
        lfg_service.leave_group(db_engine, lfg_post.id, "user-a")

        lfg_service.join_group(db_engine, lfg_post.id, "user-c")
        assert _joined(db_engine, lfg_post.id) == 2


# ===========================================================================
# LeaveGroup
# ===========================================================================
class TestLeaveGroup:
    def test_leave_removes_participant_and_decrements(self, db_engine, lfg_post):
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        assert lfg_service.leave_group(db_engine, lfg_post.id, "user-a") is True
        assert _joined(db_engine, lfg_post.id) == 0
        assert _participant_rows(db_engine, lfg_post.id) == 0

    def test_leave_when_not_joined_is_noop(self, db_engine, lfg_post):
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        assert lfg_service.leave_group(db_engine, lfg_post.id, "user-b") is False
        assert _joined(db_engine, lfg_post.id) == 1

    def test_leave_at_zero_stays_at_zero(self, db_engine, lfg_post):
        assert lfg_service.leave_group(db_engine, lfg_post.id, "user-a") is False
        assert _joined(db_engine, lfg_post.id) == 0

    def test_floor_holds_when_counter_already_drifted_to_zero(self, db_engine, lfg_post):
        """A participant row with a zero counter must not push it negative."""
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        with Session(db_engine) as session:
            session.execute(
                update(LfgPost).where(LfgPost.id == lfg_post.id).values(players_joined=0)
            )
            session.commit()

        assert lfg_service.leave_group(db_engine, lfg_post.id, "user-a") is True
        assert _joined(db_engine, lfg_post.id) == 0

    def test_leave_missing_post_is_noop(self, db_engine):
        assert lfg_service.leave_group(db_engine, "no-such-post", "user-a") is False


# ===========================================================================
# Post CRUD
# ===========================================================================
class TestLfgPosts:
    def test_create_rejects_zero_capacity(self, db_engine):
        with pytest.raises(ValidationError):
            lfg_service.create_lfg_post(
                db_engine, author_id="u", title="t", game="g", platform="PC",
                players_needed=0,
            )

    def test_create_ignores_players_joined(self, db_engine):
        post = lfg_service.create_lfg_post(
            db_engine, author_id="u", title="t", game="g", platform="PC",
            players_joined=7,
        )
        assert post.players_joined == 0

    def test_list_returns_only_active(self, db_engine, lfg_post):
        closed = lfg_service.create_lfg_post(
            db_engine, author_id="u", title="closed", game="g", platform="PC",
        )
        lfg_service.update_lfg_post(db_engine, closed.id, is_active=False)
        ids = {p.id for p in lfg_service.list_lfg_posts(db_engine)}
        assert ids == {lfg_post.id}

    def test_delete_removes_participants(self, db_engine, lfg_post):
        lfg_service.join_group(db_engine, lfg_post.id, "user-a")
        assert lfg_service.delete_lfg_post(db_engine, lfg_post.id) is True
        assert _participant_rows(db_engine, lfg_post.id) == 0
