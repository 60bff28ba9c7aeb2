"""
tests/test_build_votes.py — Build Voting Tests
===============================================
Service-level tests for build_service.cast_vote(): the per-user
three-state vote (none / up / down), toggle and switch transitions, and
the tallies staying equal to the vote rows.
"""

from __future__ import annotations

import random
from types import SimpleNamespace

import pytest
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from rallypoint.database.models import Build, BuildVote, VoteDirection
from rallypoint.services import build_service
from rallypoint.services.errors import ConflictError, NotFoundError, ValidationError

UP = VoteDirection.UP
DOWN = VoteDirection.DOWN


def _tallies(engine, build_id: str) -> tuple[int, int]:
    build = build_service.get_build(engine, build_id)
    return build.upvotes, build.downvotes


def _vote_rows(engine, build_id: str, direction: VoteDirection | None = None) -> int:
    with Session(engine) as session:
        stmt = select(func.count()).select_from(BuildVote).where(BuildVote.build_id == build_id)
        if direction is not None:
            stmt = stmt.where(BuildVote.direction == direction.value)
        return session.scalar(stmt)


# ===========================================================================
# Single transitions
# ===========================================================================
class TestCastVote:
    def test_first_upvote_increments_upvotes(self, db_engine, build):
        result = build_service.cast_vote(db_engine, build.id, "user-a", UP)
        assert (result.upvotes, result.downvotes) == (1, 0)
        assert result.user_vote is UP
        assert _vote_rows(db_engine, build.id) == 1

    def test_first_downvote_increments_downvotes(self, db_engine, build):
        result = build_service.cast_vote(db_engine, build.id, "user-a", "down")
        assert (result.upvotes, result.downvotes) == (0, 1)
        assert result.user_vote is DOWN

    def test_same_direction_twice_toggles_off(self, db_engine, build):
        """Casting the same vote again returns to no-vote and the baseline."""
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        result = build_service.cast_vote(db_engine, build.id, "user-a", UP)

        assert (result.upvotes, result.downvotes) == (0, 0)
        assert result.user_vote is None
        assert _vote_rows(db_engine, build.id) == 0
        assert build_service.get_build_vote(db_engine, build.id, "user-a") is None

    def test_switch_moves_one_vote_between_counters(self, db_engine, build):
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        result = build_service.cast_vote(db_engine, build.id, "user-a", DOWN)

        assert (result.upvotes, result.downvotes) == (0, 1)
        assert result.user_vote is DOWN
        assert _vote_rows(db_engine, build.id) == 1
        vote = build_service.get_build_vote(db_engine, build.id, "user-a")
        assert vote.direction == DOWN.value

    def test_missing_build_raises_not_found(self, db_engine):
        with pytest.raises(NotFoundError):
            build_service.cast_vote(db_engine, "no-such-build", "user-a", UP)
        assert _vote_rows(db_engine, "no-such-build") == 0

    def test_unknown_direction_rejected(self, db_engine, build):
        with pytest.raises(ValidationError):
            build_service.cast_vote(db_engine, build.id, "user-a", "sideways")
        assert _tallies(db_engine, build.id) == (0, 0)


# ===========================================================================
# Scenario & invariant
# ===========================================================================
class TestVotingScenario:
    def test_two_voters_switch_and_retract(self, db_engine, build):
        assert _tallies(db_engine, build.id) == (0, 0)

        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        assert _tallies(db_engine, build.id) == (1, 0)

        build_service.cast_vote(db_engine, build.id, "user-b", DOWN)
        assert _tallies(db_engine, build.id) == (1, 1)

        build_service.cast_vote(db_engine, build.id, "user-a", DOWN)
        assert _tallies(db_engine, build.id) == (0, 2)

        build_service.cast_vote(db_engine, build.id, "user-a", DOWN)
        assert _tallies(db_engine, build.id) == (0, 1)

    def test_tallies_match_vote_rows_after_random_sequence(self, db_engine, build):
        rng = random.Random(1234)
        users = [f"user-{i}" for i in range(6)]
        for _ in range(60):
            build_service.cast_vote(db_engine, build.id, rng.choice(users), rng.choice([UP, DOWN]))
            up, down = _tallies(db_engine, build.id)
            assert up == _vote_rows(db_engine, build.id, UP)
            assert down == _vote_rows(db_engine, build.id, DOWN)

    def test_each_call_moves_combined_count_by_at_most_one(self, db_engine, build):
        before = sum(_tallies(db_engine, build.id))
        for direction in (UP, DOWN, DOWN, UP, UP):
            result = build_service.cast_vote(db_engine, build.id, "user-a", direction)
            after = result.upvotes + result.downvotes
            assert abs(after - before) <= 1
            before = after



# ===========================================================================
# Concurrent vote by the same user
# ===========================================================================
class TestConcurrentVoteConflicts:
    """The pre-read saw a different vote than the one now stored.

    `_find_vote` is replaced to return what a racing request would have
    seen; every case must raise ConflictError and leave tallies and vote
    rows exactly as they were.
    """

    @staticmethod
    def _stale_read(monkeypatch, result) -> None:
        monkeypatch.setattr(build_service, "_find_vote", lambda *args: result)

    def test_insert_hitting_unique_constraint_conflicts(self, db_engine, build, monkeypatch):
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        self._stale_read(monkeypatch, None)

        with pytest.raises(ConflictError):
            build_service.cast_vote(db_engine, build.id, "user-a", DOWN)

        assert _tallies(db_engine, build.id) == (1, 0)
        assert _vote_rows(db_engine, build.id) == 1
        assert _vote_rows(db_engine, build.id, UP) == 1

    def test_retract_of_already_switched_vote_conflicts(self, db_engine, build, monkeypatch):
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        stored = build_service.get_build_vote(db_engine, build.id, "user-a")
        self._stale_read(monkeypatch, SimpleNamespace(id=stored.id, direction=DOWN.value))

        with pytest.raises(ConflictError):
            build_service.cast_vote(db_engine, build.id, "user-a", DOWN)

        assert _tallies(db_engine, build.id) == (1, 0)
        assert _vote_rows(db_engine, build.id, UP) == 1

    def test_switch_of_already_switched_vote_conflicts(self, db_engine, build, monkeypatch):
        build_service.cast_vote(db_engine, build.id, "user-a", DOWN)
        stored = build_service.get_build_vote(db_engine, build.id, "user-a")
        self._stale_read(monkeypatch, SimpleNamespace(id=stored.id, direction=UP.value))

        with pytest.raises(ConflictError):
            build_service.cast_vote(db_engine, build.id, "user-a", DOWN)

        assert _tallies(db_engine, build.id) == (0, 1)
        assert _vote_rows(db_engine, build.id, DOWN) == 1

    def test_retry_after_conflict_succeeds(self, db_engine, build, monkeypatch):
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        self._stale_read(monkeypatch, None)
        with pytest.raises(ConflictError):
            build_service.cast_vote(db_engine, build.id, "user-a", UP)

        monkeypatch.undo()
        result = build_service.cast_vote(db_engine, build.id, "user-a", UP)
        assert (result.upvotes, result.downvotes, result.user_vote) == (0, 0, None)

# ===========================================================================
# CRUD around votes
# ===========================================================================
class TestBuildCrud:
    def test_create_rejects_blank_title(self, db_engine):
        with pytest.raises(ValidationError):
            build_service.create_build(
                db_engine, author_id="u", title="  ", game="g", content="c",
            )

    def test_update_ignores_counter_fields(self, db_engine, build):
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        updated = build_service.update_build(
            db_engine, build.id, title="Renamed", upvotes=999, downvotes=5,
        )
        assert updated.title == "Renamed"
        assert (updated.upvotes, updated.downvotes) == (1, 0)

    def test_delete_removes_votes(self, db_engine, build):
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        assert build_service.delete_build(db_engine, build.id) is True
        assert build_service.get_build(db_engine, build.id) is None
        assert _vote_rows(db_engine, build.id) == 0

    def test_delete_missing_returns_false(self, db_engine):
        assert build_service.delete_build(db_engine, "nope") is False

    def test_record_view_is_relative(self, db_engine, build):
        build_service.record_view(db_engine, build.id)
        build_service.record_view(db_engine, build.id)
        assert build_service.get_build(db_engine, build.id).view_count == 2

    def test_record_view_missing_build(self, db_engine):
        with pytest.raises(NotFoundError):
            build_service.record_view(db_engine, "nope")

    def test_list_orders_by_upvotes(self, db_engine, build):
        other = build_service.create_build(
            db_engine, author_id="u", title="Glass cannon", game="Overwatch", content="c",
        )
        build_service.cast_vote(db_engine, other.id, "user-a", UP)
        ids = [b.id for b in build_service.list_builds(db_engine)]
        assert ids == [other.id, build.id]

    def test_list_filters_by_game(self, db_engine, build):
        build_service.create_build(
            db_engine, author_id="u", title="Sniper", game="Apex", content="c",
        )
        games = {b.game for b in build_service.list_builds(db_engine, game="Apex")}
        assert games == {"Apex"}

    def test_counter_update_does_not_touch_other_builds(self, db_engine, build):
        other = build_service.create_build(
            db_engine, author_id="u", title="Other", game="Overwatch", content="c",
        )
        build_service.cast_vote(db_engine, build.id, "user-a", UP)
        with Session(db_engine) as session:
            assert session.get(Build, other.id).upvotes == 0
