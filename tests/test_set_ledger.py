"""Tests for set logging."""

import asyncio
import sqlite3

import pytest

from liftlog.config import settings
from liftlog.errors import InvalidState, MutationFailed, NotFound, Unauthorized
from liftlog.models import SetLabel, Side, WeightUnit
from liftlog.services import SetLedger


@pytest.fixture
async def session_id(session_service, make_routine):
    routine = await make_routine(exercise_ids=("squat", "bench", "row"))
    started = await session_service.start("alice", routine.id)
    return started.session_id


async def sets_of(session_service, session_id, exercise_id=None):
    detail = await session_service.get_by_id("alice", session_id)
    return [s for s in detail.sets if exercise_id is None or s.exercise_id == exercise_id]


class TestAddSet:
    """Tests for logging sets."""

    async def test_add_set_fields(self, set_ledger, session_id, clock):
        workout_set = await set_ledger.add_set(
            "alice", session_id, "squat", 5, 102.5, "kg",
            side="left", label="working", note="Belt on", rpe=8,
        )

        assert workout_set.id is not None
        assert workout_set.set_number == 1
        assert workout_set.exercise_set_number == 1
        assert workout_set.weight_unit == WeightUnit.KG
        assert workout_set.side == Side.LEFT
        assert workout_set.label == SetLabel.WORKING
        assert workout_set.note == "Belt on"
        assert workout_set.rpe == 8
        assert workout_set.completed_at == clock.now

        stored = await set_ledger.get_set("alice", workout_set.id)
        assert stored == workout_set

    async def test_numbering_interleaved(self, set_ledger, session_id):
        """set_number counts the whole session, exercise_set_number each exercise."""
        logged = []
        for exercise_id in ("squat", "bench", "squat", "bench", "squat"):
            logged.append(await set_ledger.add_set("alice", session_id, exercise_id, 5, 60, "kg"))

        assert [s.set_number for s in logged] == [1, 2, 3, 4, 5]
        assert [s.exercise_set_number for s in logged] == [1, 1, 2, 2, 3]

    async def test_add_refreshes_heartbeat(self, set_ledger, session_service, session_id, clock):
        clock.advance(minutes=3)
        await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")

        detail = await session_service.get_by_id("alice", session_id)
        assert detail.session.last_heartbeat == clock.now

    async def test_add_to_paused_session_rejected(self, set_ledger, session_service, session_id):
        await session_service.pause("alice", session_id)
        with pytest.raises(InvalidState):
            await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")

    async def test_add_to_completed_session_rejected(
        self, set_ledger, session_service, session_id
    ):
        await session_service.complete("alice", session_id)
        with pytest.raises(InvalidState):
            await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")

    async def test_add_to_foreign_session(self, set_ledger, session_id):
        with pytest.raises(NotFound):
            await set_ledger.add_set("bob", session_id, "squat", 5, 100, "kg")
        with pytest.raises(Unauthorized):
            await set_ledger.add_set(None, session_id, "squat", 5, 100, "kg")

    async def test_bad_unit_rejected(self, set_ledger, session_id):
        with pytest.raises(ValueError):
            await set_ledger.add_set("alice", session_id, "squat", 5, 100, "stone")


class TestDeleteSet:
    """Tests for deleting sets and renumbering."""

    async def test_delete_second_of_three(self, set_ledger, session_service, session_id):
        """Deleting set 2 of 3 leaves sets numbered 1 and 2 for the exercise."""
        first = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        second = await set_ledger.add_set("alice", session_id, "squat", 5, 105, "kg")
        third = await set_ledger.add_set("alice", session_id, "squat", 5, 110, "kg")

        await set_ledger.delete_set("alice", second.id)

        remaining = await sets_of(session_service, session_id, "squat")
        assert [s.id for s in remaining] == [first.id, third.id]
        assert [s.exercise_set_number for s in remaining] == [1, 2]
        # session-wide numbers keep their gap
        assert [s.set_number for s in remaining] == [1, 3]

    async def test_set_number_never_reused(self, set_ledger, session_id):
        await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        last = await set_ledger.add_set("alice", session_id, "bench", 5, 80, "kg")
        await set_ledger.delete_set("alice", last.id)

        again = await set_ledger.add_set("alice", session_id, "bench", 5, 80, "kg")

        assert again.set_number == 3
        assert again.exercise_set_number == 1

    async def test_deleting_highest_set_does_not_free_its_number(
        self, set_ledger, session_service, session_id
    ):
        logged = [
            await set_ledger.add_set("alice", session_id, "squat", 5, 100 + i, "kg")
            for i in range(3)
        ]
        await set_ledger.delete_set("alice", logged[2].id)

        again = await set_ledger.add_set("alice", session_id, "squat", 5, 110, "kg")

        assert again.set_number == 4
        assert again.exercise_set_number == 3
        remaining = await sets_of(session_service, session_id)
        assert [s.set_number for s in remaining] == [1, 2, 4]

    async def test_delete_leaves_other_exercises(self, set_ledger, session_service, session_id):
        squat = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        await set_ledger.add_set("alice", session_id, "bench", 5, 80, "kg")
        await set_ledger.add_set("alice", session_id, "bench", 5, 80, "kg")

        await set_ledger.delete_set("alice", squat.id)

        bench = await sets_of(session_service, session_id, "bench")
        assert [s.exercise_set_number for s in bench] == [1, 2]

    async def test_exercise_numbers_contiguous_after_many_deletes(
        self, set_ledger, session_service, session_id
    ):
        logged = [
            await set_ledger.add_set("alice", session_id, "row", 10, 50 + i, "kg")
            for i in range(5)
        ]
        for workout_set in (logged[0], logged[3]):
            await set_ledger.delete_set("alice", workout_set.id)

        added = await set_ledger.add_set("alice", session_id, "row", 10, 60, "kg")
        remaining = await sets_of(session_service, session_id, "row")

        assert added.exercise_set_number == 4
        assert [s.exercise_set_number for s in remaining] == [1, 2, 3, 4]
        assert [s.weight for s in remaining] == [51, 52, 54, 60]

    async def test_delete_foreign_set(self, set_ledger, session_id):
        workout_set = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        with pytest.raises(NotFound):
            await set_ledger.delete_set("bob", workout_set.id)
        with pytest.raises(NotFound):
            await set_ledger.delete_set("alice", 999)


class TestUpdateSet:
    """Tests for editing sets."""

    async def test_update_content(self, set_ledger, session_id):
        workout_set = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")

        updated = await set_ledger.update_set(
            "alice", workout_set.id, reps=6, weight=225, weight_unit="lbs", label="pr"
        )

        assert updated.reps == 6
        assert updated.weight == 225
        assert updated.weight_unit == WeightUnit.LBS
        assert updated.label == SetLabel.PR
        assert updated.set_number == workout_set.set_number

        stored = await set_ledger.get_set("alice", workout_set.id)
        assert stored.reps == 6
        assert stored.weight_unit == WeightUnit.LBS

    async def test_update_numbering_rejected(self, set_ledger, session_id):
        workout_set = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        with pytest.raises(ValueError):
            await set_ledger.update_set("alice", workout_set.id, set_number=9)

    async def test_update_after_completion_allowed(
        self, set_ledger, session_service, session_id
    ):
        workout_set = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        await session_service.complete("alice", session_id)

        updated = await set_ledger.update_set("alice", workout_set.id, note="Typo fixed")
        assert updated.note == "Typo fixed"

    async def test_update_foreign_set(self, set_ledger, session_id):
        workout_set = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        with pytest.raises(NotFound):
            await set_ledger.update_set("bob", workout_set.id, reps=1)

    async def test_get_set_owner_only(self, set_ledger, session_id):
        workout_set = await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")

        assert await set_ledger.get_set("bob", workout_set.id) is None
        assert await set_ledger.get_set(None, workout_set.id) is None
        assert await set_ledger.get_set("alice", 999) is None


class TestConcurrentWriters:
    """Tests for several writers sharing one store."""

    async def test_concurrent_adds_number_uniquely(
        self, db_path, clock, session_service, session_id
    ):
        """Two devices logging at once still get distinct, gap-free numbers."""
        phone, watch = SetLedger(db_path, clock), SetLedger(db_path, clock)
        entries = [
            (phone, "squat"), (watch, "squat"), (phone, "bench"),
            (watch, "squat"), (phone, "bench"), (watch, "squat"),
        ]

        logged = await asyncio.gather(*(
            ledger.add_set("alice", session_id, exercise_id, 5, 100, "kg")
            for ledger, exercise_id in entries
        ))

        assert sorted(s.set_number for s in logged) == [1, 2, 3, 4, 5, 6]
        stored = await sets_of(session_service, session_id)
        for exercise_id, count in (("squat", 4), ("bench", 2)):
            numbers = sorted(s.exercise_set_number for s in stored if s.exercise_id == exercise_id)
            assert numbers == list(range(1, count + 1))

    async def test_locked_store_raises_mutation_failed(
        self, set_ledger, session_service, session_id, db_path, monkeypatch
    ):
        monkeypatch.setattr(settings, "db_busy_timeout", 0.05)
        other_writer = sqlite3.connect(db_path, isolation_level=None)
        other_writer.execute("BEGIN IMMEDIATE")
        try:
            with pytest.raises(MutationFailed):
                await set_ledger.add_set("alice", session_id, "squat", 5, 100, "kg")
        finally:
            other_writer.execute("ROLLBACK")
            other_writer.close()

        assert await sets_of(session_service, session_id) == []
