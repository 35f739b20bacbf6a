"""Tests for routines and their history."""

from datetime import datetime, timedelta

import pytest

from liftlog.config import settings
from liftlog.errors import NotFound, Unauthorized
from liftlog.models import RoutineExercise, Visibility, WeightUnit, WorkoutSet
from liftlog.services.routines import compute_prs, summarize_sets

T0 = datetime(2024, 1, 15, 9, 0, 0)


def make_set(weight: float, reps: int, minutes: int = 0, exercise_set_number: int = 1) -> WorkoutSet:
    at = T0 + timedelta(minutes=minutes)
    return WorkoutSet(
        user_id="alice",
        routine_id=1,
        session_id=1,
        exercise_id="squat",
        set_number=exercise_set_number,
        exercise_set_number=exercise_set_number,
        reps=reps,
        weight=weight,
        weight_unit=WeightUnit.KG,
        completed_at=at,
        created_at=at,
    )


async def log_workout(session_service, set_ledger, clock, routine_id, entries, user="alice"):
    """Run a complete workout logging (exercise_id, reps, weight) entries."""
    started = await session_service.start(user, routine_id)
    for exercise_id, reps, weight in entries:
        clock.advance(minutes=2)
        await set_ledger.add_set(user, started.session_id, exercise_id, reps, weight, "kg")
    await session_service.complete(user, started.session_id)
    clock.advance(days=2)
    return started.session_id


class TestAggregation:
    """Tests for the pure aggregation helpers."""

    def test_summarize_independent_maxima(self):
        """Best weight and best reps can come from different sets."""
        newest_first = [make_set(80, 12, minutes=2), make_set(120, 3, minutes=1), make_set(100, 5)]

        summary = summarize_sets(newest_first)

        assert summary.best_weight == 120
        assert summary.best_reps == 12
        assert summary.last_performed == T0 + timedelta(minutes=2)
        assert [s.weight for s in summary.sets] == [100, 120, 80]

    def test_summarize_empty(self):
        summary = summarize_sets([])
        assert summary.sets == []
        assert summary.last_performed is None
        assert summary.best_weight == 0

    def test_compute_prs(self):
        sets = [make_set(100, 5), make_set(120, 2), make_set(60, 15)]

        prs = compute_prs("squat", sets)

        assert prs.max_weight.value == 120
        assert prs.max_reps.value == 15
        assert prs.max_volume.value == 900
        assert prs.max_volume.set is sets[2]
        assert prs.total_sets == 3

    def test_compute_prs_empty(self):
        assert compute_prs("squat", []) is None


class TestRoutineCrud:
    """Tests for routine management."""

    async def test_create_and_list(self, routine_service, make_routine, clock):
        older = await make_routine(name="A")
        clock.advance(minutes=1)
        newer = await make_routine(name="B")
        await make_routine(user_id="bob", name="C")

        routines = await routine_service.list_routines("alice")

        assert [r.id for r in routines] == [newer.id, older.id]
        assert routines[0].times_performed == 0
        assert routines[0].visibility == Visibility.PRIVATE

    async def test_create_requires_identity(self, routine_service):
        with pytest.raises(Unauthorized):
            await routine_service.create_routine(None, "Legs", [])

    async def test_create_rejects_bad_order(self, routine_service):
        exercises = [
            RoutineExercise(exercise_id="squat", order=0),
            RoutineExercise(exercise_id="rdl", order=3),
        ]
        with pytest.raises(ValueError):
            await routine_service.create_routine("alice", "Legs", exercises)

    async def test_update_partial(self, routine_service, make_routine):
        routine = await make_routine()

        updated = await routine_service.update_routine(
            "alice", routine.id, name="Renamed", visibility=Visibility.PUBLIC
        )

        assert updated.name == "Renamed"
        assert updated.visibility == Visibility.PUBLIC
        assert [ex.exercise_id for ex in updated.exercises] == ["squat", "bench"]

        stored = await routine_service.get_by_id("alice", routine.id)
        assert stored.name == "Renamed"

    async def test_update_exercises(self, routine_service, make_routine):
        routine = await make_routine()
        exercises = [
            RoutineExercise(exercise_id="deadlift", order=1),
            RoutineExercise(exercise_id="squat", order=0),
        ]

        updated = await routine_service.update_routine("alice", routine.id, exercises=exercises)

        assert [ex.exercise_id for ex in updated.exercises] == ["squat", "deadlift"]

    async def test_update_foreign(self, routine_service, make_routine):
        routine = await make_routine(visibility=Visibility.PUBLIC)
        with pytest.raises(NotFound):
            await routine_service.update_routine("bob", routine.id, name="Mine now")

    async def test_delete_cascades(
        self, routine_service, session_service, set_ledger, make_routine
    ):
        routine = await make_routine()
        started = await session_service.start("alice", routine.id)
        workout_set = await set_ledger.add_set("alice", started.session_id, "squat", 5, 100, "kg")

        await routine_service.delete_routine("alice", routine.id)

        assert await routine_service.get_by_id("alice", routine.id) is None
        assert await session_service.get_by_id("alice", started.session_id) is None
        assert await set_ledger.get_set("alice", workout_set.id) is None

    async def test_delete_foreign(self, routine_service, make_routine):
        routine = await make_routine()
        with pytest.raises(NotFound):
            await routine_service.delete_routine("bob", routine.id)

    async def test_get_by_id_visibility(self, routine_service, make_routine, befriend):
        await befriend("alice", "bob")
        routine = await make_routine(visibility=Visibility.FRIENDS)

        assert await routine_service.get_by_id("bob", routine.id) is not None
        assert await routine_service.get_by_id("carol", routine.id) is None
        with pytest.raises(Unauthorized):
            await routine_service.get_by_id(None, routine.id)


class TestRoutineHistory:
    """Tests for per-exercise history and records."""

    async def test_get_with_history(
        self, routine_service, session_service, set_ledger, make_routine, clock
    ):
        routine = await make_routine()
        await log_workout(
            session_service, set_ledger, clock, routine.id,
            [("squat", 5, 100), ("squat", 8, 90), ("bench", 5, 70)],
        )
        await log_workout(
            session_service, set_ledger, clock, routine.id,
            [("squat", 3, 110)],
        )

        result = await routine_service.get_with_history("alice", routine.id)

        squat = result.exercise_history["squat"]
        assert squat.best_weight == 110
        assert squat.best_reps == 8
        assert [s.weight for s in squat.sets] == [100, 90, 110]
        assert squat.last_performed == squat.sets[-1].completed_at

        bench = result.exercise_history["bench"]
        assert bench.best_weight == 70
        assert len(bench.sets) == 1

    async def test_history_window(
        self, routine_service, session_service, set_ledger, make_routine, clock, monkeypatch
    ):
        monkeypatch.setattr(settings, "routine_history_window", 2)
        routine = await make_routine()
        await log_workout(
            session_service, set_ledger, clock, routine.id,
            [("squat", 5, 200), ("squat", 5, 100), ("squat", 5, 105)],
        )

        result = await routine_service.get_with_history("alice", routine.id)

        squat = result.exercise_history["squat"]
        assert [s.weight for s in squat.sets] == [100, 105]
        assert squat.best_weight == 105

    async def test_get_with_history_hidden(self, routine_service, make_routine):
        routine = await make_routine(visibility=Visibility.PRIVATE)
        assert await routine_service.get_with_history("bob", routine.id) is None

    async def test_exercise_history_grouped(
        self, routine_service, session_service, set_ledger, make_routine, clock
    ):
        routine = await make_routine()
        first = await log_workout(
            session_service, set_ledger, clock, routine.id,
            [("squat", 5, 100), ("bench", 5, 70), ("squat", 5, 102.5)],
        )
        second = await log_workout(
            session_service, set_ledger, clock, routine.id,
            [("squat", 5, 105)],
        )

        history = await routine_service.get_exercise_history("alice", routine.id, "squat")

        assert history.total_sets == 3
        assert [group.session.id for group in history.sessions] == [second, first]
        assert [s.exercise_set_number for s in history.sessions[1].sets] == [1, 2]
        assert [s.weight for s in history.sessions[1].sets] == [100, 102.5]

    async def test_exercise_history_limit(
        self, routine_service, session_service, set_ledger, make_routine, clock
    ):
        routine = await make_routine()
        await log_workout(
            session_service, set_ledger, clock, routine.id,
            [("squat", 5, 100), ("squat", 5, 105), ("squat", 5, 110)],
        )

        history = await routine_service.get_exercise_history(
            "alice", routine.id, "squat", limit=2
        )

        assert history.total_sets == 2
        assert [s.weight for s in history.sessions[0].sets] == [105, 110]

    async def test_exercise_prs(
        self, routine_service, session_service, set_ledger, make_routine, clock
    ):
        routine = await make_routine()
        await log_workout(
            session_service, set_ledger, clock, routine.id,
            [("squat", 5, 100), ("squat", 12, 60)],
        )
        other = await make_routine(name="Heavy")
        await log_workout(
            session_service, set_ledger, clock, other.id,
            [("squat", 1, 140)],
        )
        bob_routine = await make_routine(user_id="bob")
        await log_workout(
            session_service, set_ledger, clock, bob_routine.id,
            [("squat", 1, 300)], user="bob",
        )

        prs = await routine_service.get_exercise_prs("alice", "squat")

        assert prs.max_weight.value == 140
        assert prs.max_reps.value == 12
        assert prs.max_volume.value == 720
        assert prs.total_sets == 3
        assert await routine_service.get_exercise_prs("alice", "deadlift") is None
