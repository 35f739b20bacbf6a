"""Tests for data models."""

from datetime import datetime, timedelta

import pytest

from liftlog.errors import InvalidState
from liftlog.models import (
    Routine,
    RoutineExercise,
    SessionStatus,
    SetLabel,
    Side,
    Visibility,
    WeightUnit,
    WorkoutSession,
    WorkoutSet,
    compute_active_duration,
)
from liftlog.models.session import TRANSITIONS
from liftlog.models.workout_set import normalize_set_updates

T0 = datetime(2024, 1, 15, 9, 0, 0)


def make_session(status: SessionStatus = SessionStatus.ACTIVE) -> WorkoutSession:
    session = WorkoutSession.begin(
        user_id="alice", routine_id=1, visibility=Visibility.PRIVATE, now=T0
    )
    session.status = status
    return session


def make_routine(*exercise_ids: str) -> Routine:
    return Routine(
        user_id="alice",
        name="Push",
        exercises=[RoutineExercise(exercise_id=e, order=i) for i, e in enumerate(exercise_ids)],
    )


class TestRoutine:
    """Tests for Routine model."""

    def test_exercises_sorted_by_order(self):
        """Test exercises are kept in order regardless of input order."""
        routine = Routine(
            user_id="alice",
            name="Legs",
            exercises=[
                RoutineExercise(exercise_id="rdl", order=1),
                RoutineExercise(exercise_id="squat", order=0),
            ],
        )
        assert [ex.exercise_id for ex in routine.exercises] == ["squat", "rdl"]

    def test_gap_in_order_rejected(self):
        """Test orders must be contiguous from zero."""
        with pytest.raises(ValueError):
            Routine(
                user_id="alice",
                name="Legs",
                exercises=[
                    RoutineExercise(exercise_id="squat", order=0),
                    RoutineExercise(exercise_id="rdl", order=2),
                ],
            )

    def test_duplicate_order_rejected(self):
        with pytest.raises(ValueError):
            Routine(
                user_id="alice",
                name="Legs",
                exercises=[
                    RoutineExercise(exercise_id="squat", order=0),
                    RoutineExercise(exercise_id="rdl", order=0),
                ],
            )

    def test_add_exercise_appends(self):
        routine = make_routine("bench", "ohp")
        added = routine.add_exercise(RoutineExercise(exercise_id="dips", order=99))

        assert added.order == 2
        assert [ex.order for ex in routine.exercises] == [0, 1, 2]

    def test_remove_exercise_renumbers(self):
        routine = make_routine("bench", "ohp", "dips")
        routine.remove_exercise("ohp")

        assert [(ex.exercise_id, ex.order) for ex in routine.exercises] == [
            ("bench", 0),
            ("dips", 1),
        ]

    def test_reorder_exercises(self):
        routine = make_routine("bench", "ohp", "dips")
        routine.reorder_exercises(2, 0)

        assert [(ex.exercise_id, ex.order) for ex in routine.exercises] == [
            ("dips", 0),
            ("bench", 1),
            ("ohp", 2),
        ]

    def test_update_exercise_targets(self):
        routine = make_routine("bench")
        routine.update_exercise("bench", target_sets=5, target_reps=5)

        assert routine.get_exercise("bench").target_sets == 5

    def test_update_exercise_cannot_move(self):
        routine = make_routine("bench", "ohp")
        with pytest.raises(ValueError):
            routine.update_exercise("bench", order=1)

    def test_routine_dict_round_trip(self):
        """Test routine serialization keeps exercises and visibility."""
        routine = make_routine("bench", "ohp")
        routine.visibility = Visibility.FRIENDS
        routine.created_at = T0

        restored = Routine.from_dict(routine.to_dict())

        assert restored.visibility == Visibility.FRIENDS
        assert [ex.exercise_id for ex in restored.exercises] == ["bench", "ohp"]
        assert restored.created_at == T0


class TestSessionTransitions:
    """Tests for the session lifecycle."""

    def test_begin_defaults(self):
        session = make_session()

        assert session.status == SessionStatus.ACTIVE
        assert session.total_paused_time == timedelta(0)
        assert session.last_heartbeat == T0
        assert session.paused_at is None
        assert session.is_open

    def test_transition_graph(self):
        """Terminal states have no way out; open states reach everything else."""
        assert TRANSITIONS[SessionStatus.COMPLETED] == frozenset()
        assert TRANSITIONS[SessionStatus.CANCELLED] == frozenset()
        assert SessionStatus.PAUSED in TRANSITIONS[SessionStatus.ACTIVE]
        assert SessionStatus.ACTIVE in TRANSITIONS[SessionStatus.PAUSED]
        assert SessionStatus.PAUSED not in TRANSITIONS[SessionStatus.PAUSED]

    def test_pause_requires_active(self):
        session = make_session(SessionStatus.PAUSED)
        with pytest.raises(InvalidState):
            session.pause(T0)

    def test_resume_requires_paused(self):
        session = make_session()
        with pytest.raises(InvalidState):
            session.resume(T0)

    def test_resume_banks_pause(self):
        session = make_session()
        session.pause(T0 + timedelta(minutes=10))
        session.resume(T0 + timedelta(minutes=15))

        assert session.status == SessionStatus.ACTIVE
        assert session.paused_at is None
        assert session.total_paused_time == timedelta(minutes=5)
        assert session.last_heartbeat == T0 + timedelta(minutes=15)

    def test_complete_while_paused_folds_pause(self):
        session = make_session()
        session.pause(T0 + timedelta(minutes=20))
        session.complete(T0 + timedelta(minutes=30), notes="Heavy day")

        assert session.status == SessionStatus.COMPLETED
        assert session.total_paused_time == timedelta(minutes=10)
        assert session.ended_at == T0 + timedelta(minutes=30)
        assert session.notes == "Heavy day"
        assert session.active_duration(T0 + timedelta(hours=5)) == timedelta(minutes=20)

    @pytest.mark.parametrize("terminal", [SessionStatus.COMPLETED, SessionStatus.CANCELLED])
    def test_terminal_sessions_are_frozen(self, terminal):
        session = make_session(terminal)
        assert not session.is_open

        for transition in (session.pause, session.resume, session.cancel, session.complete):
            with pytest.raises(InvalidState):
                transition(T0)
        with pytest.raises(InvalidState):
            session.heartbeat(T0)

    def test_session_dict_round_trip(self):
        session = make_session()
        session.id = 7
        session.pause(T0 + timedelta(minutes=1))

        restored = WorkoutSession.from_dict(session.to_dict())

        assert restored.id == 7
        assert restored.status == SessionStatus.PAUSED
        assert restored.paused_at == T0 + timedelta(minutes=1)


class TestActiveDuration:
    """Tests for elapsed training time."""

    def test_pause_ten_minutes_in_for_five(self):
        """Pausing 10 minutes in for 5 minutes leaves 10 minutes trained."""
        session = make_session()
        session.pause(T0 + timedelta(minutes=10))
        session.resume(T0 + timedelta(minutes=15))

        assert session.active_duration(T0 + timedelta(minutes=15)) == timedelta(minutes=10)

    def test_frozen_while_paused(self):
        session = make_session()
        session.pause(T0 + timedelta(minutes=10))

        at_pause = session.active_duration(T0 + timedelta(minutes=10))
        later = session.active_duration(T0 + timedelta(minutes=40))

        assert at_pause == later == timedelta(minutes=10)

    def test_monotonic_while_active(self):
        session = make_session()
        samples = [session.active_duration(T0 + timedelta(minutes=m)) for m in range(0, 60, 7)]
        assert samples == sorted(samples)

    def test_never_negative(self):
        assert compute_active_duration(
            T0, timedelta(hours=2), None, T0 + timedelta(minutes=1)
        ) == timedelta(0)
        assert compute_active_duration(None, timedelta(0), None, T0) == timedelta(0)


class TestWorkoutSet:
    """Tests for WorkoutSet model and updates."""

    def test_volume(self):
        workout_set = WorkoutSet(
            user_id="alice",
            routine_id=1,
            session_id=1,
            exercise_id="squat",
            set_number=1,
            exercise_set_number=1,
            reps=5,
            weight=100,
            weight_unit=WeightUnit.KG,
            completed_at=T0,
            created_at=T0,
        )
        assert workout_set.volume == 500

    def test_normalize_coerces_enums(self):
        fields = normalize_set_updates({"weight_unit": "lbs", "side": "left", "label": "pr"})

        assert fields == {
            "weight_unit": WeightUnit.LBS,
            "side": Side.LEFT,
            "label": SetLabel.PR,
        }

    def test_normalize_drops_none(self):
        assert normalize_set_updates({"reps": 8, "note": None}) == {"reps": 8}

    @pytest.mark.parametrize("field", ["set_number", "exercise_set_number", "session_id", "user_id"])
    def test_normalize_rejects_identity_fields(self, field):
        with pytest.raises(ValueError):
            normalize_set_updates({field: 1})

    def test_normalize_rejects_bad_enum(self):
        with pytest.raises(ValueError):
            normalize_set_updates({"weight_unit": "stone"})
