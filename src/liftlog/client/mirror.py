"""Local mirror of the session being trained."""

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from typing import Callable
from uuid import uuid4

from ..models.routine import RoutineExercise
from ..models.session import SessionStatus, compute_active_duration
from ..models.workout_set import SetLabel, Side, WeightUnit


def generate_local_id() -> str:
    return f"local-{uuid4().hex[:12]}"


@dataclass
class LocalSet:
    """A set as the client knows it, before or after the store confirms it."""

    local_id: str
    exercise_id: str
    exercise_set_number: int
    reps: int
    weight: float
    weight_unit: WeightUnit
    side: Side | None = None
    label: SetLabel | None = None
    note: str | None = None
    rpe: float | None = None
    saved_to_db: bool = False
    db_id: int | None = None  # set once the store has assigned an ID


@dataclass(frozen=True)
class TimingSnapshot:
    is_paused: bool
    paused_at: datetime | None
    total_paused_time: timedelta


@dataclass
class SessionMirror:
    """In-memory copy of one in-progress session.

    Each client owns its own mirror. All edits here are synchronous and
    never touch the store; ``WorkoutSessionClient`` pairs them with the
    durable calls and their compensations.
    """

    clock: Callable[[], datetime] = datetime.now
    session_id: int | None = None
    routine_id: int | None = None
    routine_name: str | None = None
    exercises: list[RoutineExercise] = field(default_factory=list)
    current_exercise_index: int = 0
    sets: list[LocalSet] = field(default_factory=list)
    started_at: datetime | None = None
    is_paused: bool = False
    paused_at: datetime | None = None
    total_paused_time: timedelta = timedelta(0)

    @property
    def has_session(self) -> bool:
        return self.session_id is not None

    def start(
        self,
        session_id: int,
        routine_id: int,
        routine_name: str,
        exercises: list[RoutineExercise],
        started_at: datetime | None = None,
    ) -> None:
        """Begin mirroring a fresh session."""
        self.reset()
        self.session_id = session_id
        self.routine_id = routine_id
        self.routine_name = routine_name
        self.exercises = sorted(exercises, key=lambda ex: ex.order)
        self.started_at = started_at or self.clock()

    def reset(self) -> None:
        self.session_id = None
        self.routine_id = None
        self.routine_name = None
        self.exercises = []
        self.current_exercise_index = 0
        self.sets = []
        self.started_at = None
        self.is_paused = False
        self.paused_at = None
        self.total_paused_time = timedelta(0)

    # Sets

    def find(self, local_id: str) -> LocalSet | None:
        for s in self.sets:
            if s.local_id == local_id:
                return s
        return None

    def exercise_sets(self, exercise_id: str) -> list[LocalSet]:
        return [s for s in self.sets if s.exercise_id == exercise_id]

    def add(
        self,
        exercise_id: str,
        reps: int,
        weight: float,
        weight_unit: WeightUnit | str,
        side: Side | str | None = None,
        label: SetLabel | str | None = None,
        note: str | None = None,
        rpe: float | None = None,
        exercise_set_number: int | None = None,
    ) -> LocalSet:
        """Append a set; it gets the next number for its exercise unless given one."""
        if exercise_set_number is None:
            exercise_set_number = len(self.exercise_sets(exercise_id)) + 1
        local_set = LocalSet(
            local_id=generate_local_id(),
            exercise_id=exercise_id,
            exercise_set_number=exercise_set_number,
            reps=reps,
            weight=weight,
            weight_unit=WeightUnit(weight_unit),
            side=Side(side) if side else None,
            label=SetLabel(label) if label else None,
            note=note,
            rpe=rpe,
        )
        self.sets.append(local_set)
        return local_set

    def update(self, local_id: str, **updates) -> LocalSet | None:
        """Apply field changes; returns the entry as it was before."""
        for i, s in enumerate(self.sets):
            if s.local_id == local_id:
                self.sets[i] = replace(s, **updates)
                return s
        return None

    def put(self, local_set: LocalSet) -> None:
        """Overwrite the entry with the same local ID."""
        for i, s in enumerate(self.sets):
            if s.local_id == local_set.local_id:
                self.sets[i] = local_set
                return

    def mark_saved(self, local_id: str, db_id: int) -> None:
        self.update(local_id, saved_to_db=True, db_id=db_id)

    def remove(self, local_id: str) -> LocalSet | None:
        """Drop a set and renumber the rest of its exercise from 1."""
        removed = self.find(local_id)
        if removed is None:
            return None
        self.sets = [s for s in self.sets if s.local_id != local_id]
        self._resequence(removed.exercise_id)
        return removed

    def reinsert(self, local_set: LocalSet) -> None:
        """Put a removed set back among its exercise's sets.

        It goes in front of the first sibling that now holds its old
        number; its position relative to other exercises is approximate.
        """
        index = len(self.sets)
        for i, s in enumerate(self.sets):
            if (
                s.exercise_id == local_set.exercise_id
                and s.exercise_set_number >= local_set.exercise_set_number
            ):
                index = i
                break
        self.sets.insert(index, local_set)
        self._resequence(local_set.exercise_id)

    def _resequence(self, exercise_id: str) -> None:
        number = 1
        for i, s in enumerate(self.sets):
            if s.exercise_id == exercise_id:
                if s.exercise_set_number != number:
                    self.sets[i] = replace(s, exercise_set_number=number)
                number += 1

    # Timing

    def pause(self, now: datetime | None = None) -> None:
        if self.is_paused:
            return
        self.is_paused = True
        self.paused_at = now or self.clock()

    def resume(self, now: datetime | None = None) -> None:
        if not self.is_paused:
            return
        now = now or self.clock()
        if self.paused_at is not None:
            self.total_paused_time += now - self.paused_at
        self.is_paused = False
        self.paused_at = None

    def timing_snapshot(self) -> TimingSnapshot:
        return TimingSnapshot(self.is_paused, self.paused_at, self.total_paused_time)

    def restore_timing(self, snapshot: TimingSnapshot) -> None:
        self.is_paused = snapshot.is_paused
        self.paused_at = snapshot.paused_at
        self.total_paused_time = snapshot.total_paused_time

    def active_duration(self, now: datetime | None = None) -> timedelta:
        return compute_active_duration(
            self.started_at,
            self.total_paused_time,
            self.paused_at if self.is_paused else None,
            now or self.clock(),
        )

    # Exercise navigation

    def set_current_exercise_index(self, index: int) -> None:
        if 0 <= index < len(self.exercises):
            self.current_exercise_index = index

    def next_exercise(self) -> None:
        if self.current_exercise_index < len(self.exercises) - 1:
            self.current_exercise_index += 1

    def previous_exercise(self) -> None:
        if self.current_exercise_index > 0:
            self.current_exercise_index -= 1

    @property
    def current_exercise(self) -> RoutineExercise | None:
        if 0 <= self.current_exercise_index < len(self.exercises):
            return self.exercises[self.current_exercise_index]
        return None

    def current_exercise_sets(self) -> list[LocalSet]:
        exercise = self.current_exercise
        if exercise is None:
            return []
        return self.exercise_sets(exercise.exercise_id)

    # Restore

    def restore(self, detail) -> None:
        """Rebuild the mirror from a stored session (``SessionDetail``).

        Every restored set is already saved.
        """
        session = detail.session
        routine = detail.routine
        self.start(
            session_id=session.id,
            routine_id=session.routine_id,
            routine_name=session.name or (routine.name if routine else "Workout"),
            exercises=routine.exercises if routine else [],
            started_at=session.started_at,
        )
        self.total_paused_time = session.total_paused_time
        self.is_paused = session.status == SessionStatus.PAUSED
        self.paused_at = session.paused_at if self.is_paused else None

        for s in sorted(detail.sets, key=lambda s: s.set_number):
            self.sets.append(
                LocalSet(
                    local_id=generate_local_id(),
                    exercise_id=s.exercise_id,
                    exercise_set_number=s.exercise_set_number,
                    reps=s.reps,
                    weight=s.weight,
                    weight_unit=s.weight_unit,
                    side=s.side,
                    label=s.label,
                    note=s.note,
                    rpe=s.rpe,
                    saved_to_db=True,
                    db_id=s.id,
                )
            )
