"""Routine management and per-exercise history aggregation."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..config import settings
from ..db.engine import connect, transaction
from ..db.repositories import (
    FriendRepository,
    RoutineRepository,
    WorkoutSessionRepository,
    WorkoutSetRepository,
)
from ..errors import NotFound
from ..models.routine import Routine, RoutineExercise, Visibility, validate_exercise_order
from ..models.session import WorkoutSession
from ..models.workout_set import WorkoutSet
from .base import Service, require_user
from .visibility import can_view

logger = logging.getLogger(__name__)


@dataclass
class ExerciseSummary:
    """Recent performance of one exercise within a routine."""

    sets: list[WorkoutSet]  # oldest first
    last_performed: datetime | None
    best_weight: float
    best_reps: int

    def to_dict(self) -> dict:
        return {
            "sets": [s.to_dict() for s in self.sets],
            "last_performed": self.last_performed.isoformat() if self.last_performed else None,
            "best_weight": self.best_weight,
            "best_reps": self.best_reps,
        }


@dataclass
class RoutineWithHistory:
    routine: Routine
    exercise_history: dict[str, ExerciseSummary] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = self.routine.to_dict()
        data["exercise_history"] = {
            exercise_id: summary.to_dict()
            for exercise_id, summary in self.exercise_history.items()
        }
        return data


@dataclass
class SessionSets:
    """The sets of one exercise performed during one session."""

    session: WorkoutSession | None
    sets: list[WorkoutSet]

    def to_dict(self) -> dict:
        return {
            "session": self.session.to_dict() if self.session else None,
            "sets": [s.to_dict() for s in self.sets],
        }


@dataclass
class ExerciseHistory:
    routine_id: int
    exercise_id: str
    sessions: list[SessionSets]
    total_sets: int

    def to_dict(self) -> dict:
        return {
            "routine_id": self.routine_id,
            "exercise_id": self.exercise_id,
            "sessions": [s.to_dict() for s in self.sessions],
            "total_sets": self.total_sets,
        }


@dataclass
class PersonalRecord:
    value: float
    set: WorkoutSet | None

    def to_dict(self) -> dict:
        return {"value": self.value, "set": self.set.to_dict() if self.set else None}


@dataclass
class ExercisePRs:
    exercise_id: str
    max_weight: PersonalRecord
    max_reps: PersonalRecord
    max_volume: PersonalRecord
    total_sets: int

    def to_dict(self) -> dict:
        return {
            "exercise_id": self.exercise_id,
            "max_weight": self.max_weight.to_dict(),
            "max_reps": self.max_reps.to_dict(),
            "max_volume": self.max_volume.to_dict(),
            "total_sets": self.total_sets,
        }


def summarize_sets(sets_newest_first: list[WorkoutSet]) -> ExerciseSummary:
    """Running maxima over a window of sets.

    Best weight and best reps are tracked independently, so they may come
    from different sets.
    """
    best_weight = 0
    best_reps = 0
    last_performed = None

    for s in sets_newest_first:
        if s.weight > best_weight:
            best_weight = s.weight
        if s.reps > best_reps:
            best_reps = s.reps
        if last_performed is None or s.completed_at > last_performed:
            last_performed = s.completed_at

    return ExerciseSummary(
        sets=list(reversed(sets_newest_first)),
        last_performed=last_performed,
        best_weight=best_weight,
        best_reps=best_reps,
    )


def group_by_session(
    sets: list[WorkoutSet], sessions: dict[int, WorkoutSession]
) -> list[SessionSets]:
    """Group sets per session, newest session first."""
    grouped: dict[int, list[WorkoutSet]] = {}
    for s in sets:
        grouped.setdefault(s.session_id, []).append(s)

    result = [
        SessionSets(
            session=sessions.get(session_id),
            sets=sorted(session_sets, key=lambda s: s.exercise_set_number),
        )
        for session_id, session_sets in grouped.items()
    ]
    result.sort(
        key=lambda group: group.session.started_at if group.session else datetime.min,
        reverse=True,
    )
    return result


def compute_prs(exercise_id: str, sets: list[WorkoutSet]) -> ExercisePRs | None:
    """All-time records for weight, reps and volume (weight x reps)."""
    if not sets:
        return None

    max_weight = PersonalRecord(0, None)
    max_reps = PersonalRecord(0, None)
    max_volume = PersonalRecord(0, None)

    for s in sets:
        if s.weight > max_weight.value:
            max_weight = PersonalRecord(s.weight, s)
        if s.reps > max_reps.value:
            max_reps = PersonalRecord(s.reps, s)
        if s.volume > max_volume.value:
            max_volume = PersonalRecord(s.volume, s)

    return ExercisePRs(
        exercise_id=exercise_id,
        max_weight=max_weight,
        max_reps=max_reps,
        max_volume=max_volume,
        total_sets=len(sets),
    )


class RoutineService(Service):
    """Routine CRUD plus history read models."""

    async def list_routines(self, user_id: str | None) -> list[Routine]:
        """The caller's routines, newest first."""
        user_id = require_user(user_id)
        async with connect(self.db_path) as db:
            return await RoutineRepository(db).list_by_user(user_id)

    async def _get_visible(self, db, viewer_id: str, routine_id: int) -> Routine | None:
        routine = await RoutineRepository(db).get(routine_id)
        if routine is None:
            return None
        if not await can_view(routine.user_id, routine.visibility, viewer_id, FriendRepository(db)):
            return None
        return routine

    async def get_by_id(self, viewer_id: str | None, routine_id: int) -> Routine | None:
        """A routine, or None when absent or hidden from the viewer."""
        viewer_id = require_user(viewer_id)
        async with connect(self.db_path) as db:
            return await self._get_visible(db, viewer_id, routine_id)

    async def create_routine(
        self,
        user_id: str | None,
        name: str,
        exercises: list[RoutineExercise],
        description: str | None = None,
        visibility: Visibility | str | None = None,
    ) -> Routine:
        """Create a routine owned by the caller."""
        user_id = require_user(user_id)
        now = self.clock()
        routine = Routine(
            user_id=user_id,
            name=name,
            description=description,
            exercises=list(exercises),
            visibility=Visibility(visibility) if visibility else Visibility.PRIVATE,
            created_at=now,
            updated_at=now,
        )
        async with transaction(self.db_path) as db:
            routine.id = await RoutineRepository(db).create(routine)

        logger.info("User %s created routine %s", user_id, routine.id)
        return routine

    async def update_routine(
        self,
        user_id: str | None,
        routine_id: int,
        name: str | None = None,
        description: str | None = None,
        exercises: list[RoutineExercise] | None = None,
        visibility: Visibility | str | None = None,
    ) -> Routine:
        """Change the supplied fields of one of the caller's routines."""
        user_id = require_user(user_id)
        async with transaction(self.db_path) as db:
            routines = RoutineRepository(db)
            routine = await routines.get(routine_id)
            if routine is None or routine.user_id != user_id:
                raise NotFound("Routine not found")

            if name is not None:
                routine.name = name
            if description is not None:
                routine.description = description
            if exercises is not None:
                validate_exercise_order(exercises)
                routine.exercises = sorted(exercises, key=lambda ex: ex.order)
            if visibility is not None:
                routine.visibility = Visibility(visibility)
            routine.updated_at = self.clock()

            await routines.update(routine)
        return routine

    async def delete_routine(self, user_id: str | None, routine_id: int) -> None:
        """Delete one of the caller's routines with its sessions and sets."""
        user_id = require_user(user_id)
        async with transaction(self.db_path) as db:
            routines = RoutineRepository(db)
            routine = await routines.get(routine_id)
            if routine is None or routine.user_id != user_id:
                raise NotFound("Routine not found")
            await routines.delete(routine_id)

        logger.info("User %s deleted routine %s", user_id, routine_id)

    async def get_with_history(
        self, viewer_id: str | None, routine_id: int
    ) -> RoutineWithHistory | None:
        """A routine plus recent performance of each of its exercises."""
        viewer_id = require_user(viewer_id)
        window = settings.routine_history_window
        async with connect(self.db_path) as db:
            routine = await self._get_visible(db, viewer_id, routine_id)
            if routine is None:
                return None

            set_repo = WorkoutSetRepository(db)
            result = RoutineWithHistory(routine=routine)
            for exercise in routine.exercises:
                recent = await set_repo.list_recent_for_routine_exercise(
                    routine_id, exercise.exercise_id, window
                )
                result.exercise_history[exercise.exercise_id] = summarize_sets(recent)
        return result

    async def get_exercise_history(
        self,
        viewer_id: str | None,
        routine_id: int,
        exercise_id: str,
        limit: int | None = None,
    ) -> ExerciseHistory | None:
        """Recent sets of one exercise in a routine, grouped by session."""
        viewer_id = require_user(viewer_id)
        async with connect(self.db_path) as db:
            routine = await self._get_visible(db, viewer_id, routine_id)
            if routine is None:
                return None

            sets = await WorkoutSetRepository(db).list_recent_for_routine_exercise(
                routine_id, exercise_id, limit or settings.history_limit
            )
            sessions = await WorkoutSessionRepository(db).get_many({s.session_id for s in sets})

        return ExerciseHistory(
            routine_id=routine_id,
            exercise_id=exercise_id,
            sessions=group_by_session(sets, sessions),
            total_sets=len(sets),
        )

    async def get_exercise_prs(self, user_id: str | None, exercise_id: str) -> ExercisePRs | None:
        """The caller's all-time records for an exercise."""
        user_id = require_user(user_id)
        async with connect(self.db_path) as db:
            sets = await WorkoutSetRepository(db).list_by_user_exercise(user_id, exercise_id)
        return compute_prs(exercise_id, sets)
