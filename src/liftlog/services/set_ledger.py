"""Set logging within a workout session."""

import logging

from ..db.engine import connect, transaction
from ..db.repositories import WorkoutSessionRepository, WorkoutSetRepository
from ..errors import InvalidState, NotFound
from ..models.session import SessionStatus
from ..models.workout_set import (
    SetLabel,
    Side,
    WeightUnit,
    WorkoutSet,
    normalize_set_updates,
)
from .base import Service, require_user

logger = logging.getLogger(__name__)


class SetLedger(Service):
    """Appends, edits and removes the sets of a session.

    Numbering is read from the session and its stored sets, and written
    back inside the same ``BEGIN IMMEDIATE`` transaction. Two devices
    adding to the same session are serialized by the store.
    """

    async def add_set(
        self,
        user_id: str | None,
        session_id: int,
        exercise_id: str,
        reps: int,
        weight: float,
        weight_unit: WeightUnit | str,
        side: Side | str | None = None,
        label: SetLabel | str | None = None,
        note: str | None = None,
        rpe: float | None = None,
    ) -> WorkoutSet:
        """Log a set in an active session.

        Returns the stored set, including its ``id``, ``set_number`` and
        ``exercise_set_number``.
        """
        user_id = require_user(user_id)
        now = self.clock()

        async with transaction(self.db_path) as db:
            sessions = WorkoutSessionRepository(db)
            session = await sessions.get(session_id)
            if session is None or session.user_id != user_id:
                raise NotFound("Workout not found")
            if session.status != SessionStatus.ACTIVE:
                raise InvalidState("Workout is not active")

            sets = WorkoutSetRepository(db)
            set_number = await sessions.claim_set_number(session_id)
            exercise_set_number = await sets.next_exercise_set_number(session_id, exercise_id)

            workout_set = WorkoutSet(
                user_id=user_id,
                routine_id=session.routine_id,
                session_id=session_id,
                exercise_id=exercise_id,
                set_number=set_number,
                exercise_set_number=exercise_set_number,
                reps=reps,
                weight=weight,
                weight_unit=WeightUnit(weight_unit),
                side=Side(side) if side else None,
                label=SetLabel(label) if label else None,
                note=note,
                rpe=rpe,
                completed_at=now,
                created_at=now,
            )
            workout_set.id = await sets.create(workout_set)
            await sessions.touch(session_id, now)

        logger.info(
            "Logged set %s (#%d, %s #%d) in workout %s",
            workout_set.id, set_number, exercise_id, exercise_set_number, session_id,
        )
        return workout_set

    async def _get_owned(self, sets: WorkoutSetRepository, user_id: str, set_id: int) -> WorkoutSet:
        workout_set = await sets.get(set_id)
        if workout_set is None or workout_set.user_id != user_id:
            raise NotFound("Set not found")
        return workout_set

    async def update_set(self, user_id: str | None, set_id: int, **updates) -> WorkoutSet:
        """Change content fields of a set.

        Only reps, weight, weight_unit, side, label, note and rpe may be
        passed; numbering and ownership fields never change.
        """
        user_id = require_user(user_id)
        fields = normalize_set_updates(updates)

        async with transaction(self.db_path) as db:
            sets = WorkoutSetRepository(db)
            workout_set = await self._get_owned(sets, user_id, set_id)
            await sets.update_fields(set_id, fields)
            for name, value in fields.items():
                setattr(workout_set, name, value)

        return workout_set

    async def delete_set(self, user_id: str | None, set_id: int) -> None:
        """Delete a set and close the gap in its exercise's numbering.

        ``set_number`` of the other sets is left untouched.
        """
        user_id = require_user(user_id)
        async with transaction(self.db_path) as db:
            sets = WorkoutSetRepository(db)
            workout_set = await self._get_owned(sets, user_id, set_id)
            await sets.delete(set_id)
            await sets.resequence_exercise(workout_set.session_id, workout_set.exercise_id)

        logger.info("Deleted set %s from workout %s", set_id, workout_set.session_id)

    async def get_set(self, user_id: str | None, set_id: int) -> WorkoutSet | None:
        """A single set, visible to its owner only."""
        if not user_id:
            return None
        async with connect(self.db_path) as db:
            workout_set = await WorkoutSetRepository(db).get(set_id)
        if workout_set is None or workout_set.user_id != user_id:
            return None
        return workout_set
