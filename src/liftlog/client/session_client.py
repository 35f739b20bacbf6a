"""Optimistic workout session client.

Every mutation is applied to the local mirror first so the UI reacts at
once, then written through the backend. When the write fails the local
change is undone with its inverse and the failure comes back as a
``Result`` instead of an exception.
"""

import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Callable

from ..config import settings
from ..errors import LiftLogError
from ..models.routine import Visibility
from ..models.session import SessionStatus
from ..models.workout_set import normalize_set_updates
from .backend import WorkoutBackend
from .mirror import LocalSet, SessionMirror
from .result import INVALID_STATE, NOT_FOUND, Result

logger = logging.getLogger(__name__)

# Failures a backend is expected to raise
BACKEND_ERRORS = (LiftLogError, ValueError)


class WorkoutSessionClient:
    """Owns one ``SessionMirror`` and keeps it in step with the store."""

    def __init__(
        self,
        backend: WorkoutBackend,
        mirror: SessionMirror | None = None,
        heartbeat_interval: float | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.backend = backend
        self.clock = clock or datetime.now
        self.mirror = mirror or SessionMirror(clock=self.clock)
        self.heartbeat_interval = (
            heartbeat_interval
            if heartbeat_interval is not None
            else settings.heartbeat_interval_seconds
        )
        self._heartbeat_task: asyncio.Task | None = None

    def _no_session(self) -> Result:
        return Result.failure(INVALID_STATE, "No workout in progress")

    # Lifecycle

    async def start_workout(
        self, routine_id: int, visibility: Visibility | str | None = None
    ) -> Result[int]:
        """Start a session on the store, then mirror it."""
        if self.mirror.has_session:
            return Result.failure(
                INVALID_STATE, f"Workout {self.mirror.session_id} is already in progress"
            )
        try:
            started = await self.backend.start_session(routine_id, visibility)
        except BACKEND_ERRORS as e:
            logger.warning("Failed to start workout from routine %s: %s", routine_id, e)
            return Result.from_exception("Failed to start workout", e)

        self.mirror.start(
            session_id=started.session_id,
            routine_id=started.routine.id,
            routine_name=started.session.name or started.routine.name,
            exercises=started.routine.exercises,
            started_at=started.session.started_at,
        )
        self._start_heartbeat()
        return Result.success(started.session_id)

    async def restore(self) -> Result[int]:
        """Rebuild the mirror from the store's open session, if any.

        Succeeds with None when the user has nothing in progress.
        """
        try:
            detail = await self.backend.get_active_session()
        except BACKEND_ERRORS as e:
            logger.warning("Failed to restore workout: %s", e)
            return Result.from_exception("Failed to restore workout", e)

        if detail is None:
            return Result.success(None)

        self.mirror.restore(detail)
        if detail.session.status == SessionStatus.ACTIVE:
            self._start_heartbeat()
        logger.info(
            "Restored workout %s with %d sets", detail.session.id, len(detail.sets)
        )
        return Result.success(detail.session.id)

    async def pause(self) -> Result[None]:
        if not self.mirror.has_session:
            return self._no_session()

        snapshot = self.mirror.timing_snapshot()
        self.mirror.pause(self.clock())
        await self._stop_heartbeat()
        try:
            await self.backend.pause_session(self.mirror.session_id)
        except BACKEND_ERRORS as e:
            self.mirror.restore_timing(snapshot)
            if not self.mirror.is_paused:
                self._start_heartbeat()
            return Result.from_exception("Failed to pause workout", e)
        return Result.success()

    async def resume(self) -> Result[None]:
        if not self.mirror.has_session:
            return self._no_session()

        snapshot = self.mirror.timing_snapshot()
        self.mirror.resume(self.clock())
        try:
            await self.backend.resume_session(self.mirror.session_id)
        except BACKEND_ERRORS as e:
            self.mirror.restore_timing(snapshot)
            return Result.from_exception("Failed to resume workout", e)
        self._start_heartbeat()
        return Result.success()

    async def complete(self, notes: str | None = None) -> Result[None]:
        """Complete the session; the mirror is cleared on success."""
        if not self.mirror.has_session:
            return Result.failure(NOT_FOUND, "No workout to complete")
        try:
            await self.backend.complete_session(self.mirror.session_id, notes)
        except BACKEND_ERRORS as e:
            return Result.from_exception("Failed to complete workout", e)

        await self._stop_heartbeat()
        self.mirror.reset()
        return Result.success()

    async def cancel(self) -> Result[None]:
        """Cancel the session; the store drops its sets."""
        if not self.mirror.has_session:
            return Result.failure(NOT_FOUND, "No workout to cancel")
        try:
            await self.backend.cancel_session(self.mirror.session_id)
        except BACKEND_ERRORS as e:
            return Result.from_exception("Failed to cancel workout", e)

        await self._stop_heartbeat()
        self.mirror.reset()
        return Result.success()

    # Sets

    async def add_set(
        self,
        exercise_id: str,
        reps: int,
        weight: float,
        weight_unit: str,
        side: str | None = None,
        label: str | None = None,
        note: str | None = None,
        rpe: float | None = None,
    ) -> Result[LocalSet]:
        """Log a set; on success the returned entry carries its ``db_id``."""
        if not self.mirror.has_session:
            return self._no_session()

        try:
            local_set = self.mirror.add(
                exercise_id, reps, weight, weight_unit,
                side=side, label=label, note=note, rpe=rpe,
            )
        except ValueError as e:
            return Result.from_exception("Invalid set", e)

        try:
            stored = await self.backend.add_set(
                self.mirror.session_id, exercise_id, reps, weight, weight_unit,
                side=side, label=label, note=note, rpe=rpe,
            )
        except BACKEND_ERRORS as e:
            self.mirror.remove(local_set.local_id)
            logger.warning("Failed to save set for %s: %s", exercise_id, e)
            return Result.from_exception("Failed to save set", e)

        self.mirror.mark_saved(local_set.local_id, stored.id)
        return Result.success(self.mirror.find(local_set.local_id))

    async def update_set(self, local_id: str, **updates) -> Result[LocalSet]:
        """Edit a set's content fields, reverting locally if the store refuses."""
        try:
            fields = normalize_set_updates(updates)
        except ValueError as e:
            return Result.from_exception("Invalid set update", e)

        previous = self.mirror.update(local_id, **fields)
        if previous is None:
            return Result.failure(NOT_FOUND, f"Set {local_id} not found")

        if previous.db_id is not None:
            try:
                await self.backend.update_set(previous.db_id, **fields)
            except BACKEND_ERRORS as e:
                self.mirror.put(previous)
                return Result.from_exception("Failed to update set", e)

        return Result.success(self.mirror.find(local_id))

    async def remove_set(self, local_id: str) -> Result[None]:
        """Remove a set; it is put back if the store refuses."""
        removed = self.mirror.remove(local_id)
        if removed is None:
            return Result.failure(NOT_FOUND, f"Set {local_id} not found")

        if removed.db_id is not None:
            try:
                await self.backend.delete_set(removed.db_id)
            except BACKEND_ERRORS as e:
                self.mirror.reinsert(removed)
                return Result.from_exception("Failed to delete set", e)

        return Result.success()

    # Heartbeat

    @property
    def heartbeat_running(self) -> bool:
        return self._heartbeat_task is not None and not self._heartbeat_task.done()

    def _start_heartbeat(self) -> None:
        if self.heartbeat_running:
            return
        self._heartbeat_task = asyncio.create_task(self._heartbeat_loop())

    async def _stop_heartbeat(self) -> None:
        task, self._heartbeat_task = self._heartbeat_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _heartbeat_loop(self) -> None:
        while True:
            await asyncio.sleep(self.heartbeat_interval)
            session_id = self.mirror.session_id
            if session_id is None or self.mirror.is_paused:
                return
            try:
                await self.backend.heartbeat(session_id)
            except BACKEND_ERRORS as e:
                logger.warning("Heartbeat for workout %s failed: %s", session_id, e)

    async def close(self) -> None:
        """Stop background work; the session itself stays open."""
        await self._stop_heartbeat()
