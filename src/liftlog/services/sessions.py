"""Workout session lifecycle service."""

import logging
from dataclasses import dataclass, field

from ..config import settings
from ..db.engine import connect, transaction
from ..db.repositories import (
    FriendRepository,
    RoutineRepository,
    WorkoutSessionRepository,
    WorkoutSetRepository,
)
from ..errors import InvalidState, NotFound
from ..models.routine import Routine, Visibility
from ..models.session import SessionStatus, WorkoutSession
from ..models.workout_set import WorkoutSet
from .base import Service, require_user
from .visibility import can_view

logger = logging.getLogger(__name__)


@dataclass
class StartedSession:
    """Result of starting a session."""

    session: WorkoutSession
    routine: Routine

    @property
    def session_id(self) -> int:
        return self.session.id

    def to_dict(self) -> dict:
        return {
            "session_id": self.session.id,
            "session": self.session.to_dict(),
            "routine": self.routine.to_dict(),
        }


@dataclass
class SessionDetail:
    """A session together with its sets and routine."""

    session: WorkoutSession
    routine: Routine | None
    sets: list[WorkoutSet] = field(default_factory=list)
    set_count: int | None = None

    def to_dict(self, include_sets: bool = True) -> dict:
        data = self.session.to_dict()
        data["routine"] = self.routine.to_dict() if self.routine else None
        if include_sets:
            data["sets"] = [s.to_dict() for s in self.sets]
        if self.set_count is not None:
            data["set_count"] = self.set_count
        return data

    def to_follow_dict(self) -> dict:
        """The reduced view handed to spectators."""
        return {
            "visibility": self.session.visibility.value,
            "status": self.session.status.value,
            "sets": [s.to_dict() for s in self.sets],
            "routine": self.routine.to_dict() if self.routine else None,
            "started_at": self.session.started_at.isoformat(),
            "last_heartbeat": self.session.last_heartbeat.isoformat(),
        }


class SessionService(Service):
    """Drives sessions through active, paused, completed and cancelled.

    Every mutation is scoped to the session owner and runs in a single
    serializable transaction. A session that is missing or belongs to
    someone else is reported as ``NotFound`` either way.
    """

    async def _get_owned(
        self, sessions: WorkoutSessionRepository, user_id: str, session_id: int
    ) -> WorkoutSession:
        session = await sessions.get(session_id)
        if session is None or session.user_id != user_id:
            raise NotFound("Workout not found")
        return session

    async def start(
        self,
        user_id: str | None,
        routine_id: int,
        visibility: Visibility | None = None,
        name: str | None = None,
    ) -> StartedSession:
        """Start a session from one of the caller's routines."""
        user_id = require_user(user_id)
        now = self.clock()

        async with transaction(self.db_path) as db:
            routine = await RoutineRepository(db).get(routine_id)
            if routine is None or routine.user_id != user_id:
                raise NotFound("Routine not found")

            sessions = WorkoutSessionRepository(db)
            existing = await sessions.get_open(user_id)
            if existing is not None:
                raise InvalidState(
                    f"Workout {existing.id} is already {existing.status.value}"
                )

            session = WorkoutSession.begin(
                user_id=user_id,
                routine_id=routine_id,
                visibility=Visibility(visibility) if visibility else routine.visibility,
                now=now,
                name=name,
            )
            session.id = await sessions.create(session)

        logger.info("User %s started workout %s from routine %s", user_id, session.id, routine_id)
        return StartedSession(session=session, routine=routine)

    async def pause(self, user_id: str | None, session_id: int) -> WorkoutSession:
        """Pause an active session."""
        user_id = require_user(user_id)
        async with transaction(self.db_path) as db:
            sessions = WorkoutSessionRepository(db)
            session = await self._get_owned(sessions, user_id, session_id)
            session.pause(self.clock())
            await sessions.update(session)

        logger.info("Workout %s paused", session_id)
        return session

    async def resume(self, user_id: str | None, session_id: int) -> WorkoutSession:
        """Resume a paused session."""
        user_id = require_user(user_id)
        async with transaction(self.db_path) as db:
            sessions = WorkoutSessionRepository(db)
            session = await self._get_owned(sessions, user_id, session_id)
            session.resume(self.clock())
            await sessions.update(session)

        logger.info("Workout %s resumed", session_id)
        return session

    async def complete(
        self, user_id: str | None, session_id: int, notes: str | None = None
    ) -> WorkoutSession:
        """Complete a session and credit its routine."""
        user_id = require_user(user_id)
        now = self.clock()
        async with transaction(self.db_path) as db:
            sessions = WorkoutSessionRepository(db)
            session = await self._get_owned(sessions, user_id, session_id)
            session.complete(now, notes)
            await sessions.update(session)
            await RoutineRepository(db).record_performed(session.routine_id, now)

        logger.info("Workout %s completed", session_id)
        return session

    async def cancel(self, user_id: str | None, session_id: int) -> WorkoutSession:
        """Cancel a session, discarding every set logged in it.

        Sets are deleted before the status changes, all in one transaction.
        Cancelling an already cancelled session does nothing.
        """
        user_id = require_user(user_id)
        async with transaction(self.db_path) as db:
            sessions = WorkoutSessionRepository(db)
            session = await self._get_owned(sessions, user_id, session_id)
            if session.status == SessionStatus.CANCELLED:
                return session
            if not session.can_transition(SessionStatus.CANCELLED):
                raise InvalidState(f"Cannot cancel a {session.status.value} workout")

            deleted = await WorkoutSetRepository(db).delete_by_session(session_id)
            session.cancel(self.clock())
            await sessions.update(session)

        logger.info("Workout %s cancelled, %d sets discarded", session_id, deleted)
        return session

    async def heartbeat(self, user_id: str | None, session_id: int) -> WorkoutSession:
        """Refresh the liveness timestamp of an open session."""
        user_id = require_user(user_id)
        async with transaction(self.db_path) as db:
            sessions = WorkoutSessionRepository(db)
            session = await self._get_owned(sessions, user_id, session_id)
            session.heartbeat(self.clock())
            await sessions.touch(session_id, session.last_heartbeat)
        return session

    async def _detail(self, db, session: WorkoutSession) -> SessionDetail:
        sets = await WorkoutSetRepository(db).list_by_session(session.id)
        routine = await RoutineRepository(db).get(session.routine_id)
        return SessionDetail(session=session, routine=routine, sets=sets)

    async def get_active(self, user_id: str | None) -> SessionDetail | None:
        """The caller's open session, preferring active over paused."""
        if not user_id:
            return None
        async with connect(self.db_path) as db:
            session = await WorkoutSessionRepository(db).get_open(user_id)
            if session is None:
                return None
            return await self._detail(db, session)

    async def _get_visible(self, db, viewer_id: str | None, session_id: int) -> SessionDetail | None:
        session = await WorkoutSessionRepository(db).get(session_id)
        if session is None:
            return None
        if not await can_view(session.user_id, session.visibility, viewer_id, FriendRepository(db)):
            return None
        return await self._detail(db, session)

    async def get_by_id(self, viewer_id: str | None, session_id: int) -> SessionDetail | None:
        """A session with its sets, or None when absent or hidden."""
        async with connect(self.db_path) as db:
            return await self._get_visible(db, viewer_id, session_id)

    async def follow(self, viewer_id: str | None, session_id: int) -> SessionDetail:
        """Spectate a session; hidden sessions look missing."""
        async with connect(self.db_path) as db:
            detail = await self._get_visible(db, viewer_id, session_id)
        if detail is None:
            raise NotFound("Workout not found")
        return detail

    async def recent(self, user_id: str | None, limit: int | None = None) -> list[SessionDetail]:
        """The caller's latest sessions with routine and set count."""
        user_id = require_user(user_id)
        async with connect(self.db_path) as db:
            sessions = await WorkoutSessionRepository(db).list_by_user(
                user_id, limit or settings.recent_limit
            )
            routines = await RoutineRepository(db).get_many({s.routine_id for s in sessions})
            set_repo = WorkoutSetRepository(db)
            return [
                SessionDetail(
                    session=s,
                    routine=routines.get(s.routine_id),
                    set_count=await set_repo.count_by_session(s.id),
                )
                for s in sessions
            ]

    async def history(
        self,
        user_id: str | None,
        status: SessionStatus | None = None,
        limit: int | None = None,
    ) -> tuple[list[SessionDetail], bool]:
        """The caller's sessions with sets; returns (sessions, has_more).

        The status filter applies after the page is fetched, so a filtered
        page can be shorter than ``limit`` while ``has_more`` is still true.
        """
        user_id = require_user(user_id)
        limit = limit or settings.history_page_size
        async with connect(self.db_path) as db:
            sessions = await WorkoutSessionRepository(db).list_by_user(user_id, limit)
            has_more = len(sessions) == limit
            if status is not None:
                sessions = [s for s in sessions if s.status == SessionStatus(status)]

            routines = await RoutineRepository(db).get_many({s.routine_id for s in sessions})
            set_repo = WorkoutSetRepository(db)
            details = []
            for s in sessions:
                sets = await set_repo.list_by_session(s.id)
                details.append(
                    SessionDetail(
                        session=s,
                        routine=routines.get(s.routine_id),
                        sets=sets,
                        set_count=len(sets),
                    )
                )
        return details, has_more

    async def _with_routines(self, db, sessions: list[WorkoutSession]) -> list[SessionDetail]:
        routines = await RoutineRepository(db).get_many({s.routine_id for s in sessions})
        return [SessionDetail(session=s, routine=routines.get(s.routine_id)) for s in sessions]

    async def active_for_friends(self, viewer_id: str | None) -> list[SessionDetail]:
        """Active sessions of accepted friends shared with friends or the public."""
        if not viewer_id:
            return []
        async with connect(self.db_path) as db:
            friend_ids = await FriendRepository(db).list_friend_ids(viewer_id)
            sessions = await WorkoutSessionRepository(db).list_active_for_users(friend_ids)
            shared = [
                s for s in sessions
                if s.visibility in (Visibility.FRIENDS, Visibility.PUBLIC)
            ]
            return await self._with_routines(db, shared)

    async def active_public(self, viewer_id: str | None) -> list[SessionDetail]:
        """Every active public session."""
        if not viewer_id:
            return []
        async with connect(self.db_path) as db:
            sessions = await WorkoutSessionRepository(db).list_by_status_visibility(
                SessionStatus.ACTIVE, Visibility.PUBLIC
            )
            return await self._with_routines(db, sessions)

    async def spectatable(self, viewer_id: str | None) -> list[SessionDetail]:
        """Friends' friends-only sessions plus other people's public ones."""
        if not viewer_id:
            return []
        async with connect(self.db_path) as db:
            friend_ids = await FriendRepository(db).list_friend_ids(viewer_id)
            session_repo = WorkoutSessionRepository(db)
            friend_sessions = [
                s for s in await session_repo.list_active_for_users(friend_ids)
                if s.visibility == Visibility.FRIENDS
            ]
            public_sessions = await session_repo.list_by_status_visibility(
                SessionStatus.ACTIVE, Visibility.PUBLIC, exclude_user_id=viewer_id
            )
            return await self._with_routines(db, friend_sessions + public_sessions)
