"""Workout session model and its lifecycle rules."""

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from ..errors import InvalidState
from .routine import Visibility


class SessionStatus(str, Enum):
    """Workout session status."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.CANCELLED)


# status -> statuses reachable from it
TRANSITIONS: dict[SessionStatus, frozenset[SessionStatus]] = {
    SessionStatus.ACTIVE: frozenset(
        {SessionStatus.PAUSED, SessionStatus.COMPLETED, SessionStatus.CANCELLED}
    ),
    SessionStatus.PAUSED: frozenset(
        {SessionStatus.ACTIVE, SessionStatus.COMPLETED, SessionStatus.CANCELLED}
    ),
    SessionStatus.COMPLETED: frozenset(),
    SessionStatus.CANCELLED: frozenset(),
}

OPEN_STATUSES = (SessionStatus.ACTIVE, SessionStatus.PAUSED)


def compute_active_duration(
    started_at: datetime | None,
    total_paused_time: timedelta,
    paused_at: datetime | None,
    now: datetime,
) -> timedelta:
    """Time spent training: wall time minus every pause, never negative."""
    if started_at is None:
        return timedelta(0)

    duration = now - started_at - total_paused_time

    # If currently paused, subtract the open pause as well
    if paused_at is not None:
        duration -= now - paused_at

    return max(timedelta(0), duration)


@dataclass
class WorkoutSession:
    """One execution of a routine.

    Transition methods mutate the instance in place and raise
    ``InvalidState`` for moves the lifecycle does not allow. Terminal
    sessions (completed, cancelled) never change again.
    """

    user_id: str
    routine_id: int
    started_at: datetime
    last_heartbeat: datetime
    status: SessionStatus = SessionStatus.ACTIVE
    visibility: Visibility = Visibility.PRIVATE
    name: str | None = None
    notes: str | None = None
    ended_at: datetime | None = None
    paused_at: datetime | None = None
    total_paused_time: timedelta = timedelta(0)
    id: int | None = None

    @classmethod
    def begin(
        cls,
        user_id: str,
        routine_id: int,
        visibility: Visibility,
        now: datetime,
        name: str | None = None,
    ) -> "WorkoutSession":
        """Create a fresh active session."""
        return cls(
            user_id=user_id,
            routine_id=routine_id,
            visibility=visibility,
            name=name,
            started_at=now,
            last_heartbeat=now,
        )

    def can_transition(self, target: SessionStatus) -> bool:
        return target in TRANSITIONS[self.status]

    def _require(self, target: SessionStatus, message: str) -> None:
        if not self.can_transition(target):
            raise InvalidState(message)

    def pause(self, now: datetime) -> None:
        """Pause an active session."""
        if self.status != SessionStatus.ACTIVE:
            raise InvalidState("Workout is not active")
        self.status = SessionStatus.PAUSED
        self.paused_at = now
        self.last_heartbeat = now

    def resume(self, now: datetime) -> None:
        """Resume a paused session, banking the pause."""
        if self.status != SessionStatus.PAUSED:
            raise InvalidState("Workout is not paused")
        self._close_pause(now)
        self.status = SessionStatus.ACTIVE
        self.last_heartbeat = now

    def complete(self, now: datetime, notes: str | None = None) -> None:
        """Finish the session from active or paused."""
        self._require(SessionStatus.COMPLETED, f"Cannot complete a {self.status.value} workout")
        self._close_pause(now)
        self.status = SessionStatus.COMPLETED
        self.ended_at = now
        self.notes = notes
        self.last_heartbeat = now

    def cancel(self, now: datetime) -> None:
        """Abandon the session from active or paused."""
        self._require(SessionStatus.CANCELLED, f"Cannot cancel a {self.status.value} workout")
        self._close_pause(now)
        self.status = SessionStatus.CANCELLED
        self.ended_at = now
        self.last_heartbeat = now

    def heartbeat(self, now: datetime) -> None:
        """Signal liveness to spectators."""
        if self.status.is_terminal:
            raise InvalidState(f"Workout is {self.status.value}")
        self.last_heartbeat = now

    def _close_pause(self, now: datetime) -> None:
        if self.paused_at is not None:
            self.total_paused_time += now - self.paused_at
            self.paused_at = None

    def active_duration(self, now: datetime | None = None) -> timedelta:
        """Elapsed training time, frozen while paused and after the end."""
        if now is None:
            now = datetime.now()
        if self.ended_at is not None:
            now = min(now, self.ended_at)
        return compute_active_duration(
            self.started_at, self.total_paused_time, self.paused_at, now
        )

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_STATUSES

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "routine_id": self.routine_id,
            "status": self.status.value,
            "visibility": self.visibility.value,
            "name": self.name,
            "notes": self.notes,
            "started_at": self.started_at.isoformat(),
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "paused_at": self.paused_at.isoformat() if self.paused_at else None,
            "total_paused_time": self.total_paused_time.total_seconds(),
            "last_heartbeat": self.last_heartbeat.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict, id: int | None = None) -> "WorkoutSession":
        """Create from dictionary."""
        ended_at = None
        if data.get("ended_at"):
            ended_at = datetime.fromisoformat(data["ended_at"])

        paused_at = None
        if data.get("paused_at"):
            paused_at = datetime.fromisoformat(data["paused_at"])

        return cls(
            id=id if id is not None else data.get("id"),
            user_id=data["user_id"],
            routine_id=data["routine_id"],
            status=SessionStatus(data.get("status", "active")),
            visibility=Visibility(data.get("visibility", "private")),
            name=data.get("name"),
            notes=data.get("notes"),
            started_at=datetime.fromisoformat(data["started_at"]),
            ended_at=ended_at,
            paused_at=paused_at,
            total_paused_time=timedelta(seconds=data.get("total_paused_time", 0)),
            last_heartbeat=datetime.fromisoformat(data["last_heartbeat"]),
        )
