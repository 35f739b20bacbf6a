"""Data access layer for liftlog.

Repositories are bound to an open connection so that a service can run
several of them inside one transaction (see ``engine.transaction``).
"""

import json
from datetime import datetime

import aiosqlite

from ..models.friend import Friend, FriendStatus
from ..models.routine import Routine, Visibility
from ..models.session import SessionStatus, WorkoutSession
from ..models.workout_set import WorkoutSet


class RoutineRepository:
    """Repository for routines."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def create(self, routine: Routine) -> int:
        """Create a new routine."""
        data = routine.to_dict()
        cursor = await self.db.execute(
            """
            INSERT INTO routines
            (user_id, name, description, exercises, visibility, times_performed,
             last_performed_at, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data["user_id"],
                data["name"],
                data["description"],
                json.dumps(data["exercises"]),
                data["visibility"],
                data["times_performed"],
                data["last_performed_at"],
                data["created_at"],
                data["updated_at"],
            ),
        )
        return cursor.lastrowid

    async def get(self, routine_id: int) -> Routine | None:
        """Get a routine by ID."""
        cursor = await self.db.execute(
            "SELECT * FROM routines WHERE id = ?", (routine_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_routine(row)

    async def get_many(self, routine_ids: set[int]) -> dict[int, Routine]:
        """Get several routines keyed by ID."""
        if not routine_ids:
            return {}
        placeholders = ", ".join("?" for _ in routine_ids)
        cursor = await self.db.execute(
            f"SELECT * FROM routines WHERE id IN ({placeholders})",
            tuple(routine_ids),
        )
        rows = await cursor.fetchall()
        return {row["id"]: self._row_to_routine(row) for row in rows}

    async def list_by_user(self, user_id: str) -> list[Routine]:
        """List a user's routines, newest first."""
        cursor = await self.db.execute(
            "SELECT * FROM routines WHERE user_id = ? ORDER BY created_at DESC, id DESC",
            (user_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_routine(row) for row in rows]

    async def update(self, routine: Routine) -> None:
        """Update an existing routine's editable fields."""
        if routine.id is None:
            raise ValueError("Routine must have an ID to update")

        data = routine.to_dict()
        await self.db.execute(
            """
            UPDATE routines SET
                name = ?, description = ?, exercises = ?, visibility = ?, updated_at = ?
            WHERE id = ?
            """,
            (
                data["name"],
                data["description"],
                json.dumps(data["exercises"]),
                data["visibility"],
                data["updated_at"],
                routine.id,
            ),
        )

    async def record_performed(self, routine_id: int, performed_at: datetime) -> None:
        """Bump the completion counter of a routine."""
        await self.db.execute(
            """
            UPDATE routines SET
                times_performed = times_performed + 1,
                last_performed_at = ?,
                updated_at = ?
            WHERE id = ?
            """,
            (performed_at.isoformat(), performed_at.isoformat(), routine_id),
        )

    async def delete(self, routine_id: int) -> None:
        """Delete a routine (its sessions and sets cascade)."""
        await self.db.execute("DELETE FROM routines WHERE id = ?", (routine_id,))

    def _row_to_routine(self, row: aiosqlite.Row) -> Routine:
        """Convert a database row to a Routine."""
        data = {
            "user_id": row["user_id"],
            "name": row["name"],
            "description": row["description"],
            "exercises": json.loads(row["exercises"]),
            "visibility": row["visibility"],
            "times_performed": row["times_performed"],
            "last_performed_at": row["last_performed_at"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }
        return Routine.from_dict(data, id=row["id"])


class WorkoutSessionRepository:
    """Repository for workout sessions."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def create(self, session: WorkoutSession) -> int:
        """Create a new session."""
        data = session.to_dict()
        cursor = await self.db.execute(
            """
            INSERT INTO workout_sessions
            (user_id, routine_id, status, visibility, name, notes, started_at,
             ended_at, paused_at, total_paused_time, last_heartbeat)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data["user_id"],
                data["routine_id"],
                data["status"],
                data["visibility"],
                data["name"],
                data["notes"],
                data["started_at"],
                data["ended_at"],
                data["paused_at"],
                data["total_paused_time"],
                data["last_heartbeat"],
            ),
        )
        return cursor.lastrowid

    async def get(self, session_id: int) -> WorkoutSession | None:
        """Get a session by ID."""
        cursor = await self.db.execute(
            "SELECT * FROM workout_sessions WHERE id = ?", (session_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    async def get_by_user_status(
        self, user_id: str, status: SessionStatus
    ) -> WorkoutSession | None:
        """Get the most recent session of a user in a given status."""
        cursor = await self.db.execute(
            """
            SELECT * FROM workout_sessions
            WHERE user_id = ? AND status = ?
            ORDER BY started_at DESC, id DESC
            LIMIT 1
            """,
            (user_id, status.value),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    async def get_open(self, user_id: str) -> WorkoutSession | None:
        """Get the user's active session, falling back to a paused one."""
        active = await self.get_by_user_status(user_id, SessionStatus.ACTIVE)
        if active is not None:
            return active
        return await self.get_by_user_status(user_id, SessionStatus.PAUSED)

    async def update(self, session: WorkoutSession) -> None:
        """Write back every mutable field of a session."""
        if session.id is None:
            raise ValueError("Session must have an ID to update")

        data = session.to_dict()
        await self.db.execute(
            """
            UPDATE workout_sessions SET
                status = ?, visibility = ?, name = ?, notes = ?, ended_at = ?,
                paused_at = ?, total_paused_time = ?, last_heartbeat = ?
            WHERE id = ?
            """,
            (
                data["status"],
                data["visibility"],
                data["name"],
                data["notes"],
                data["ended_at"],
                data["paused_at"],
                data["total_paused_time"],
                data["last_heartbeat"],
                session.id,
            ),
        )

    async def touch(self, session_id: int, now: datetime) -> None:
        """Refresh the heartbeat only."""
        await self.db.execute(
            "UPDATE workout_sessions SET last_heartbeat = ? WHERE id = ?",
            (now.isoformat(), session_id),
        )

    async def claim_set_number(self, session_id: int) -> int:
        """Bump and return the session's set number high-water mark.

        The mark only grows, so a number freed by a deletion is never
        handed out again.
        """
        await self.db.execute(
            "UPDATE workout_sessions SET last_set_number = last_set_number + 1 WHERE id = ?",
            (session_id,),
        )
        cursor = await self.db.execute(
            "SELECT last_set_number FROM workout_sessions WHERE id = ?", (session_id,)
        )
        row = await cursor.fetchone()
        return row["last_set_number"]

    async def list_by_user(self, user_id: str, limit: int) -> list[WorkoutSession]:
        """List a user's sessions, newest first."""
        cursor = await self.db.execute(
            """
            SELECT * FROM workout_sessions
            WHERE user_id = ?
            ORDER BY started_at DESC, id DESC
            LIMIT ?
            """,
            (user_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def list_active_for_users(self, user_ids: set[str]) -> list[WorkoutSession]:
        """List active sessions belonging to any of the given users."""
        if not user_ids:
            return []
        placeholders = ", ".join("?" for _ in user_ids)
        cursor = await self.db.execute(
            f"""
            SELECT * FROM workout_sessions
            WHERE status = ? AND user_id IN ({placeholders})
            ORDER BY started_at DESC, id DESC
            """,
            (SessionStatus.ACTIVE.value, *user_ids),
        )
        rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def list_by_status_visibility(
        self,
        status: SessionStatus,
        visibility: Visibility,
        exclude_user_id: str | None = None,
    ) -> list[WorkoutSession]:
        """List sessions in a status with a given visibility, newest first."""
        cursor = await self.db.execute(
            """
            SELECT * FROM workout_sessions
            WHERE status = ? AND visibility = ? AND user_id != ?
            ORDER BY started_at DESC, id DESC
            """,
            (status.value, visibility.value, exclude_user_id or ""),
        )
        rows = await cursor.fetchall()
        return [self._row_to_session(row) for row in rows]

    async def get_many(self, session_ids: set[int]) -> dict[int, WorkoutSession]:
        """Get several sessions keyed by ID."""
        if not session_ids:
            return {}
        placeholders = ", ".join("?" for _ in session_ids)
        cursor = await self.db.execute(
            f"SELECT * FROM workout_sessions WHERE id IN ({placeholders})",
            tuple(session_ids),
        )
        rows = await cursor.fetchall()
        return {row["id"]: self._row_to_session(row) for row in rows}

    def _row_to_session(self, row: aiosqlite.Row) -> WorkoutSession:
        """Convert a database row to a WorkoutSession."""
        return WorkoutSession.from_dict(dict(row), id=row["id"])


class WorkoutSetRepository:
    """Repository for logged sets."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def create(self, workout_set: WorkoutSet) -> int:
        """Insert a new set."""
        data = workout_set.to_dict()
        cursor = await self.db.execute(
            """
            INSERT INTO workout_sets
            (user_id, routine_id, session_id, exercise_id, set_number,
             exercise_set_number, reps, weight, weight_unit, side, label, note,
             rpe, completed_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                data["user_id"],
                data["routine_id"],
                data["session_id"],
                data["exercise_id"],
                data["set_number"],
                data["exercise_set_number"],
                data["reps"],
                data["weight"],
                data["weight_unit"],
                data["side"],
                data["label"],
                data["note"],
                data["rpe"],
                data["completed_at"],
                data["created_at"],
            ),
        )
        return cursor.lastrowid

    async def get(self, set_id: int) -> WorkoutSet | None:
        """Get a set by ID."""
        cursor = await self.db.execute(
            "SELECT * FROM workout_sets WHERE id = ?", (set_id,)
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_set(row)

    async def next_exercise_set_number(self, session_id: int, exercise_id: str) -> int:
        """Position of a new set within its exercise in the session."""
        cursor = await self.db.execute(
            """
            SELECT COUNT(*) AS exercise_count
            FROM workout_sets
            WHERE session_id = ? AND exercise_id = ?
            """,
            (session_id, exercise_id),
        )
        row = await cursor.fetchone()
        return row["exercise_count"] + 1

    async def list_by_session(self, session_id: int) -> list[WorkoutSet]:
        """List sets of a session in logging order."""
        cursor = await self.db.execute(
            "SELECT * FROM workout_sets WHERE session_id = ? ORDER BY set_number",
            (session_id,),
        )
        rows = await cursor.fetchall()
        return [self._row_to_set(row) for row in rows]

    async def list_by_session_exercise(
        self, session_id: int, exercise_id: str
    ) -> list[WorkoutSet]:
        """List sets of one exercise within a session."""
        cursor = await self.db.execute(
            """
            SELECT * FROM workout_sets
            WHERE session_id = ? AND exercise_id = ?
            ORDER BY exercise_set_number, set_number
            """,
            (session_id, exercise_id),
        )
        rows = await cursor.fetchall()
        return [self._row_to_set(row) for row in rows]

    async def count_by_session(self, session_id: int) -> int:
        """Count sets in a session."""
        cursor = await self.db.execute(
            "SELECT COUNT(*) FROM workout_sets WHERE session_id = ?", (session_id,)
        )
        row = await cursor.fetchone()
        return row[0]

    async def list_recent_for_routine_exercise(
        self, routine_id: int, exercise_id: str, limit: int
    ) -> list[WorkoutSet]:
        """Most recent sets for a routine/exercise pair, newest first."""
        cursor = await self.db.execute(
            """
            SELECT * FROM workout_sets
            WHERE routine_id = ? AND exercise_id = ?
            ORDER BY completed_at DESC, id DESC
            LIMIT ?
            """,
            (routine_id, exercise_id, limit),
        )
        rows = await cursor.fetchall()
        return [self._row_to_set(row) for row in rows]

    async def list_by_user_exercise(self, user_id: str, exercise_id: str) -> list[WorkoutSet]:
        """Every set a user ever logged for an exercise, oldest first."""
        cursor = await self.db.execute(
            """
            SELECT * FROM workout_sets
            WHERE user_id = ? AND exercise_id = ?
            ORDER BY completed_at, id
            """,
            (user_id, exercise_id),
        )
        rows = await cursor.fetchall()
        return [self._row_to_set(row) for row in rows]

    async def update_fields(self, set_id: int, fields: dict) -> None:
        """Patch content fields of a set."""
        if not fields:
            return
        assignments = ", ".join(f"{name} = ?" for name in fields)
        values = [v.value if hasattr(v, "value") else v for v in fields.values()]
        await self.db.execute(
            f"UPDATE workout_sets SET {assignments} WHERE id = ?",
            (*values, set_id),
        )

    async def delete(self, set_id: int) -> None:
        """Delete a set."""
        await self.db.execute("DELETE FROM workout_sets WHERE id = ?", (set_id,))

    async def delete_by_session(self, session_id: int) -> int:
        """Delete every set of a session."""
        cursor = await self.db.execute(
            "DELETE FROM workout_sets WHERE session_id = ?", (session_id,)
        )
        return cursor.rowcount

    async def resequence_exercise(self, session_id: int, exercise_id: str) -> None:
        """Renumber an exercise's sets in a session to 1..k, keeping their order."""
        remaining = await self.list_by_session_exercise(session_id, exercise_id)
        for number, workout_set in enumerate(remaining, start=1):
            if workout_set.exercise_set_number != number:
                await self.db.execute(
                    "UPDATE workout_sets SET exercise_set_number = ? WHERE id = ?",
                    (number, workout_set.id),
                )

    def _row_to_set(self, row: aiosqlite.Row) -> WorkoutSet:
        """Convert a database row to a WorkoutSet."""
        return WorkoutSet.from_dict(dict(row), id=row["id"])


class FriendRepository:
    """Repository for friend relationships."""

    def __init__(self, db: aiosqlite.Connection):
        self.db = db

    async def upsert(self, friend: Friend, now: datetime | None = None) -> int:
        """Create or update the row for a requester/recipient pair."""
        now = now or datetime.now()
        existing = await self.get_between(friend.requester_id, friend.recipient_id)
        if existing:
            await self.db.execute(
                "UPDATE friends SET status = ?, updated_at = ? WHERE id = ?",
                (friend.status.value, now.isoformat(), existing.id),
            )
            return existing.id

        cursor = await self.db.execute(
            """
            INSERT INTO friends (requester_id, recipient_id, status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?)
            """,
            (
                friend.requester_id,
                friend.recipient_id,
                friend.status.value,
                now.isoformat(),
                now.isoformat(),
            ),
        )
        return cursor.lastrowid

    async def get_between(self, requester_id: str, recipient_id: str) -> Friend | None:
        """Get the directed row from requester to recipient."""
        cursor = await self.db.execute(
            "SELECT * FROM friends WHERE requester_id = ? AND recipient_id = ?",
            (requester_id, recipient_id),
        )
        row = await cursor.fetchone()
        if row is None:
            return None
        return self._row_to_friend(row)

    async def are_friends(self, user_a: str, user_b: str) -> bool:
        """True if an accepted friendship exists in either direction."""
        cursor = await self.db.execute(
            """
            SELECT 1 FROM friends
            WHERE status = ?
              AND ((requester_id = ? AND recipient_id = ?)
                   OR (requester_id = ? AND recipient_id = ?))
            LIMIT 1
            """,
            (FriendStatus.ACCEPTED.value, user_a, user_b, user_b, user_a),
        )
        return await cursor.fetchone() is not None

    async def list_friend_ids(self, user_id: str) -> set[str]:
        """IDs of every accepted friend of a user."""
        cursor = await self.db.execute(
            """
            SELECT * FROM friends
            WHERE status = ? AND (requester_id = ? OR recipient_id = ?)
            """,
            (FriendStatus.ACCEPTED.value, user_id, user_id),
        )
        rows = await cursor.fetchall()
        return {self._row_to_friend(row).other(user_id) for row in rows}

    def _row_to_friend(self, row: aiosqlite.Row) -> Friend:
        """Convert a database row to a Friend."""
        return Friend(
            id=row["id"],
            requester_id=row["requester_id"],
            recipient_id=row["recipient_id"],
            status=FriendStatus(row["status"]),
            created_at=datetime.fromisoformat(row["created_at"]),
            updated_at=datetime.fromisoformat(row["updated_at"]),
        )
