"""Database engine setup and initialization."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

import aiosqlite

from ..config import settings
from ..errors import MutationFailed

logger = logging.getLogger(__name__)


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    if data_dir is None:
        data_dir = settings.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / settings.db_filename


@asynccontextmanager
async def connect(db_path: Path) -> AsyncIterator[aiosqlite.Connection]:
    """Open a read connection; it only ever sees committed state.

    Store errors, including a lock held past the busy timeout, are
    re-raised as ``MutationFailed``.
    """
    try:
        async with aiosqlite.connect(db_path, timeout=settings.db_busy_timeout) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys = ON")
            yield db
    except aiosqlite.Error as e:
        logger.warning("Read failed: %s", e)
        raise MutationFailed(str(e)) from e


@asynccontextmanager
async def transaction(db_path: Path) -> AsyncIterator[aiosqlite.Connection]:
    """Run a block inside one serializable write transaction.

    ``BEGIN IMMEDIATE`` takes SQLite's write lock up front, so reads made
    inside the block cannot be invalidated by another writer before the
    block commits. Any exception rolls everything back. Store errors,
    including failing to get the lock within the busy timeout, are
    re-raised as ``MutationFailed``.
    """
    try:
        async with aiosqlite.connect(
            db_path, isolation_level=None, timeout=settings.db_busy_timeout
        ) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys = ON")
            await db.execute("BEGIN IMMEDIATE")
            try:
                yield db
            except BaseException:
                await db.execute("ROLLBACK")
                raise
            await db.execute("COMMIT")
    except aiosqlite.Error as e:
        logger.warning("Transaction rolled back: %s", e)
        raise MutationFailed(str(e)) from e


async def _run_migrations(db: aiosqlite.Connection) -> None:
    """Run database migrations for schema updates."""
    # Sessions created before the set number high-water mark existed
    cursor = await db.execute("PRAGMA table_info(workout_sessions)")
    columns = await cursor.fetchall()
    session_columns = {col[1] for col in columns}

    if "last_set_number" not in session_columns:
        await db.execute(
            "ALTER TABLE workout_sessions ADD COLUMN last_set_number INTEGER NOT NULL DEFAULT 0"
        )
        await db.execute("""
            UPDATE workout_sessions SET last_set_number = (
                SELECT COALESCE(MAX(set_number), 0) FROM workout_sets
                WHERE workout_sets.session_id = workout_sessions.id
            )
        """)

    await db.commit()


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        # Routines - templates for workouts
        await db.execute("""
            CREATE TABLE IF NOT EXISTS routines (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                name TEXT NOT NULL,
                description TEXT,
                exercises TEXT NOT NULL DEFAULT '[]',
                visibility TEXT NOT NULL DEFAULT 'private',
                times_performed INTEGER NOT NULL DEFAULT 0,
                last_performed_at TIMESTAMP,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """)

        # Workout sessions - one execution of a routine
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                routine_id INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'active',
                visibility TEXT NOT NULL DEFAULT 'private',
                name TEXT,
                notes TEXT,
                started_at TIMESTAMP NOT NULL,
                ended_at TIMESTAMP,
                paused_at TIMESTAMP,
                total_paused_time REAL NOT NULL DEFAULT 0,
                last_set_number INTEGER NOT NULL DEFAULT 0,
                last_heartbeat TIMESTAMP NOT NULL,
                FOREIGN KEY (routine_id) REFERENCES routines(id) ON DELETE CASCADE
            )
        """)

        # Individual sets - one row per logged set
        await db.execute("""
            CREATE TABLE IF NOT EXISTS workout_sets (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                user_id TEXT NOT NULL,
                routine_id INTEGER NOT NULL,
                session_id INTEGER NOT NULL,
                exercise_id TEXT NOT NULL,
                set_number INTEGER NOT NULL,
                exercise_set_number INTEGER NOT NULL,
                reps INTEGER NOT NULL,
                weight REAL NOT NULL,
                weight_unit TEXT NOT NULL,
                side TEXT,
                label TEXT,
                note TEXT,
                rpe REAL,
                completed_at TIMESTAMP NOT NULL,
                created_at TIMESTAMP NOT NULL,
                FOREIGN KEY (session_id) REFERENCES workout_sessions(id) ON DELETE CASCADE,
                UNIQUE (session_id, set_number)
            )
        """)

        # Friend relationships
        await db.execute("""
            CREATE TABLE IF NOT EXISTS friends (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                requester_id TEXT NOT NULL,
                recipient_id TEXT NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL,
                UNIQUE (requester_id, recipient_id)
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_routines_user
            ON routines(user_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_user_status
            ON workout_sessions(user_id, status)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_routine
            ON workout_sessions(routine_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_status_visibility
            ON workout_sessions(status, visibility)
        """)
        # At most one open session per user
        await db.execute("""
            CREATE UNIQUE INDEX IF NOT EXISTS idx_sessions_one_open
            ON workout_sessions(user_id) WHERE status IN ('active', 'paused')
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sets_session_exercise
            ON workout_sets(session_id, exercise_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sets_routine_exercise
            ON workout_sets(routine_id, exercise_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sets_user_exercise
            ON workout_sets(user_id, exercise_id)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_friends_requester_status
            ON friends(requester_id, status)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_friends_recipient_status
            ON friends(recipient_id, status)
        """)

        await db.commit()

        await _run_migrations(db)
