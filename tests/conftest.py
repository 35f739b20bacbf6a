"""Pytest configuration and fixtures."""

import asyncio
import tempfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from liftlog.db import FriendRepository, init_db, transaction
from liftlog.models import Friend, RoutineExercise, Visibility
from liftlog.models.friend import FriendStatus
from liftlog.services import RoutineService, SessionService, SetLedger


class FakeClock:
    """Clock the tests move by hand."""

    def __init__(self, start: datetime = datetime(2024, 1, 15, 9, 0, 0)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def temp_db_path():
    """Create a temporary database path."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir) / "test.db"


@pytest.fixture
def db_path(temp_db_path):
    """A temporary database with the schema in place."""
    asyncio.run(init_db(temp_db_path))
    return temp_db_path


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session_service(db_path, clock):
    return SessionService(db_path, clock)


@pytest.fixture
def set_ledger(db_path, clock):
    return SetLedger(db_path, clock)


@pytest.fixture
def routine_service(db_path, clock):
    return RoutineService(db_path, clock)


@pytest.fixture
def make_routine(routine_service):
    """Factory creating a routine with the given exercise IDs."""

    async def _make(
        user_id: str = "alice",
        exercise_ids: tuple[str, ...] = ("squat", "bench"),
        visibility: Visibility = Visibility.PRIVATE,
        name: str = "Full Body",
    ):
        exercises = [
            RoutineExercise(exercise_id=exercise_id, order=i, target_sets=3, target_reps=5)
            for i, exercise_id in enumerate(exercise_ids)
        ]
        return await routine_service.create_routine(
            user_id, name, exercises, visibility=visibility
        )

    return _make


@pytest.fixture
def befriend(db_path):
    """Factory storing a friendship row between two users."""

    async def _befriend(
        requester_id: str, recipient_id: str, status: FriendStatus = FriendStatus.ACCEPTED
    ):
        async with transaction(db_path) as db:
            await FriendRepository(db).upsert(
                Friend(requester_id=requester_id, recipient_id=recipient_id, status=status)
            )

    return _befriend
