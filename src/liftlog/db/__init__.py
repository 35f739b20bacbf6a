"""Database layer for liftlog."""

from .engine import connect, get_db_path, init_db, transaction
from .repositories import (
    FriendRepository,
    RoutineRepository,
    WorkoutSessionRepository,
    WorkoutSetRepository,
)

__all__ = [
    "connect",
    "FriendRepository",
    "get_db_path",
    "init_db",
    "RoutineRepository",
    "transaction",
    "WorkoutSessionRepository",
    "WorkoutSetRepository",
]
