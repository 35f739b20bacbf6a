"""Data models for liftlog."""

from .friend import Friend, FriendStatus
from .routine import Routine, RoutineExercise, Visibility
from .session import SessionStatus, WorkoutSession, compute_active_duration
from .workout_set import SetLabel, Side, WeightUnit, WorkoutSet

__all__ = [
    "compute_active_duration",
    "Friend",
    "FriendStatus",
    "Routine",
    "RoutineExercise",
    "SessionStatus",
    "SetLabel",
    "Side",
    "Visibility",
    "WeightUnit",
    "WorkoutSession",
    "WorkoutSet",
]
