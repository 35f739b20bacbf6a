"""Client-side session cache and backends."""

from .backend import HttpBackend, LocalBackend, WorkoutBackend
from .mirror import LocalSet, SessionMirror
from .result import Result, WorkoutError
from .session_client import WorkoutSessionClient

__all__ = [
    "HttpBackend",
    "LocalBackend",
    "LocalSet",
    "Result",
    "SessionMirror",
    "WorkoutBackend",
    "WorkoutError",
    "WorkoutSessionClient",
]
