"""Core services for liftlog."""

from .routines import RoutineService
from .sessions import SessionDetail, SessionService, StartedSession
from .set_ledger import SetLedger
from .visibility import can_view

__all__ = [
    "can_view",
    "RoutineService",
    "SessionDetail",
    "SessionService",
    "SetLedger",
    "StartedSession",
]
