"""CLI commands for liftlog."""

from .init import init
from .prs import prs
from .routines import routines
from .serve import serve
from .session import session

__all__ = [
    "init",
    "prs",
    "routines",
    "serve",
    "session",
]
