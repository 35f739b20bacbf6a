"""Shared plumbing for the core services."""

from datetime import datetime
from pathlib import Path
from typing import Callable

from ..db.engine import get_db_path
from ..errors import Unauthorized

Clock = Callable[[], datetime]


def require_user(user_id: str | None) -> str:
    """Return the caller's ID or fail when the request is anonymous."""
    if not user_id:
        raise Unauthorized()
    return user_id


class Service:
    """Base for services that read and write the durable store."""

    def __init__(self, db_path: Path | None = None, clock: Clock | None = None):
        self.db_path = db_path or get_db_path()
        self.clock = clock or datetime.now
