"""Friendship model (input to visibility checks)."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FriendStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    BLOCKED = "blocked"


@dataclass
class Friend:
    """A directed friend request; accepted rows count in both directions."""

    requester_id: str
    recipient_id: str
    status: FriendStatus = FriendStatus.PENDING
    created_at: datetime | None = None
    updated_at: datetime | None = None
    id: int | None = None

    def other(self, user_id: str) -> str:
        """The counterpart of ``user_id`` in this friendship."""
        return self.recipient_id if self.requester_id == user_id else self.requester_id
