"""Who may look at a routine or a session."""

from typing import Protocol

from ..models.routine import Visibility


class FriendLookup(Protocol):
    async def are_friends(self, user_a: str, user_b: str) -> bool:
        ...


async def can_view(
    owner_id: str,
    visibility: Visibility,
    viewer_id: str | None,
    friends: FriendLookup,
) -> bool:
    """Decide whether ``viewer_id`` may see data owned by ``owner_id``.

    Rules, first match wins:

    1. The owner always sees their own data.
    2. Public data is visible to anyone, anonymous viewers included.
    3. Private data is hidden from everyone else.
    4. Friends-only data needs an accepted friendship in either direction.
    """
    if viewer_id is not None and viewer_id == owner_id:
        return True

    if visibility == Visibility.PUBLIC:
        return True

    if visibility == Visibility.PRIVATE:
        return False

    if visibility == Visibility.FRIENDS and viewer_id:
        return await friends.are_friends(viewer_id, owner_id)

    return False
