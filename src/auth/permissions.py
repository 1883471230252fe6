"""Role and ownership checks for Wave Rider.

Two roles exist:
- AUTHENTICATED: any signed-in user; may create posts and comment
- ADMIN: may additionally update or delete any post

Every mutating service method calls ``authorize`` before touching the store;
routes never check ownership themselves.
"""

from enum import Enum
from typing import Protocol

from src.core.errors import Forbidden


class UserRole(str, Enum):
    """User roles stored on the user document."""

    AUTHENTICATED = "authenticated"
    ADMIN = "admin"


class Action(str, Enum):
    """Mutations that require an ownership decision."""

    POST_UPDATE = "post:update"
    POST_DELETE = "post:delete"
    COMMENT_UPDATE = "comment:update"
    COMMENT_DELETE = "comment:delete"


# Actions an admin may perform on someone else's resource
ADMIN_OVERRIDABLE: frozenset[Action] = frozenset(
    {Action.POST_UPDATE, Action.POST_DELETE}
)


class Requester(Protocol):
    id: str
    role: str


def is_admin(role: UserRole | str) -> bool:
    """Check if role is ADMIN."""
    if isinstance(role, str):
        return role == UserRole.ADMIN.value
    return role == UserRole.ADMIN


def can(action: Action, requester: Requester, owner_id: str | None) -> bool:
    """Decide whether ``requester`` may perform ``action`` on a resource.

    Examples:
        >>> can(Action.POST_DELETE, admin, "someone-else")
        True
        >>> can(Action.COMMENT_DELETE, admin, "someone-else")
        False
    """
    if owner_id is not None and requester.id == owner_id:
        return True
    return action in ADMIN_OVERRIDABLE and is_admin(requester.role)


def authorize(action: Action, requester: Requester, owner_id: str | None) -> None:
    """Raise ``Forbidden`` unless ``requester`` may perform ``action``."""
    if not can(action, requester, owner_id):
        raise Forbidden(f"Not allowed to {action.value.replace(':', ' ')}")
