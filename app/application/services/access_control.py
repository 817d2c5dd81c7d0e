"""Role-based authorization: the single decision point for every gated operation."""

from typing import Iterable, Optional

from app.core.exceptions import AuthorizationError
from app.domain.models.user import Role, User

OWNER_ONLY = frozenset({Role.OWNER})
STAFF_OR_OWNER = frozenset({Role.STAFF, Role.OWNER})
TOURIST_OR_STAFF = frozenset({Role.TOURIST, Role.STAFF})


def is_allowed(role: Optional[Role], required: Optional[Iterable[Role]] = None) -> bool:
    """
    Decide whether ``role`` satisfies ``required``.

    Owner satisfies everything; any other role must be named explicitly.
    No requirement means any authenticated role passes; no role never passes.
    """
    if role is None:
        return False
    role = Role(role)
    if not required:
        return True
    if role is Role.OWNER:
        return True
    return role in {Role(r) for r in required}


def authorize(role: Optional[Role], required: Optional[Iterable[Role]] = None, message: str = "Access denied") -> None:
    """Raise AuthorizationError unless ``role`` satisfies ``required``."""
    if not is_allowed(role, required):
        raise AuthorizationError(message)


def load_actor(user_repo, actor_id: Optional[int]) -> User:
    """Fetch the acting user; the role always comes from the store, never the token."""
    actor = user_repo.get_by_id(actor_id) if actor_id is not None else None
    if actor is None:
        raise AuthorizationError("Access denied")
    return actor
