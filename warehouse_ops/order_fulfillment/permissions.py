"""
Authorization gate for supervisory warehouse operations.

Services receive an explicit ``Principal`` instead of reading the request,
so they can be exercised without the HTTP layer.
"""

from typing import NamedTuple, Optional

from users.models import UserRole

from .exceptions import ForbiddenException, UnauthenticatedException

SUPERVISOR_ROLES = (UserRole.ADMIN, UserRole.MANAGER)


class Principal(NamedTuple):
    """Authenticated actor of an operation."""

    user_id: int
    role: str
    name: str = ""

    @classmethod
    def from_user(cls, user) -> Optional["Principal"]:
        if user is None or not user.is_authenticated:
            return None
        return cls(user_id=user.pk, role=user.role, name=user.display_name)


def authorize_supervisor(principal: Optional[Principal], action: str = "perform this action") -> Principal:
    """
    Ensure the principal is an ADMIN or MANAGER.

    Raises:
        UnauthenticatedException: If there is no principal
        ForbiddenException: If the role is not a supervisory role
    """
    if principal is None:
        raise UnauthenticatedException()

    if principal.role not in SUPERVISOR_ROLES:
        raise ForbiddenException(
            f"Insufficient permissions. Only ADMIN and MANAGER roles can {action}.",
            role=principal.role,
        )
    return principal


def authorize_reassignment(principal: Optional[Principal]) -> Principal:
    return authorize_supervisor(principal, "reassign work")
