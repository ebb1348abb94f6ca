"""Role-based access control."""

from enum import Enum
from typing import Any, Callable

from fastapi import Depends

from marketplace.api.deps import get_current_user
from marketplace.core.exceptions import AuthorizationError
from marketplace.models.user import User


class UserRole(str, Enum):
    """User roles in the system."""

    TENANT = "tenant"
    OWNER = "owner"
    ADMIN = "admin"


# Roles a user may pick for themselves at registration
SELF_ASSIGNABLE_ROLES = {UserRole.TENANT, UserRole.OWNER}


def require_role(*allowed_roles: UserRole) -> Callable[..., Any]:
    """Dependency to require specific roles."""

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in {role.value for role in allowed_roles}:
            raise AuthorizationError(
                f"Role '{current_user.role}' is not authorized for this action"
            )
        return current_user

    return role_checker


# Convenience dependencies
require_admin = require_role(UserRole.ADMIN)
require_owner = require_role(UserRole.OWNER, UserRole.ADMIN)
