"""
Security guards for role-based and ownership-based access control.

Role checks are FastAPI dependencies; ownership checks are plain helpers
called by the domain services once the owning record has been loaded.
"""

from typing import List, Optional
from fastapi import Depends
from backend.app.core.exceptions import AuthenticationError, InsufficientPermissionsError
from backend.app.models.enums import UserRole
from backend.app.core.dependencies import get_current_user


# Roles allowed to act on behalf of a Load's owning shipper
SHIPPER_ROLES = (UserRole.SHIPPER, UserRole.SUPER_ADMIN)


def actor_role(current_user: Optional[dict]) -> Optional[UserRole]:
    """Return the actor's role as an enum, or None if missing/unknown."""
    if not current_user:
        return None
    try:
        return UserRole(current_user.get("role"))
    except ValueError:
        return None


def is_super_admin(current_user: Optional[dict]) -> bool:
    return actor_role(current_user) == UserRole.SUPER_ADMIN


def require_actor(current_user: Optional[dict]) -> dict:
    """Fail with Unauthorized when no actor identity is present."""
    if not current_user or not current_user.get("user_id"):
        raise AuthenticationError("Not authenticated")
    return current_user


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/trips/{trip_id}/epod")
        async def capture_epod(current_user: dict = Depends(require_role([UserRole.DRIVER]))):
            ...

    Raises:
        InsufficientPermissionsError: if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role = actor_role(current_user)

        if user_role is None:
            raise InsufficientPermissionsError("Role information missing from token")

        if user_role not in allowed_roles:
            raise InsufficientPermissionsError(
                f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


def verify_ownership(resource_owner_id: int, current_user: dict) -> bool:
    """
    Verify that the current user owns the resource.

    Super admins always pass; everyone else must be the owner.
    """
    if is_super_admin(current_user):
        return True
    return current_user.get("user_id") == resource_owner_id


class OwnershipGuard:
    """
    Class-based ownership guard.

    Usage:
        ownership_guard.enforce(load.shipper_user_id, current_user, "load")
    """

    def enforce(
        self,
        resource_owner_id: int,
        current_user: dict,
        resource_name: str = "resource"
    ):
        if not verify_ownership(resource_owner_id, current_user):
            raise InsufficientPermissionsError(
                f"Access denied. You do not have permission to access this {resource_name}."
            )

    def enforce_any(
        self,
        owner_ids: List[Optional[int]],
        current_user: dict,
        resource_name: str = "resource"
    ):
        """Pass when the actor owns the resource through any of the given ids."""
        if is_super_admin(current_user):
            return
        if current_user.get("user_id") not in [owner_id for owner_id in owner_ids if owner_id]:
            raise InsufficientPermissionsError(
                f"Access denied. You do not have permission to access this {resource_name}."
            )


ownership_guard = OwnershipGuard()
