"""
Security guards for role-based and ownership-based access control.

Provides dependencies for protecting endpoints.
"""

from typing import List, Optional
from fastapi import Depends, HTTPException, status
from backend.app.models.enums import UserRole, ADMIN_ROLES, SHELTER_ROLES
from backend.app.core.dependencies import get_current_user
from backend.app.core.exceptions import InsufficientPermissionsError


def require_role(allowed_roles: List[UserRole]):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/admin/pricing-rules")
        async def create_rule(current_user: dict = Depends(require_role(ADMIN_ROLES))):
            ...

    Raises:
        HTTPException 403 if user role is not in allowed_roles
    """
    async def role_checker(current_user: dict = Depends(get_current_user)) -> dict:
        user_role_str = current_user.get("role")

        if not user_role_str:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Role information missing from token"
            )

        try:
            user_role = UserRole(user_role_str)
        except ValueError:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Invalid role in token"
            )

        if user_role not in allowed_roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {', '.join([r.value for r in allowed_roles])}"
            )

        return current_user

    return role_checker


def is_admin(current_user: dict) -> bool:
    return current_user.get("role") in [r.value for r in ADMIN_ROLES]


class TransportAccessGuard:
    """
    Ownership guard for transport-scoped resources.

    Admins see every transport, drivers only the transports assigned to
    them, shelter staff only their shelter's transports.
    """

    def can_access(
        self,
        current_user: dict,
        shelter_id: int,
        driver_user_id: Optional[int],
    ) -> bool:
        role = current_user.get("role")

        if is_admin(current_user):
            return True

        if role == UserRole.DRIVER.value:
            return driver_user_id is not None and driver_user_id == current_user.get("user_id")

        if role in [r.value for r in SHELTER_ROLES]:
            return current_user.get("shelter_id") == shelter_id

        return False

    def enforce(
        self,
        current_user: dict,
        shelter_id: int,
        driver_user_id: Optional[int],
        resource_name: str = "transport"
    ):
        """Raise InsufficientPermissionsError if the user may not see the resource."""
        if not self.can_access(current_user, shelter_id, driver_user_id):
            raise InsufficientPermissionsError(
                f"You do not have permission to access this {resource_name}",
                details={"resource": resource_name, "role": current_user.get("role")},
            )
