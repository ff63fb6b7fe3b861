"""Explicit caller identity passed into every engine operation."""

from dataclasses import dataclass

from app.core.exceptions import UnauthorizedError
from app.core.permissions import Permission, UserRole, has_permission


@dataclass(frozen=True)
class Actor:
    """Who is calling, and with which role."""

    user_id: str
    email: str | None = None
    role: UserRole = UserRole.TENANT

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def can(self, permission: Permission) -> bool:
        return has_permission(self.role, permission)

    def require(self, permission: Permission) -> None:
        """Raise UnauthorizedError unless the role grants ``permission``."""
        if not self.can(permission):
            raise UnauthorizedError(
                f"Role '{self.role.value}' is not allowed to {permission.value.replace('_', ' ')}"
            )
