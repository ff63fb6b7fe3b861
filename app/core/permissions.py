"""Role-based access control and permissions."""

from enum import Enum


class UserRole(str, Enum):
    """User roles in the system."""

    TENANT = "tenant"
    ADMIN = "admin"


class Permission(str, Enum):
    """System permissions."""

    # Tenant booking permissions
    CREATE_BOOKING = "create_booking"
    CANCEL_BOOKING = "cancel_booking"
    VIEW_BOOKING = "view_booking"
    PAY_BOOKING = "pay_booking"

    # Admin permissions
    REVIEW_BOOKING = "review_booking"  # approve / reject / reset
    VIEW_ALL_BOOKINGS = "view_all_bookings"
    DELETE_ANY_BOOKING = "delete_any_booking"


# Role to permissions mapping
ROLE_PERMISSIONS: dict[UserRole, set[Permission]] = {
    UserRole.TENANT: {
        Permission.CREATE_BOOKING,
        Permission.CANCEL_BOOKING,
        Permission.VIEW_BOOKING,
        Permission.PAY_BOOKING,
    },
    UserRole.ADMIN: {
        # Admins have all permissions
        perm for perm in Permission
    },
}


def has_permission(role: UserRole, permission: Permission) -> bool:
    """Check if a role has a specific permission."""
    return permission in ROLE_PERMISSIONS.get(role, set())


def parse_role(value: str | None) -> UserRole:
    """Map a token role claim onto a role; unknown claims are tenants."""
    try:
        return UserRole(value)
    except ValueError:
        return UserRole.TENANT
