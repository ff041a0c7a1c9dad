"""
RBAC (Role-Based Access Control) permission system
"""

from enum import Enum
from typing import Set
from fastapi import HTTPException, status


class Permission(str, Enum):
    """Permission definitions"""
    # Restaurant permissions
    RESTAURANT_EDIT = "restaurant:edit"
    STAFF_MANAGE = "staff:manage"

    # Menu permissions
    MENU_EDIT = "menu:edit"

    # Table permissions
    TABLES_EDIT = "tables:edit"

    # Order permissions
    ORDERS_VIEW = "orders:view"
    ORDERS_UPDATE = "orders:update"
    ORDERS_DELETE = "orders:delete"


# Role permission mapping
ROLE_PERMISSIONS = {
    "owner": {
        # Owners have all permissions
        Permission.RESTAURANT_EDIT,
        Permission.STAFF_MANAGE,
        Permission.MENU_EDIT,
        Permission.TABLES_EDIT,
        Permission.ORDERS_VIEW,
        Permission.ORDERS_UPDATE,
        Permission.ORDERS_DELETE,
    },
    "manager": {
        # Managers run the menu and the floor but not the account
        Permission.MENU_EDIT,
        Permission.TABLES_EDIT,
        Permission.ORDERS_VIEW,
        Permission.ORDERS_UPDATE,
        Permission.ORDERS_DELETE,
    },
    "staff": {
        # Staff work the order dashboard only
        Permission.ORDERS_VIEW,
        Permission.ORDERS_UPDATE,
    },
}


def get_permissions_for_role(role: str) -> Set[Permission]:
    """Get permissions for a given role"""
    return ROLE_PERMISSIONS.get((role or "").lower(), set())


def has_permission(required_permission: Permission, user_permissions: Set[Permission]) -> bool:
    """Check if user has required permission"""
    return required_permission in user_permissions


def ensure_permission(role: str, required_permission: Permission) -> None:
    """Raise 403 unless the role grants the permission"""
    if not has_permission(required_permission, get_permissions_for_role(role)):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Permission required: {required_permission.value}",
        )
