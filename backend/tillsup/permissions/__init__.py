# Overview: Permission system package.
# Catalog, role matrix and lookups are importable from here.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    STAFF_PERMISSIONS,
    BRANCH_PERMISSIONS,
    BUSINESS_PERMISSIONS,
    INVENTORY_PERMISSIONS,
    SALES_PERMISSIONS,
    ATTENDANCE_PERMISSIONS,
    PURCHASING_PERMISSIONS,
    EXPENSE_PERMISSIONS,
)
from .roles import Role, DEFAULT_ROLE_PERMISSIONS, STAFF_LEVEL_ROLES, BRANCH_UNSCOPED_READERS
from .helpers import (
    is_known_permission,
    describe_permission,
    permission_catalog,
    get_role_permissions,
    role_has_permission,
    roles_with_permission,
)

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "STAFF_PERMISSIONS",
    "BRANCH_PERMISSIONS",
    "BUSINESS_PERMISSIONS",
    "INVENTORY_PERMISSIONS",
    "SALES_PERMISSIONS",
    "ATTENDANCE_PERMISSIONS",
    "PURCHASING_PERMISSIONS",
    "EXPENSE_PERMISSIONS",
    "Role",
    "DEFAULT_ROLE_PERMISSIONS",
    "STAFF_LEVEL_ROLES",
    "BRANCH_UNSCOPED_READERS",
    "is_known_permission",
    "describe_permission",
    "permission_catalog",
    "get_role_permissions",
    "role_has_permission",
    "roles_with_permission",
]
