# Overview: Role hierarchy and default permission sets per role.

from enum import Enum

from .definitions import PERMISSION_DEFINITIONS


class Role(str, Enum):
    """
    Actor roles, most senior first.

    Roles are a fixed system set rather than tenant-editable rows so that
    authorization never has to read a protected table to learn what a role
    may do.
    """
    OWNER = "owner"
    MANAGER = "manager"
    ACCOUNTANT = "accountant"
    CASHIER = "cashier"
    STAFF = "staff"

    @property
    def label(self) -> str:
        return "Business Owner" if self is Role.OWNER else self.value.title()


# Roles a Manager may create, edit and reset.
STAFF_LEVEL_ROLES = frozenset({Role.CASHIER, Role.STAFF})

# Roles that read business data across every branch of their tenant.
BRANCH_UNSCOPED_READERS = frozenset({Role.OWNER, Role.ACCOUNTANT})


_ALL = frozenset(perm[0] for perm in PERMISSION_DEFINITIONS)

DEFAULT_ROLE_PERMISSIONS = {
    Role.OWNER: _ALL,
    Role.MANAGER: frozenset({
        "VIEW_STAFF", "CREATE_STAFF", "EDIT_STAFF", "RESET_STAFF_PASSWORD",
        "VIEW_BUSINESS_DATA",
        "VIEW_INVENTORY", "EDIT_INVENTORY",
        "PROCESS_SALES", "VIEW_SALES",
        "RECORD_ATTENDANCE", "MANAGE_ATTENDANCE",
        "VIEW_PURCHASE_ORDERS", "MANAGE_PURCHASE_ORDERS",
        "VIEW_EXPENSES", "CREATE_EXPENSES",
    }),
    Role.ACCOUNTANT: frozenset({
        "VIEW_BRANCHES",
        "VIEW_BUSINESS_DATA",
        "VIEW_INVENTORY",
        "VIEW_SALES",
        "RECORD_ATTENDANCE", "MANAGE_ATTENDANCE",
        "VIEW_PURCHASE_ORDERS",
        "VIEW_EXPENSES", "CREATE_EXPENSES",
    }),
    Role.CASHIER: frozenset({
        "VIEW_BUSINESS_DATA",
        "VIEW_INVENTORY",
        "PROCESS_SALES",
        "RECORD_ATTENDANCE",
    }),
    Role.STAFF: frozenset({
        "VIEW_BUSINESS_DATA",
        "VIEW_INVENTORY",
        "PROCESS_SALES",
        "RECORD_ATTENDANCE",
    }),
}
