# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- STAFF --

STAFF_PERMISSIONS = [
    (
        "VIEW_STAFF",
        "View Staff",
        "View staff members in scope",
        PermissionCategory.STAFF,
    ),
    (
        "CREATE_STAFF",
        "Create Staff",
        "Add new staff members",
        PermissionCategory.STAFF,
    ),
    (
        "EDIT_STAFF",
        "Edit Staff",
        "Modify other staff members' details, role or branch",
        PermissionCategory.STAFF,
    ),
    (
        "DELETE_STAFF",
        "Delete Staff",
        "Deactivate staff members",
        PermissionCategory.STAFF,
    ),
    (
        "RESET_STAFF_PASSWORD",
        "Reset Staff Password",
        "Issue temporary passwords to other staff members",
        PermissionCategory.STAFF,
    ),
]


# -- BRANCHES --

BRANCH_PERMISSIONS = [
    (
        "VIEW_BRANCHES",
        "View Branches",
        "View every branch of the business",
        PermissionCategory.BRANCHES,
    ),
    (
        "MANAGE_BRANCHES",
        "Manage Branches",
        "Create, edit, deactivate and delete branch locations",
        PermissionCategory.BRANCHES,
    ),
    (
        "SWITCH_BRANCH",
        "Switch Branch",
        "Select which branch's data to view",
        PermissionCategory.BRANCHES,
    ),
]


# -- BUSINESS --

BUSINESS_PERMISSIONS = [
    (
        "VIEW_BUSINESS_DATA",
        "View Business Data",
        "Read business records within the actor's scope",
        PermissionCategory.BUSINESS,
    ),
    (
        "EDIT_BUSINESS",
        "Edit Business Settings",
        "Modify business configuration and repair ownership",
        PermissionCategory.BUSINESS,
    ),
]


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        "VIEW_INVENTORY",
        "View Inventory",
        "View inventory items and quantities",
        PermissionCategory.INVENTORY,
    ),
    (
        "EDIT_INVENTORY",
        "Edit Inventory",
        "Create inventory items and adjust stock",
        PermissionCategory.INVENTORY,
    ),
]


# -- SALES --

SALES_PERMISSIONS = [
    (
        "PROCESS_SALES",
        "Process Sales",
        "Complete sales transactions at the POS",
        PermissionCategory.SALES,
    ),
    (
        "VIEW_SALES",
        "View Sales",
        "View sales recorded by any staff member in scope",
        PermissionCategory.SALES,
    ),
]


# -- ATTENDANCE --

ATTENDANCE_PERMISSIONS = [
    (
        "RECORD_ATTENDANCE",
        "Record Attendance",
        "Clock in and out",
        PermissionCategory.ATTENDANCE,
    ),
    (
        "MANAGE_ATTENDANCE",
        "Manage Attendance",
        "View and correct attendance recorded for other staff in scope",
        PermissionCategory.ATTENDANCE,
    ),
]


# -- PURCHASING --

PURCHASING_PERMISSIONS = [
    (
        "VIEW_PURCHASE_ORDERS",
        "View Purchase Orders",
        "View supplier purchase orders",
        PermissionCategory.PURCHASING,
    ),
    (
        "MANAGE_PURCHASE_ORDERS",
        "Manage Purchase Orders",
        "Create and manage supplier purchase orders",
        PermissionCategory.PURCHASING,
    ),
]


# -- EXPENSES --

EXPENSE_PERMISSIONS = [
    (
        "VIEW_EXPENSES",
        "View Expenses",
        "View expense records",
        PermissionCategory.EXPENSES,
    ),
    (
        "CREATE_EXPENSES",
        "Create Expenses",
        "Record new expenses",
        PermissionCategory.EXPENSES,
    ),
]


PERMISSION_DEFINITIONS = (
    STAFF_PERMISSIONS
    + BRANCH_PERMISSIONS
    + BUSINESS_PERMISSIONS
    + INVENTORY_PERMISSIONS
    + SALES_PERMISSIONS
    + ATTENDANCE_PERMISSIONS
    + PURCHASING_PERMISSIONS
    + EXPENSE_PERMISSIONS
)
