# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for grouping and UI display."""
    STAFF = "STAFF"
    BRANCHES = "BRANCHES"
    BUSINESS = "BUSINESS"
    INVENTORY = "INVENTORY"
    SALES = "SALES"
    ATTENDANCE = "ATTENDANCE"
    PURCHASING = "PURCHASING"
    EXPENSES = "EXPENSES"
