# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    INVENTORY = "INVENTORY"
    CATALOG = "CATALOG"
    REPORTS = "REPORTS"
    SETTINGS = "SETTINGS"
    USERS = "USERS"
    PRICING = "PRICING"
