# Overview: Permission system package.
# Re-exports all public APIs for imports from jewelstock.permissions.

from .categories import PermissionCategory
from .definitions import (
    Permission,
    PERMISSION_DEFINITIONS,
    INVENTORY_PERMISSIONS,
    CATALOG_PERMISSIONS,
    REPORT_PERMISSIONS,
    SETTINGS_PERMISSIONS,
    USER_PERMISSIONS,
    PRICING_PERMISSIONS,
)
from .roles import Role, DEFAULT_ROLE_PERMISSIONS, default_permissions_for
from .helpers import (
    get_all_permission_codes,
    validate_permission_code,
    parse_permission_codes,
)

__all__ = [
    "PermissionCategory",
    "Permission",
    "PERMISSION_DEFINITIONS",
    "INVENTORY_PERMISSIONS",
    "CATALOG_PERMISSIONS",
    "REPORT_PERMISSIONS",
    "SETTINGS_PERMISSIONS",
    "USER_PERMISSIONS",
    "PRICING_PERMISSIONS",
    "Role",
    "DEFAULT_ROLE_PERMISSIONS",
    "default_permissions_for",
    "get_all_permission_codes",
    "validate_permission_code",
    "parse_permission_codes",
]
