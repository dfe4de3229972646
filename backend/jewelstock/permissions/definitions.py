# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from enum import Enum

from .categories import PermissionCategory


class Permission(str, Enum):
    """Closed set of shop-level permission codes."""
    VIEW_INVENTORY = "VIEW_INVENTORY"
    ADD_PRODUCT = "ADD_PRODUCT"
    EDIT_PRODUCT = "EDIT_PRODUCT"
    DELETE_PRODUCT = "DELETE_PRODUCT"
    MANAGE_STOCK = "MANAGE_STOCK"
    VIEW_REPORTS = "VIEW_REPORTS"
    MANAGE_SETTINGS = "MANAGE_SETTINGS"
    CREATE_SHOP_MANAGER = "CREATE_SHOP_MANAGER"
    MANAGE_METAL_RATES = "MANAGE_METAL_RATES"
    UPDATE_METAL_RATES = "UPDATE_METAL_RATES"


# -- INVENTORY --

INVENTORY_PERMISSIONS = [
    (
        Permission.VIEW_INVENTORY,
        "View Inventory",
        "View products, stock levels and stock transactions",
        PermissionCategory.INVENTORY,
    ),
    (
        Permission.MANAGE_STOCK,
        "Manage Stock",
        "Record stock-in and stock-out transactions (including sales)",
        PermissionCategory.INVENTORY,
    ),
]


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        Permission.ADD_PRODUCT,
        "Add Product",
        "Create products (and categories typed during entry)",
        PermissionCategory.CATALOG,
    ),
    (
        Permission.EDIT_PRODUCT,
        "Edit Product",
        "Edit product details, pricing configuration and category",
        PermissionCategory.CATALOG,
    ),
    (
        Permission.DELETE_PRODUCT,
        "Delete Product",
        "Delete products together with their stock history",
        PermissionCategory.CATALOG,
    ),
]


# -- REPORTS --

REPORT_PERMISSIONS = [
    (
        Permission.VIEW_REPORTS,
        "View Reports",
        "Access dashboard, stock, sales and added-items reports",
        PermissionCategory.REPORTS,
    ),
]


# -- SETTINGS --

SETTINGS_PERMISSIONS = [
    (
        Permission.MANAGE_SETTINGS,
        "Manage Settings",
        "Edit shop settings and manage categories",
        PermissionCategory.SETTINGS,
    ),
]


# -- USERS --

USER_PERMISSIONS = [
    (
        Permission.CREATE_SHOP_MANAGER,
        "Create Shop Manager",
        "Create, edit and remove shop manager accounts",
        PermissionCategory.USERS,
    ),
]


# -- PRICING --

PRICING_PERMISSIONS = [
    (
        Permission.MANAGE_METAL_RATES,
        "Manage Metal Rates",
        "Full control over gold and silver per-gram rates",
        PermissionCategory.PRICING,
    ),
    (
        Permission.UPDATE_METAL_RATES,
        "Update Metal Rates",
        "Update today's gold and silver per-gram rates",
        PermissionCategory.PRICING,
    ),
]


PERMISSION_DEFINITIONS = (
    INVENTORY_PERMISSIONS
    + CATALOG_PERMISSIONS
    + REPORT_PERMISSIONS
    + SETTINGS_PERMISSIONS
    + USER_PERMISSIONS
    + PRICING_PERMISSIONS
)
