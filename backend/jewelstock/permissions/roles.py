# Overview: Role enum and the default permission set each role starts with.

from enum import Enum

from .definitions import Permission


class Role(str, Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    SHOP_OWNER = "SHOP_OWNER"
    SHOP_MANAGER = "SHOP_MANAGER"


# SUPER_ADMIN manages Shop entities only and holds no shop-content permissions.
DEFAULT_ROLE_PERMISSIONS: dict[Role, frozenset[Permission]] = {
    Role.SUPER_ADMIN: frozenset(),
    Role.SHOP_OWNER: frozenset(Permission),
    Role.SHOP_MANAGER: frozenset({
        Permission.VIEW_INVENTORY,
        Permission.MANAGE_STOCK,  # can mark as sold
    }),
}


def default_permissions_for(role: Role | str) -> frozenset[Permission]:
    return DEFAULT_ROLE_PERMISSIONS[Role(role)]
