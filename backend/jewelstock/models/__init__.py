from .tenancy import Shop, ShopSettings
from .auth import User, UserPermissionOverride, SessionToken
from .security import SecurityEvent
from .catalog import Category, SubCategory, normalize_name_key
from .inventory import Product, StockTransaction
from .rates import MetalRate
from .audit import AuditEvent
from .enums import (
    MetalType,
    ItemType,
    MakingChargeType,
    ProductStatus,
    TransactionType,
    StockReason,
)

__all__ = [
    'Shop', 'ShopSettings',
    'User', 'UserPermissionOverride', 'SessionToken',
    'SecurityEvent',
    'Category', 'SubCategory', 'normalize_name_key',
    'Product', 'StockTransaction',
    'MetalRate',
    'AuditEvent',
    'MetalType', 'ItemType', 'MakingChargeType', 'ProductStatus', 'TransactionType', 'StockReason',
]
