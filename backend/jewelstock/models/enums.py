# Overview: Closed value sets stored as strings on catalog and ledger rows.

from enum import Enum


class MetalType(str, Enum):
    GOLD = "Gold"
    SILVER = "Silver"


class ItemType(str, Enum):
    INDIVIDUAL = "Individual"
    GROUP = "Group"


class MakingChargeType(str, Enum):
    PER_GRAM = "per_gram"
    PER_PIECE = "per_piece"


class ProductStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class TransactionType(str, Enum):
    STOCK_IN = "STOCK_IN"
    STOCK_OUT = "STOCK_OUT"


class StockReason(str, Enum):
    PURCHASE = "Purchase"
    RETURN = "Return"
    ADJUSTMENT = "Adjustment"
    SALE = "Sale"
    DAMAGE = "Damage"
    TRANSFER = "Transfer"
    OTHER = "Other"


def enum_values(enum_cls) -> list[str]:
    return [member.value for member in enum_cls]
