# Overview: Typed error kinds raised by the pricing/ledger core and its storage collaborator.

"""
Error kinds surfaced by the inventory core.

The core never logs and never retries; it fails fast with one of these and
leaves the decision (HTTP status, retry, user message) to the caller.
"""


class InventoryError(Exception):
    """Base class for core inventory failures."""


class NotFound(InventoryError):
    """Referenced product, category, sub-category or shop does not exist in the caller's shop."""

    def __init__(self, entity: str, entity_id=None):
        self.entity = entity
        self.entity_id = entity_id
        if entity_id is None:
            super().__init__(f"{entity} not found")
        else:
            super().__init__(f"{entity} {entity_id} not found")


class InsufficientStock(InventoryError):
    """A STOCK_OUT would drive on-hand quantity or weight below zero."""

    def __init__(
        self,
        *,
        product_id: int,
        requested_quantity: int,
        requested_weight: float,
        on_hand_quantity: int,
        on_hand_weight: float,
    ):
        self.product_id = product_id
        self.requested_quantity = requested_quantity
        self.requested_weight = requested_weight
        self.on_hand_quantity = on_hand_quantity
        self.on_hand_weight = on_hand_weight
        super().__init__(
            f"insufficient stock for product {product_id}: requested "
            f"{requested_quantity} units / {requested_weight}g, on hand "
            f"{on_hand_quantity} units / {on_hand_weight}g"
        )

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "requested_quantity": self.requested_quantity,
            "requested_weight": self.requested_weight,
            "on_hand_quantity": self.on_hand_quantity,
            "on_hand_weight": self.on_hand_weight,
        }


class MissingCategory(InventoryError):
    """Neither a resolvable category id nor a usable typed name was supplied."""

    def __init__(self, message: str = "category is required"):
        super().__init__(message)


class ConcurrencyConflict(InventoryError):
    """The atomic ledger append + cache update lost a race with a competing write; retry."""
