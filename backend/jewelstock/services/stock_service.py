# Overview: Stock ledger and inventory reconciler; records stock movements against cached product totals.

"""
Jewelstock Stock Ledger Invariants (authoritative)

Ledger model:
- StockTransaction rows are the record of every movement; append-only.
- Product.quantity / Product.weight are caches of
      Σ STOCK_IN − Σ STOCK_OUT
  over the product's transactions, written only here (and by the initial
  STOCK_IN booked at product creation).

Business invariants:
- A movement moves quantity >= 0 and weight >= 0, at least one > 0.
- A STOCK_OUT may not take quantity or weight below zero. The check runs
  against the locked product row inside the same unit of work as the
  append and the cache update, so two racing stock-outs cannot both pass.
- A rejected movement leaves neither a ledger row nor a cache change.

Time:
- occurred_at ("date") and timestamp (epoch ms) are assigned by the server.

Error policy:
- NotFound / InsufficientStock / ValidationError / ConcurrencyConflict are
  raised to the caller. Nothing is logged or retried here.
"""

from __future__ import annotations

from ..errors import InsufficientStock
from ..measures import WEIGHT_DECIMALS, round_weight
from ..models import Product, StockReason, StockTransaction, TransactionType
from ..repository import InventoryRepository
from ..time_utils import epoch_millis, utcnow
from ..validation import ValidationError, coerce_float, coerce_int
from .pricing_service import rate_for_metal

# Weight comparisons tolerate float noise below milligram resolution
_WEIGHT_EPSILON = 0.5 * 10 ** -WEIGHT_DECIMALS


def _normalize_movement(type: str, quantity, weight, reason: str) -> tuple[str, int, float, str]:
    if isinstance(type, TransactionType):
        type = type.value
    if isinstance(reason, StockReason):
        reason = reason.value
    if type not in (TransactionType.STOCK_IN.value, TransactionType.STOCK_OUT.value):
        raise ValidationError("type must be STOCK_IN or STOCK_OUT")
    if reason not in {r.value for r in StockReason}:
        raise ValidationError(f"invalid reason: {reason}")

    quantity = coerce_int("quantity", 0 if quantity is None else quantity)
    weight = round_weight(coerce_float("weight", 0.0 if weight is None else weight))

    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    if weight < 0:
        raise ValidationError("weight must be >= 0")
    if quantity == 0 and weight == 0:
        raise ValidationError("quantity or weight must be > 0")
    return type, quantity, weight, reason


def build_transaction(
    *,
    type: str,
    quantity: int,
    weight: float,
    reason: str,
    note: str | None = None,
    actor_user_id: int | None = None,
    rate_per_gram: float | None = None,
) -> StockTransaction:
    """Unsaved ledger row stamped with server time."""
    now = utcnow()
    return StockTransaction(
        type=type,
        quantity=quantity,
        weight=weight,
        reason=reason,
        note=(note or "").strip() or None,
        rate_per_gram=rate_per_gram,
        created_by_user_id=actor_user_id,
        occurred_at=now,
        timestamp=epoch_millis(now),
    )


def ensure_can_remove(product: Product, quantity: int, weight: float) -> None:
    """Raise InsufficientStock if taking (quantity, weight) would go below zero."""
    on_hand_quantity = int(product.quantity or 0)
    on_hand_weight = float(product.weight or 0.0)
    if quantity > on_hand_quantity or weight > on_hand_weight + _WEIGHT_EPSILON:
        raise InsufficientStock(
            product_id=product.id,
            requested_quantity=quantity,
            requested_weight=weight,
            on_hand_quantity=on_hand_quantity,
            on_hand_weight=on_hand_weight,
        )


def snapshot_rate(repo: InventoryRepository, product: Product) -> float | None:
    """Per-gram rate that prices the product right now; None if its category is missing."""
    category = repo.find_category(product.shop_id, product.category_id)
    if category is None:
        return None
    return rate_for_metal(repo.get_metal_rate(product.shop_id), category.type)


def record_transaction(
    repo: InventoryRepository,
    *,
    shop_id: int,
    product_id: int,
    type: str,
    quantity,
    weight,
    reason: str,
    note: str | None = None,
    actor_user_id: int | None = None,
) -> StockTransaction:
    """
    Record one stock movement and move the product's cached totals.

    Atomic: the ledger append and the cache update commit together or not
    at all. Raises NotFound for a product outside shop_id, InsufficientStock
    for an overdraft, ConcurrencyConflict if a competing write won the race.
    """
    type, quantity, weight, reason = _normalize_movement(type, quantity, weight, reason)
    txn = build_transaction(
        type=type,
        quantity=quantity,
        weight=weight,
        reason=reason,
        note=note,
        actor_user_id=actor_user_id,
    )

    def _check(product: Product) -> None:
        if type == TransactionType.STOCK_OUT.value:
            ensure_can_remove(product, quantity, weight)

    def _prepare(product: Product, pending: StockTransaction) -> None:
        pending.rate_per_gram = snapshot_rate(repo, product)

    txn, _product = repo.append_transaction_and_update_product(
        shop_id, product_id, txn, check=_check, prepare=_prepare
    )
    return txn


def stock_in(repo: InventoryRepository, **kwargs) -> StockTransaction:
    return record_transaction(repo, type=TransactionType.STOCK_IN.value, **kwargs)


def stock_out(repo: InventoryRepository, **kwargs) -> StockTransaction:
    return record_transaction(repo, type=TransactionType.STOCK_OUT.value, **kwargs)


def list_transactions(
    repo: InventoryRepository,
    *,
    shop_id: int,
    product_id: int | None = None,
    type: str | None = None,
    start=None,
    end=None,
    limit: int | None = None,
) -> list[StockTransaction]:
    """Newest first. product_id, when given, must belong to shop_id."""
    if product_id is not None:
        repo.get_product(shop_id, product_id)
    if type is not None and type not in (TransactionType.STOCK_IN.value, TransactionType.STOCK_OUT.value):
        raise ValidationError("type must be STOCK_IN or STOCK_OUT")
    if limit is not None and limit <= 0:
        raise ValidationError("limit must be > 0")
    return repo.list_transactions(
        shop_id,
        product_id,
        type=type,
        start=start,
        end=end,
        limit=limit,
    )


def _drift_row(product: Product, totals: dict | None) -> dict:
    totals = totals or {"in_quantity": 0, "out_quantity": 0, "in_weight": 0.0, "out_weight": 0.0, "entries": 0}
    ledger_quantity = totals["in_quantity"] - totals["out_quantity"]
    ledger_weight = round_weight(totals["in_weight"] - totals["out_weight"])
    cached_weight = round_weight(product.weight or 0.0)
    quantity_drift = int(product.quantity or 0) - ledger_quantity
    weight_drift = round_weight(cached_weight - ledger_weight)
    return {
        "product_id": product.id,
        "name": product.name,
        "cached_quantity": int(product.quantity or 0),
        "ledger_quantity": ledger_quantity,
        "quantity_drift": quantity_drift,
        "cached_weight": cached_weight,
        "ledger_weight": ledger_weight,
        "weight_drift": weight_drift,
        "entries": totals["entries"],
        "consistent": quantity_drift == 0 and abs(weight_drift) < _WEIGHT_EPSILON,
    }


def audit_product_ledger(repo: InventoryRepository, *, shop_id: int, product_id: int) -> dict:
    """
    Read-only reconciliation check of one product.

    Compares the cached totals with the ledger sums. A non-zero drift means
    the cache was written outside this module.
    """
    product = repo.get_product(shop_id, product_id)
    totals = repo.ledger_totals(shop_id, [product.id]).get(product.id)
    return _drift_row(product, totals)


def audit_shop_ledger(repo: InventoryRepository, *, shop_id: int) -> dict:
    """Reconciliation check of every product in a shop; lists only drifting products."""
    repo.get_shop(shop_id)
    products = repo.list_products(shop_id)
    totals = repo.ledger_totals(shop_id)
    rows = [_drift_row(p, totals.get(p.id)) for p in products]
    drifting = [row for row in rows if not row["consistent"]]
    return {
        "shop_id": shop_id,
        "products_checked": len(rows),
        "consistent": not drifting,
        "drift": drifting,
    }


def suggest_stock_out_weight(product: Product, quantity) -> float:
    """
    Average-weight suggestion for removing `quantity` units.

    weight / quantity * n, at milligram resolution; 0 when nothing is on hand.
    """
    quantity = coerce_int("quantity", quantity)
    if quantity <= 0:
        raise ValidationError("quantity must be > 0")
    on_hand = int(product.quantity or 0)
    if on_hand <= 0:
        return 0.0
    return round_weight(float(product.weight or 0.0) / on_hand * quantity)
