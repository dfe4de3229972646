# Overview: Flask API routes for stock movements; the only HTTP path that changes on-hand quantity and weight.

"""
Stock ledger routes.

POST /api/stock/transactions          record STOCK_IN / STOCK_OUT (MANAGE_STOCK)
GET  /api/stock/transactions          list, newest first (VIEW_INVENTORY)
GET  /api/stock/products/<id>/suggest-weight?quantity=n
GET  /api/stock/audit                 reconciliation audit of the shop
GET  /api/stock/audit/<product_id>    reconciliation audit of one product

Concurrency: the service serializes per product and raises
ConcurrencyConflict when a competing write wins; this layer retries a
bounded number of times and then answers 409.
"""

from flask import Blueprint, request, g, current_app

from ..models import StockTransaction
from ..permissions import Permission
from ..services import stock_service
from ..time_utils import parse_iso_datetime, is_date_only
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_stock,
    ValidationError,
)
from ..decorators import require_auth, require_permission
from ._helpers import HANDLED_ERRORS, error_response, get_repository, with_retry

STOCK_POLICY = ModelValidationPolicy(
    writable_fields={"product_id", "type", "quantity", "weight", "reason", "note"},
    required_on_create={"product_id", "type", "reason"},
)

stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock")


@stock_bp.post("/transactions")
@require_auth
@require_permission(Permission.MANAGE_STOCK)
def record_transaction_route():
    """
    Record a stock movement.

    Body: {product_id, type: STOCK_IN|STOCK_OUT, quantity, weight, reason, note?}
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=StockTransaction, payload=payload, policy=STOCK_POLICY, partial=False)
        enforce_rules_stock(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    repo = get_repository()
    try:
        txn = with_retry(lambda: stock_service.record_transaction(
            repo,
            shop_id=g.shop_id,
            product_id=patch["product_id"],
            type=patch["type"],
            quantity=patch.get("quantity") or 0,
            weight=patch.get("weight") or 0.0,
            reason=patch["reason"],
            note=patch.get("note"),
            actor_user_id=g.user_id,
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)

    product = repo.get_product(g.shop_id, txn.product_id)
    current_app.logger.info(
        "Stock %s product=%s qty=%s weight=%s shop=%s",
        txn.type, txn.product_id, txn.quantity, txn.weight, g.shop_id,
    )
    return {
        "transaction": txn.to_dict(),
        "product": {"id": product.id, "quantity": product.quantity, "weight": product.weight},
    }, 201


@stock_bp.get("/transactions")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def list_transactions_route():
    """
    Query params:
    - product_id: int
    - type: STOCK_IN | STOCK_OUT
    - start / end: ISO-8601 (a date-only end covers the whole day)
    - limit: int
    """
    try:
        start = parse_iso_datetime(request.args.get("start"))
        end_raw = request.args.get("end")
        end = parse_iso_datetime(end_raw)
    except ValueError:
        return {"error": "start/end must be ISO-8601 datetimes"}, 400
    if end is not None and is_date_only(end_raw):
        end = end.replace(hour=23, minute=59, second=59, microsecond=999999)

    try:
        txns = stock_service.list_transactions(
            get_repository(),
            shop_id=g.shop_id,
            product_id=request.args.get("product_id", type=int),
            type=request.args.get("type") or None,
            start=start,
            end=end,
            limit=request.args.get("limit", type=int),
        )
    except HANDLED_ERRORS as e:
        return error_response(e)

    return {"items": [t.to_dict() for t in txns], "count": len(txns)}


@stock_bp.get("/products/<int:product_id>/suggest-weight")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def suggest_weight_route(product_id: int):
    quantity = request.args.get("quantity", "1")
    try:
        product = get_repository().get_product(g.shop_id, product_id)
        weight = stock_service.suggest_stock_out_weight(product, quantity)
    except HANDLED_ERRORS as e:
        return error_response(e)
    return {"product_id": product_id, "quantity": int(quantity), "suggested_weight": weight}


@stock_bp.get("/audit")
@require_auth
@require_permission(Permission.VIEW_REPORTS)
def audit_shop_route():
    try:
        return stock_service.audit_shop_ledger(get_repository(), shop_id=g.shop_id)
    except HANDLED_ERRORS as e:
        return error_response(e)


@stock_bp.get("/audit/<int:product_id>")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def audit_product_route(product_id: int):
    try:
        return stock_service.audit_product_ledger(get_repository(), shop_id=g.shop_id, product_id=product_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
