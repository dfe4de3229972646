# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/jewelstock/routes/products.py
"""
Product catalog routes with multi-tenant support.

MULTI-TENANT: All product operations are scoped to the caller's shop
(g.shop_id, set by @require_auth).

SECURITY:
- Read operations require VIEW_INVENTORY
- Create / edit / delete require ADD_PRODUCT / EDIT_PRODUCT / DELETE_PRODUCT

Every product in a response carries its computed price.
"""
from flask import Blueprint, request, g, current_app
from ..services import products_service
from ..models import Product
from ..permissions import Permission
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    ValidationError,
)
from ..decorators import require_auth, require_permission
from ._helpers import HANDLED_ERRORS, error_response, get_repository, rate_max_age, with_retry

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "sku", "barcode", "hsn_code", "item_type",
        "weight", "quantity",
        "making_charge", "making_charge_type", "profit_percent", "status",
        "category_id", "sub_category_id",
    },
    required_on_create={"name", "weight"},
    extra_fields={"category_name", "category_type", "sub_category_name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _validated(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    enforce_rules_product(patch)
    return patch


@products_bp.get("")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def list_products():
    """
    List the shop's products.

    Query params:
    - search: matches name, SKU or barcode (case-insensitive)
    - category_id: int
    - status: Active | Inactive
    """
    try:
        return products_service.list_products(
            get_repository(),
            shop_id=g.shop_id,
            search=request.args.get("search"),
            category_id=request.args.get("category_id", type=int),
            status=request.args.get("status") or None,
            rate_max_age=rate_max_age(),
        )
    except HANDLED_ERRORS as e:
        return error_response(e)


@products_bp.get("/<int:product_id>")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def get_product(product_id: int):
    try:
        return products_service.get_product(
            get_repository(), shop_id=g.shop_id, product_id=product_id, rate_max_age=rate_max_age()
        )
    except HANDLED_ERRORS as e:
        return error_response(e)


@products_bp.get("/barcode/<barcode>")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def get_product_by_barcode(barcode: str):
    """Scan lookup."""
    try:
        return products_service.find_product_by_barcode(
            get_repository(), shop_id=g.shop_id, barcode=barcode, rate_max_age=rate_max_age()
        )
    except HANDLED_ERRORS as e:
        return error_response(e)


@products_bp.post("")
@require_auth
@require_permission(Permission.ADD_PRODUCT)
def create_product_route():
    """
    Create a product and book its opening stock.

    Body: product fields; "weight" is the weight of one unit. The category
    is given as category_id or as category_name (+ category_type for a new
    one); sub-category likewise.
    """
    payload = request.get_json(silent=True) or {}

    try:
        patch = _validated(payload, partial=False)
    except ValidationError as e:
        return {"error": str(e)}, 400

    repo = get_repository()
    try:
        created = with_retry(lambda: products_service.create_product(
            repo,
            shop_id=g.shop_id,
            patch=patch,
            actor_user_id=g.user_id,
            rate_max_age=rate_max_age(),
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)

    return created, 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_permission(Permission.EDIT_PRODUCT)
def update_product_route(product_id: int):
    """Edit descriptive and pricing fields. quantity / weight are rejected."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = _validated(payload, partial=True)
    except ValidationError as e:
        return {"error": str(e)}, 400

    if not patch:
        return {"error": "No fields to update"}, 400

    repo = get_repository()
    try:
        return with_retry(lambda: products_service.update_product(
            repo,
            shop_id=g.shop_id,
            product_id=product_id,
            patch=patch,
            actor_user_id=g.user_id,
            rate_max_age=rate_max_age(),
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)


@products_bp.delete("/<int:product_id>")
@require_auth
@require_permission(Permission.DELETE_PRODUCT)
def delete_product_route(product_id: int):
    """Delete a product together with its stock transactions."""
    repo = get_repository()
    try:
        result = with_retry(lambda: products_service.delete_product(
            repo, shop_id=g.shop_id, product_id=product_id, actor_user_id=g.user_id
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Product %s deleted from shop %s", product_id, g.shop_id)
    return {"ok": True, **result}, 200
