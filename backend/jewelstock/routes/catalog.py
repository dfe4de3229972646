# Overview: Flask API routes for categories and sub-categories.

from flask import Blueprint, request, g

from ..models import Category
from ..permissions import Permission
from ..services import category_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_category,
    ValidationError,
)
from ..decorators import require_auth, require_permission
from ._helpers import HANDLED_ERRORS, error_response, get_repository, with_retry

CATEGORY_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type"},
    required_on_create={"name", "type"},
)

catalog_bp = Blueprint("catalog", __name__, url_prefix="/api/categories")


@catalog_bp.get("")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def list_categories_route():
    include_subs = request.args.get("include_subcategories", "false").lower() in ("1", "true", "yes")
    items = category_service.list_categories(
        get_repository(), shop_id=g.shop_id, include_subcategories=include_subs
    )
    return {"items": items, "count": len(items)}


@catalog_bp.post("")
@require_auth
@require_permission(Permission.MANAGE_SETTINGS)
def create_category_route():
    """Body: {name, type: Gold|Silver}. Names are unique per shop, case-insensitive."""
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Category, payload=payload, policy=CATEGORY_POLICY, partial=False)
        enforce_rules_category(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    repo = get_repository()
    try:
        category = with_retry(lambda: category_service.create_category(
            repo, shop_id=g.shop_id, name=patch["name"], type=patch["type"]
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return category.to_dict(), 201


@catalog_bp.delete("/<int:category_id>")
@require_auth
@require_permission(Permission.MANAGE_SETTINGS)
def delete_category_route(category_id: int):
    """Deletes the category and its sub-categories; products keep the old category id."""
    repo = get_repository()
    try:
        result = with_retry(lambda: category_service.delete_category(
            repo, shop_id=g.shop_id, category_id=category_id, actor_user_id=g.user_id
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return {"ok": True, **result}


@catalog_bp.get("/subcategories")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def list_subcategories_route():
    try:
        items = category_service.list_subcategories(
            get_repository(), shop_id=g.shop_id, category_id=request.args.get("category_id", type=int)
        )
    except HANDLED_ERRORS as e:
        return error_response(e)
    return {"items": items, "count": len(items)}


@catalog_bp.post("/<int:category_id>/subcategories")
@require_auth
@require_permission(Permission.MANAGE_SETTINGS)
def create_subcategory_route(category_id: int):
    payload = request.get_json(silent=True) or {}
    name = payload.get("name")
    if not isinstance(name, str) or not name.strip():
        return {"error": "name is required"}, 400

    repo = get_repository()
    try:
        sub = with_retry(lambda: category_service.create_subcategory(
            repo, shop_id=g.shop_id, category_id=category_id, name=name
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return sub.to_dict(), 201


@catalog_bp.delete("/subcategories/<int:sub_category_id>")
@require_auth
@require_permission(Permission.MANAGE_SETTINGS)
def delete_subcategory_route(sub_category_id: int):
    repo = get_repository()
    try:
        result = with_retry(lambda: category_service.delete_subcategory(
            repo, shop_id=g.shop_id, sub_category_id=sub_category_id, actor_user_id=g.user_id
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)
    return {"ok": True, **result}
