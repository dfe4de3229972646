# Overview: Flask API routes for shop (tenant) management by the super-admin.

"""
Shop management routes.

SECURITY: SUPER_ADMIN only. The super-admin manages Shop rows themselves
and never sees their catalog or stock.
"""

from flask import Blueprint, request, g, current_app

from ..services import shop_service
from ..services.shop_service import ShopError
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth, require_super_admin

shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.get("")
@require_auth
@require_super_admin
def list_shops_route():
    items = shop_service.list_shops()
    return {"items": items, "count": len(items)}


@shops_bp.get("/<int:shop_id>")
@require_auth
@require_super_admin
def get_shop_route(shop_id: int):
    try:
        return shop_service.get_shop(shop_id)
    except ShopError as e:
        return {"error": str(e)}, 404


@shops_bp.post("")
@require_auth
@require_super_admin
def create_shop_route():
    """Body: {name, owner_name, owner_email}"""
    payload = request.get_json(silent=True) or {}
    missing = [k for k in ("name", "owner_name", "owner_email") if not payload.get(k)]
    if missing:
        return {"error": f"Missing required fields: {', '.join(missing)}"}, 400

    try:
        created = shop_service.create_shop(
            payload["name"],
            payload["owner_name"],
            payload["owner_email"],
            actor_user_id=g.user_id,
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409

    current_app.logger.info("Shop %s created", created["shop"]["id"])
    return created, 201
