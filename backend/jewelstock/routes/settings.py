# Overview: Flask API routes for shop settings and the audit trail.

from flask import Blueprint, request, g

from ..extensions import db
from ..permissions import Permission
from ..services import settings_service
from ..services.audit_service import list_audit_events
from ..decorators import require_auth, require_permission, require_shop_user
from ._helpers import HANDLED_ERRORS, error_response, get_repository, with_retry

settings_bp = Blueprint("settings", __name__, url_prefix="/api/settings")


@settings_bp.get("")
@require_auth
@require_shop_user
def get_settings_route():
    """Any shop user can read the shop name (printed on labels and receipts)."""
    try:
        return settings_service.get_shop_settings(get_repository(), shop_id=g.shop_id)
    except HANDLED_ERRORS as e:
        return error_response(e)


@settings_bp.put("")
@require_auth
@require_permission(Permission.MANAGE_SETTINGS)
def update_settings_route():
    payload = request.get_json(silent=True) or {}
    if "shop_name" not in payload:
        return {"error": "Missing required fields: shop_name"}, 400

    repo = get_repository()
    try:
        return with_retry(lambda: settings_service.update_shop_settings(
            repo, shop_id=g.shop_id, shop_name=payload.get("shop_name")
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)


@settings_bp.get("/audit-events")
@require_auth
@require_permission(Permission.MANAGE_SETTINGS)
def list_audit_events_route():
    """
    Query params:
    - event_type: e.g. product.deleted
    - entity_type / entity_id
    - limit: default 100, max 500
    """
    limit = min(max(request.args.get("limit", 100, type=int), 1), 500)
    items = list_audit_events(
        db.session,
        shop_id=g.shop_id,
        event_type=request.args.get("event_type") or None,
        entity_type=request.args.get("entity_type") or None,
        entity_id=request.args.get("entity_id", type=int),
        limit=limit,
    )
    return {"items": items, "count": len(items)}
