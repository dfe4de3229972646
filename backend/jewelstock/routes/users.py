# Overview: Flask API routes for team management and the caller's own session.

"""
Team management routes.

MULTI-TENANT: users are listed and edited within the caller's shop only.
SECURITY: team management requires CREATE_SHOP_MANAGER.
"""

from flask import Blueprint, request, g

from ..permissions import Permission, PERMISSION_DEFINITIONS
from ..services import session_service, user_service
from ..services.tenant_service import check_cross_shop_access
from ..services.user_service import UserNotFoundError
from ..validation import ConflictError, ValidationError
from ..decorators import require_auth, require_permission

users_bp = Blueprint("users", __name__, url_prefix="/api")


@users_bp.get("/me")
@require_auth
def me_route():
    return {
        "user": g.current_user.to_dict(permissions=g.principal.permissions),
        "principal": g.principal.to_dict(),
    }


@users_bp.post("/logout")
@require_auth
def logout_route():
    token = request.headers.get("Authorization", "").split(" ", 1)[1].strip()
    session_service.revoke_session(token)
    return {"ok": True}


@users_bp.get("/permissions")
@require_auth
def list_permission_definitions():
    return {
        "items": [
            {"code": code.value, "name": name, "description": description, "category": category}
            for code, name, description, category in PERMISSION_DEFINITIONS
        ]
    }


@users_bp.get("/users")
@require_auth
@require_permission(Permission.CREATE_SHOP_MANAGER)
def list_users_route():
    items = user_service.list_users(g.shop_id)
    return {"items": items, "count": len(items)}


@users_bp.post("/users")
@require_auth
@require_permission(Permission.CREATE_SHOP_MANAGER)
def create_manager_route():
    """Body: {name, email, permissions?: [codes]}"""
    payload = request.get_json(silent=True) or {}
    try:
        created = user_service.create_shop_manager(
            g.shop_id,
            payload.get("name"),
            payload.get("email"),
            permissions=payload.get("permissions"),
        )
    except ValidationError as e:
        return {"error": str(e)}, 400
    except ConflictError as e:
        return {"error": str(e)}, 409
    return created, 201


@users_bp.put("/users/<int:user_id>")
@require_auth
@require_permission(Permission.CREATE_SHOP_MANAGER)
def update_user_route(user_id: int):
    """Body: {name?, permissions?: [codes], is_active?}"""
    payload = request.get_json(silent=True) or {}
    unknown = set(payload) - {"name", "permissions", "is_active"}
    if unknown:
        return {"error": f"Field not allowed: {sorted(unknown)[0]}"}, 400
    try:
        return user_service.update_user(
            g.shop_id,
            user_id,
            name=payload.get("name"),
            permissions=payload.get("permissions"),
            is_active=payload.get("is_active"),
        )
    except UserNotFoundError as e:
        check_cross_shop_access("User", user_id, g.shop_id)
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400


@users_bp.delete("/users/<int:user_id>")
@require_auth
@require_permission(Permission.CREATE_SHOP_MANAGER)
def delete_user_route(user_id: int):
    try:
        user_service.delete_user(g.shop_id, user_id, actor_user_id=g.user_id)
    except UserNotFoundError as e:
        check_cross_shop_access("User", user_id, g.shop_id)
        return {"error": str(e)}, 404
    except ValidationError as e:
        return {"error": str(e)}, 400
    return {"ok": True}
