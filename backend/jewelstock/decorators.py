# Overview: Request and permission decorators for API routes.

from functools import wraps
from flask import request, jsonify, g

from .permissions import Permission, Role
from .services import session_service, permission_service


def _is_authenticated() -> bool:
    return hasattr(g, 'principal') and g.principal is not None


def _deny(event_type: str, action: str, reason: str) -> None:
    permission_service.log_security_event(
        user_id=g.principal.user_id,
        event_type=event_type,
        success=False,
        resource=request.path,
        action=action,
        reason=reason,
        ip_address=request.remote_addr,
        user_agent=request.headers.get("User-Agent"),
        shop_id=g.principal.shop_id,
    )


def require_auth(f):
    """
    Require authentication and establish tenant context.

    MULTI-TENANT: Sets the following Flask g attributes:
    - g.principal: Principal(user_id, shop_id, role, permissions)
    - g.current_user: The authenticated User object
    - g.user_id / g.shop_id: shortcuts (shop_id is None for SUPER_ADMIN)

    SECURITY: Returns 401 if:
    - No Authorization header
    - Invalid, expired or revoked token
    - User account deactivated
    - Session's shop removed
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        auth_header = request.headers.get("Authorization")

        if not auth_header or not auth_header.startswith("Bearer "):
            return jsonify({"error": "Authentication required"}), 401

        token = auth_header.split(" ", 1)[1].strip()
        context = session_service.validate_session(token)

        if not context:
            return jsonify({"error": "Invalid or expired token"}), 401

        principal = context.principal
        g.principal = principal
        g.current_user = context.user
        g.user_id = principal.user_id
        g.shop_id = principal.shop_id
        g.session_context = context

        return f(*args, **kwargs)

    return decorated_function


def require_shop_user(f):
    """Require a principal that belongs to a shop (any shop role)."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not _is_authenticated():
            return jsonify({"error": "Authentication required"}), 401
        if g.principal.shop_id is None:
            _deny("SHOP_CONTEXT_MISSING", request.method, "Shop route called without shop context")
            return jsonify({"error": "Shop access required"}), 403
        return f(*args, **kwargs)
    return decorated_function


def require_permission(permission: Permission):
    """
    Require a specific permission of a shop user.

    Denials are logged to security_events with the principal's shop.
    """
    permission = Permission(permission)

    def decorator(f):
        @wraps(f)
        @require_shop_user
        def decorated_function(*args, **kwargs):
            if not g.principal.has(permission):
                _deny("PERMISSION_DENIED", permission.value, f"Missing permission: {permission.value}")
                return jsonify({
                    "error": "Permission denied",
                    "required_permission": permission.value,
                    "message": f"Permission denied: {permission.value}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_any_permission(*permissions):
    """Require any of the specified permissions."""
    permissions = tuple(Permission(p) for p in permissions)
    codes = [p.value for p in permissions]

    def decorator(f):
        @wraps(f)
        @require_shop_user
        def decorated_function(*args, **kwargs):
            if not any(g.principal.has(p) for p in permissions):
                _deny("PERMISSION_DENIED", f"ANY_OF:{','.join(codes)}", f"Missing any of: {', '.join(codes)}")
                return jsonify({
                    "error": "Permission denied",
                    "required_permissions": codes,
                    "message": f"Requires any of: {', '.join(codes)}"
                }), 403

            return f(*args, **kwargs)

        return decorated_function
    return decorator


def require_role(*roles):
    """Require the principal to hold one of the given roles."""
    roles = tuple(Role(r) for r in roles)

    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not _is_authenticated():
                return jsonify({"error": "Authentication required"}), 401
            if g.principal.role not in roles:
                names = ",".join(r.value for r in roles)
                _deny("ROLE_DENIED", f"ROLE:{names}", f"Requires role: {names}")
                return jsonify({"error": "Role not permitted", "required_roles": names.split(",")}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


require_super_admin = require_role(Role.SUPER_ADMIN)
