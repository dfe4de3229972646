# Overview: Service-layer operations for permission; encapsulates business logic and database work.

"""
Permission Checking and Security Event Logging with Multi-Tenant Support

Effective permissions of a user:
    role defaults (DEFAULT_ROLE_PERMISSIONS)
    + GRANT overrides
    - DENY overrides

MULTI-TENANT: Security events carry shop_id so they can be reviewed per shop.

DESIGN PRINCIPLES:
- Fail closed: Deny by default, require explicit permission grant
- Log denials only: Permission grants are not logged
- SUPER_ADMIN holds no shop permissions; overrides cannot give it any
"""

from __future__ import annotations

from ..extensions import db
from ..models import SecurityEvent, User, UserPermissionOverride
from ..permissions import Permission, Role, default_permissions_for
from jewelstock.time_utils import utcnow

OVERRIDE_GRANT = "GRANT"
OVERRIDE_DENY = "DENY"


class PermissionDeniedError(Exception):
    """Raised when user lacks required permission."""
    pass


def log_security_event(
    user_id: int | None,
    event_type: str,
    success: bool,
    resource: str | None = None,
    action: str | None = None,
    reason: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    shop_id: int | None = None,
) -> SecurityEvent:
    """
    Log security event to audit trail with tenant context.

    event_type examples:
    - PERMISSION_DENIED
    - ROLE_DENIED
    - CROSS_SHOP_ACCESS_DENIED
    - SHOP_CONTEXT_MISSING
    - SESSION_ISSUED
    """
    event = SecurityEvent(
        user_id=user_id,
        shop_id=shop_id,
        event_type=event_type,
        resource=resource,
        action=action,
        success=success,
        reason=reason,
        ip_address=ip_address,
        user_agent=user_agent,
        occurred_at=utcnow()
    )

    db.session.add(event)
    db.session.commit()

    return event


def effective_permissions(role: str, overrides) -> set[Permission]:
    """Role defaults adjusted by (permission_code, override_type) pairs."""
    if role == Role.SUPER_ADMIN.value:
        return set()
    permissions = set(default_permissions_for(role))
    for code, override_type in overrides:
        try:
            permission = Permission(code)
        except ValueError:
            continue
        if override_type == OVERRIDE_GRANT:
            permissions.add(permission)
        elif override_type == OVERRIDE_DENY:
            permissions.discard(permission)
    return permissions


def get_user_permissions(user_id: int) -> set[Permission]:
    """
    Get all permissions of a user.

    Returns an empty set for unknown or deactivated users.
    """
    user = db.session.query(User).filter_by(id=user_id).first()
    if not user or not user.is_active:
        return set()

    overrides = db.session.query(UserPermissionOverride).filter_by(user_id=user_id).all()
    return effective_permissions(
        user.role,
        [(o.permission_code, o.override_type) for o in overrides],
    )


def user_has_permission(user_id: int, permission: Permission | str) -> bool:
    return Permission(permission) in get_user_permissions(user_id)


def set_user_permissions(user: User, permissions) -> set[Permission]:
    """
    Make `permissions` the user's effective set.

    Stores only the difference from the role defaults as override rows
    (flush only; the caller commits).
    """
    wanted = {Permission(p) for p in permissions}
    defaults = set(default_permissions_for(user.role))

    db.session.query(UserPermissionOverride).filter_by(user_id=user.id).delete(synchronize_session=False)
    db.session.expire(user, ["permission_overrides"])

    for permission in sorted(wanted - defaults, key=lambda p: p.value):
        db.session.add(UserPermissionOverride(
            user_id=user.id,
            permission_code=permission.value,
            override_type=OVERRIDE_GRANT,
        ))
    for permission in sorted(defaults - wanted, key=lambda p: p.value):
        db.session.add(UserPermissionOverride(
            user_id=user.id,
            permission_code=permission.value,
            override_type=OVERRIDE_DENY,
        ))
    db.session.flush()
    return wanted


def require_permission(
    user_id: int,
    permission: Permission | str,
    resource: str | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
    shop_id: int | None = None,
) -> None:
    """
    Require user to have permission, raise PermissionDeniedError if not.

    Logs denials to security_events.
    """
    permission = Permission(permission)
    if not user_has_permission(user_id, permission):
        log_security_event(
            user_id=user_id,
            event_type="PERMISSION_DENIED",
            success=False,
            resource=resource,
            action=permission.value,
            reason=f"Missing permission: {permission.value}",
            ip_address=ip_address,
            user_agent=user_agent,
            shop_id=shop_id,
        )
        raise PermissionDeniedError(f"Permission denied: {permission.value}")
