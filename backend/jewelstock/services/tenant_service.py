"""
Multi-Tenant Service: Tenant Validation and Scoping Helpers

Every shop-content request is scoped to the principal's shop (g.shop_id).
Rows of other shops are invisible: the repository filters by shop_id and
reports them as NotFound. This module records the attempts.

SECURITY INVARIANTS:
1. Every authenticated shop request has g.shop_id set
2. Shop IDs from client input must match g.shop_id
3. Cross-shop access attempts are logged as security events
4. Responses never reveal that a row exists in another shop

USAGE:
    from jewelstock.services.tenant_service import get_current_shop_id

    shop_id = get_current_shop_id()
"""

from flask import g, has_request_context, request
from ..extensions import db
from ..models import Category, Product, Shop, StockTransaction, SubCategory, User
from .permission_service import log_security_event


class TenantAccessError(Exception):
    """Raised when cross-shop access is attempted."""
    pass


_SCOPED_MODELS = {
    "Product": Product,
    "Category": Category,
    "SubCategory": SubCategory,
    "StockTransaction": StockTransaction,
    "User": User,
}


def get_current_shop_id() -> int:
    """
    Get current tenant's shop_id from Flask g context.

    SECURITY: Raises TenantAccessError if shop_id not set (e.g. a
    super-admin session calling a shop-content route).
    """
    shop_id = getattr(g, 'shop_id', None)
    if shop_id is None:
        _log_cross_shop_attempt("Shop context not established", event_type="SHOP_CONTEXT_MISSING")
        raise TenantAccessError("Shop context not established")
    return shop_id


def require_shop_access(shop_id: int, current_shop_id: int) -> Shop:
    """
    Validate that a client-supplied shop id is the caller's shop.

    Raises TenantAccessError ("Shop not found") otherwise.
    """
    if shop_id != current_shop_id:
        _log_cross_shop_attempt(
            f"Shop {shop_id} requested from shop {current_shop_id}",
            shop_id=current_shop_id,
        )
        raise TenantAccessError("Shop not found")

    shop = db.session.query(Shop).filter_by(id=shop_id).first()
    if not shop:
        raise TenantAccessError("Shop not found")
    return shop


def check_cross_shop_access(entity: str, entity_id, shop_id: int | None) -> bool:
    """
    After a scoped lookup missed: log if the row exists in another shop.

    Returns True when a cross-shop attempt was recorded.
    """
    model = _SCOPED_MODELS.get(entity)
    if model is None or entity_id is None or shop_id is None:
        return False
    try:
        entity_id = int(entity_id)
    except (TypeError, ValueError):
        return False

    row = db.session.query(model).filter_by(id=entity_id).first()
    if row is None or row.shop_id == shop_id:
        return False

    _log_cross_shop_attempt(
        f"{entity} {entity_id} belongs to shop {row.shop_id}, not {shop_id}",
        shop_id=shop_id,
    )
    return True


def _log_cross_shop_attempt(
    reason: str,
    shop_id: int | None = None,
    event_type: str = "CROSS_SHOP_ACCESS_DENIED",
) -> None:
    """Log a cross-shop access attempt as a security event."""
    user_id = getattr(g, 'user_id', None)
    in_request = has_request_context()
    log_security_event(
        user_id=user_id,
        event_type=event_type,
        success=False,
        resource=request.path if in_request else None,
        action=request.method if in_request else None,
        reason=reason,
        ip_address=request.remote_addr if in_request else None,
        user_agent=request.headers.get("User-Agent") if in_request else None,
        shop_id=shop_id if shop_id is not None else getattr(g, 'shop_id', None),
    )
