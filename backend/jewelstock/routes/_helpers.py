# Overview: Shared route plumbing; per-request repository, retries and error-to-response mapping.

from __future__ import annotations

from datetime import timedelta

from flask import current_app, g

from ..errors import ConcurrencyConflict, InsufficientStock, MissingCategory, NotFound
from ..extensions import db
from ..repository import InventoryRepository
from ..services.concurrency import run_with_retry
from ..services.tenant_service import TenantAccessError, check_cross_shop_access
from ..validation import ConflictError, ValidationError


def get_repository() -> InventoryRepository:
    """One repository per request, bound to the request's session."""
    repo = g.get("inventory_repository")
    if repo is None:
        repo = InventoryRepository(db.session)
        g.inventory_repository = repo
    return repo


def rate_max_age() -> timedelta:
    return timedelta(hours=current_app.config.get("METAL_RATE_MAX_AGE_HOURS", 24))


def with_retry(func):
    """Run a write, retrying ConcurrencyConflict up to WRITE_RETRY_ATTEMPTS times."""
    return run_with_retry(func, attempts=current_app.config.get("WRITE_RETRY_ATTEMPTS", 3))


def error_response(e: Exception):
    """
    Map a service error to a JSON response tuple.

    Cross-shop lookups are recorded and answered exactly like a missing row.
    """
    if isinstance(e, NotFound):
        check_cross_shop_access(e.entity, e.entity_id, g.get("shop_id"))
        return {"error": str(e)}, 404
    if isinstance(e, TenantAccessError):
        return {"error": str(e)}, 404
    if isinstance(e, InsufficientStock):
        return {"error": "Insufficient stock", **e.to_dict()}, 409
    if isinstance(e, MissingCategory):
        return {"error": str(e)}, 400
    if isinstance(e, ConcurrencyConflict):
        return {"error": str(e)}, 409
    if isinstance(e, ConflictError):
        return {"error": str(e)}, 409
    if isinstance(e, ValidationError):
        return {"error": str(e)}, 400
    raise e


HANDLED_ERRORS = (
    NotFound,
    TenantAccessError,
    InsufficientStock,
    MissingCategory,
    ConcurrencyConflict,
    ConflictError,
    ValidationError,
)
