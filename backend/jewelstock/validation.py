from __future__ import annotations
from datetime import datetime
from jewelstock.time_utils import parse_iso_datetime

import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Float, Integer, String, Text, DateTime
from sqlalchemy.orm import DeclarativeMeta

from .models import (
    ItemType,
    MakingChargeType,
    MetalType,
    ProductStatus,
    StockReason,
    TransactionType,
)
from .models.enums import enum_values


# Upper bounds keep nonsensical input out of the float columns
MAX_WEIGHT_GRAMS = 1_000_000.0
MAX_RATE_PER_GRAM = 10_000_000.0
MAX_PROFIT_PERCENT = 1000.0


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate barcode)."""


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - extra_fields: non-column inputs accepted alongside the columns
      (e.g. typed category names resolved by the service)
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore
    extra_fields: set[str] | None = None


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def coerce_float(key: str, value: Any) -> float:
    """Accept ints, floats and numeric strings; reject bools, NaN and infinities."""
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be a number")
        try:
            number = float(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be a number")
    else:
        raise ValidationError(f"{key} must be a number")
    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f"{key} must be a finite number")
    return number


def coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if 'e' in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if '.' in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        return coerce_int(col.key, value)

    if isinstance(coltype, Float):
        return coerce_float(col.key, value)

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        # fallback: truthiness
        return bool(value)

    # Datetimes (accept ISO-8601 strings; normalize to UTC)
    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    # Default: leave as-is
    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields + extra_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.

    Extra (non-column) fields are passed through as stripped strings or None.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    extra = policy.extra_fields or set()
    if not partial:
        missing = [f for f in sorted(required) if f not in payload]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    # Reject unknown / non-writable fields
    for k in payload.keys():
        if k in extra:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in extra:
            patch[k] = None if raw is None else str(raw).strip()
            continue

        col = cols[k]

        # NULL handling
        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        # Blank string check for non-nullable text fields
        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "":
                raise ValidationError(f"{k} cannot be blank")

        # Max length check for String(n)
        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def _require_choice(patch: dict, key: str, enum_cls) -> None:
    if key in patch and patch[key] is not None:
        allowed = enum_values(enum_cls)
        if patch[key] not in allowed:
            raise ValidationError(f"{key} must be one of: {', '.join(allowed)}")


def _require_range(patch: dict, key: str, *, minimum: float = 0.0, maximum: float | None = None) -> None:
    value = patch.get(key)
    if value is None:
        return
    if value < minimum:
        raise ValidationError(f"{key} must be >= {minimum:g}")
    if maximum is not None and value > maximum:
        raise ValidationError(f"{key} cannot exceed {maximum:,.0f}")


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    _require_choice(patch, "item_type", ItemType)
    _require_choice(patch, "making_charge_type", MakingChargeType)
    _require_choice(patch, "status", ProductStatus)
    _require_choice(patch, "category_type", MetalType)

    _require_range(patch, "making_charge", maximum=MAX_RATE_PER_GRAM)
    _require_range(patch, "profit_percent", maximum=MAX_PROFIT_PERCENT)
    _require_range(patch, "weight", maximum=MAX_WEIGHT_GRAMS)

    if "quantity" in patch and patch["quantity"] is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")

    barcode = patch.get("barcode")
    if barcode is not None and barcode != "" and not barcode.isalnum():
        raise ValidationError("barcode must be alphanumeric")


def enforce_rules_stock(patch: dict) -> None:
    """A movement moves a non-negative amount, and at least one of quantity/weight is positive."""
    _require_choice(patch, "type", TransactionType)
    _require_choice(patch, "reason", StockReason)

    quantity = patch.get("quantity") or 0
    weight = patch.get("weight") or 0.0
    if quantity < 0:
        raise ValidationError("quantity must be >= 0")
    if weight < 0:
        raise ValidationError("weight must be >= 0")
    if weight > MAX_WEIGHT_GRAMS:
        raise ValidationError(f"weight cannot exceed {MAX_WEIGHT_GRAMS:,.0f}")
    if quantity == 0 and weight == 0:
        raise ValidationError("quantity or weight must be > 0")


def enforce_rules_metal_rate(patch: dict) -> None:
    for key in ("gold_rate", "silver_rate"):
        if key in patch and patch[key] is None:
            raise ValidationError(f"{key} cannot be null")
        _require_range(patch, key, maximum=MAX_RATE_PER_GRAM)


def enforce_rules_category(patch: dict) -> None:
    _require_choice(patch, "type", MetalType)
