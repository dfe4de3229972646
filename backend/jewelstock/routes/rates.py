# Overview: Flask API routes for the shop's metal rates and price quotes.

from flask import Blueprint, request, g, current_app

from ..permissions import Permission
from ..services import metal_rate_service, pricing_service
from ..services.pricing_service import compute_price
from ..validation import ValidationError, coerce_float
from ..decorators import require_auth, require_permission, require_any_permission
from ._helpers import HANDLED_ERRORS, error_response, get_repository, rate_max_age, with_retry

rates_bp = Blueprint("rates", __name__, url_prefix="/api/rates")


@rates_bp.get("")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def get_rates_route():
    try:
        return metal_rate_service.get_metal_rate(get_repository(), shop_id=g.shop_id, max_age=rate_max_age())
    except HANDLED_ERRORS as e:
        return error_response(e)


@rates_bp.put("")
@require_auth
@require_any_permission(Permission.UPDATE_METAL_RATES, Permission.MANAGE_METAL_RATES)
def update_rates_route():
    """Body: {gold_rate?, silver_rate?} in currency per gram."""
    payload = request.get_json(silent=True) or {}
    unknown = set(payload) - {"gold_rate", "silver_rate"}
    if unknown:
        return {"error": f"Field not allowed: {sorted(unknown)[0]}"}, 400

    repo = get_repository()
    try:
        result = with_retry(lambda: metal_rate_service.update_metal_rates(
            repo,
            shop_id=g.shop_id,
            gold_rate=payload.get("gold_rate"),
            silver_rate=payload.get("silver_rate"),
            actor_user_id=g.user_id,
        ))
    except HANDLED_ERRORS as e:
        return error_response(e)

    current_app.logger.info("Metal rates updated for shop %s", g.shop_id)
    return result


@rates_bp.post("/quote")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def quote_route():
    """
    Price calculator for an unsaved item.

    Body: {weight, metal_type: Gold|Silver, making_charge, making_charge_type, profit_percent}
    """
    payload = request.get_json(silent=True) or {}
    try:
        weight = coerce_float("weight", payload.get("weight", 0))
        making_charge = coerce_float("making_charge", payload.get("making_charge", 0))
        profit_percent = coerce_float("profit_percent", payload.get("profit_percent", 0))
        if weight < 0 or making_charge < 0 or profit_percent < 0:
            raise ValidationError("weight, making_charge and profit_percent must be >= 0")
        metal_type = payload.get("metal_type", "Gold")
        if metal_type not in ("Gold", "Silver"):
            raise ValidationError("metal_type must be Gold or Silver")
        charge_type = payload.get("making_charge_type", "per_gram")
        if charge_type not in ("per_gram", "per_piece"):
            raise ValidationError("making_charge_type must be per_gram or per_piece")

        rate = get_repository().get_metal_rate(g.shop_id)
    except HANDLED_ERRORS as e:
        return error_response(e)

    quote = compute_price(
        weight=weight,
        rate_per_gram=pricing_service.rate_for_metal(rate, metal_type),
        making_charge=making_charge,
        making_charge_type=charge_type,
        profit_percent=profit_percent,
    )
    data = quote.to_dict()
    data["rate_updated_at"] = rate.to_dict()["updated_at"]
    data["rate_is_stale"] = pricing_service.is_rate_stale(rate, max_age=rate_max_age())
    return data
