# Overview: Flask API routes for reports; parses input and returns JSON responses.

from flask import Blueprint, request, g, current_app

from ..permissions import Permission
from ..services import reporting_service
from ..services.reporting_service import ReportError
from ..decorators import require_auth, require_permission
from ._helpers import HANDLED_ERRORS, error_response, get_repository

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_permission(Permission.VIEW_INVENTORY)
def dashboard_route():
    try:
        return reporting_service.dashboard(
            get_repository(),
            shop_id=g.shop_id,
            low_stock_threshold=current_app.config.get("LOW_STOCK_THRESHOLD", 2),
        )
    except HANDLED_ERRORS as e:
        return error_response(e)


@reports_bp.get("/stock")
@require_auth
@require_permission(Permission.VIEW_REPORTS)
def stock_report_route():
    try:
        return reporting_service.stock_report(get_repository(), shop_id=g.shop_id)
    except HANDLED_ERRORS as e:
        return error_response(e)


@reports_bp.get("/sales")
@require_auth
@require_permission(Permission.VIEW_REPORTS)
def sales_report_route():
    try:
        return reporting_service.sales_report(
            get_repository(),
            shop_id=g.shop_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
    except ReportError as e:
        return {"error": str(e)}, 400
    except HANDLED_ERRORS as e:
        return error_response(e)


@reports_bp.get("/added-items")
@require_auth
@require_permission(Permission.VIEW_REPORTS)
def added_items_route():
    try:
        return reporting_service.added_items_report(
            get_repository(),
            shop_id=g.shop_id,
            start=request.args.get("start"),
            end=request.args.get("end"),
        )
    except ReportError as e:
        return {"error": str(e)}, 400
    except HANDLED_ERRORS as e:
        return error_response(e)


@reports_bp.get("/category-distribution")
@require_auth
@require_permission(Permission.VIEW_REPORTS)
def category_distribution_route():
    try:
        return reporting_service.category_distribution(get_repository(), shop_id=g.shop_id)
    except HANDLED_ERRORS as e:
        return error_response(e)
