# Overview: Flask API routes for read-only reports.

from flask import Blueprint, request, jsonify

from ..services import reporting_service
from ..decorators import require_auth
from shopstock.time_utils import parse_date_bound

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/low-stock")
@require_auth
def low_stock_route():
    return jsonify(reporting_service.low_stock_report())


@reports_bp.get("/low-stock/by-supplier")
@require_auth
def low_stock_by_supplier_route():
    return jsonify(reporting_service.low_stock_by_supplier())


@reports_bp.get("/valuation")
@require_auth
def valuation_route():
    return reporting_service.inventory_valuation()


@reports_bp.get("/sales-history")
@require_auth
def sales_history_route():
    limit = min(request.args.get("limit", default=50, type=int), 500)
    return jsonify(reporting_service.sales_history(limit))


@reports_bp.get("/profit-and-loss")
@require_auth
def profit_and_loss_route():
    """
    Query params:
    - from: YYYY-MM-DD or ISO timestamp (inclusive)
    - to: YYYY-MM-DD (whole day included) or ISO timestamp
    """
    try:
        date_from = parse_date_bound(request.args.get("from"))
        date_to = parse_date_bound(request.args.get("to"), end_of_day=True)
    except ValueError:
        return {"error": "Invalid date (use YYYY-MM-DD or ISO-8601)"}, 400

    if date_from and date_to and date_from > date_to:
        return {"error": "from must be on or before to"}, 400

    return reporting_service.profit_and_loss(date_from, date_to)


@reports_bp.get("/top-sellers")
@require_auth
def top_sellers_route():
    limit = min(request.args.get("limit", default=10, type=int), 100)
    return jsonify(reporting_service.top_sellers(limit))
