# Overview: Flask API routes for reports; dashboard and seller analytics.

from flask import Blueprint, request, g

from ..services import reporting_service
from ..errors import ChaflowError, error_response
from ..decorators import require_auth, require_admin


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@require_auth
@require_admin
def dashboard_route():
    return reporting_service.dashboard_stats()


@reports_bp.get("/sellers")
@require_auth
@require_admin
def seller_performance_route():
    rows = reporting_service.seller_performance()
    return {"items": rows, "count": len(rows)}


@reports_bp.get("/sellers/<int:seller_id>/trend")
@require_auth
def seller_trend_route(seller_id: int):
    """
    Query params: granularity (DAILY | MONTHLY | YEARLY), start_date,
    end_date (DAILY), year (MONTHLY). Sellers may only read their own trend.
    """
    seller = g.current_seller
    if not seller.is_admin and seller.id != seller_id:
        return {"error": "Administrator access required"}, 403

    try:
        data = reporting_service.seller_trend(
            seller_id,
            request.args.get("granularity", "DAILY"),
            start_date=request.args.get("start_date"),
            end_date=request.args.get("end_date"),
            year=request.args.get("year"),
        )
    except ChaflowError as e:
        return error_response(e)
    return data


@reports_bp.get("/sellers/<int:seller_id>/top-products")
@require_auth
def seller_top_products_route(seller_id: int):
    seller = g.current_seller
    if not seller.is_admin and seller.id != seller_id:
        return {"error": "Administrator access required"}, 403
    limit = min(max(request.args.get("limit", 5, type=int), 1), 50)
    return {"items": reporting_service.seller_top_products(seller_id, limit=limit)}
