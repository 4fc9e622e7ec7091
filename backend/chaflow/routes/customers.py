# Overview: Flask API routes for customers operations; parses input and returns JSON responses.

from flask import Blueprint, request

from ..services import customer_service
from ..validation import parse_enabled_flag
from ..errors import ChaflowError, error_response
from ..decorators import require_auth


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
def list_customers_route():
    customers = customer_service.list_customers(
        status=request.args.get("status"),
        search=request.args.get("search"),
    )
    return {"items": [c.to_dict() for c in customers], "count": len(customers)}


@customers_bp.post("")
@require_auth
def create_customer_route():
    try:
        customer = customer_service.create_customer(request.get_json(silent=True) or {})
    except ChaflowError as e:
        return error_response(e)
    return customer.to_dict(), 201


@customers_bp.get("/<int:customer_id>")
@require_auth
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(customer_id)
    except ChaflowError as e:
        return error_response(e)
    return customer.to_dict()


@customers_bp.put("/<int:customer_id>")
@require_auth
def update_customer_route(customer_id: int):
    try:
        customer = customer_service.update_customer(customer_id, request.get_json(silent=True) or {})
    except ChaflowError as e:
        return error_response(e)
    return customer.to_dict()


@customers_bp.post("/<int:customer_id>/status")
@require_auth
def set_customer_status_route(customer_id: int):
    try:
        active = parse_enabled_flag(request.get_json(silent=True))
        customer = customer_service.set_customer_active(customer_id, active)
    except ChaflowError as e:
        return error_response(e)
    return customer.to_dict()
