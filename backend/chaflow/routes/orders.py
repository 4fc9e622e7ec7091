# Overview: Flask API routes for orders operations; creation, status axes, approval and discounts.

# backend/chaflow/routes/orders.py
"""
Order routes.

Sellers create orders and request discounts on their own orders. Status
updates, approval decisions and discount decisions are admin only; the
services enforce this as well.
"""

from flask import Blueprint, request, g

from ..services import order_service
from ..validation import (
    parse_create_order,
    parse_status_update,
    parse_approval_decision,
    parse_discount_request,
    parse_discount_review,
)
from ..errors import ChaflowError, error_response
from ..decorators import require_auth, require_admin


orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")

LIST_FILTERS = (
    "fulfillment_status",
    "supplier_payment_status",
    "collection_status",
    "approval_status",
    "discount_status",
    "seller_id",
    "customer_id",
    "year",
    "month",
    "day",
    "search",
)


@orders_bp.get("")
@require_auth
def list_orders_route():
    filters = {key: request.args.get(key) for key in LIST_FILTERS if request.args.get(key)}
    try:
        orders = order_service.list_orders(g.current_seller, filters)
    except ChaflowError as e:
        return error_response(e)
    except ValueError:
        return {"error": "Invalid filter value"}, 400
    return {"items": [o.to_dict(include_lines=False) for o in orders], "count": len(orders)}


@orders_bp.post("")
@require_auth
def create_order_route():
    """
    Create an order priced from the current cost profile and the caller's
    applicable sale profile (or an explicit sale_profile_id).

    Body: {customer_id, delivery_date, lines: [{product_id, weight_kg}],
           sale_profile_id?, discount_percent?, discount_reason?}
    """
    try:
        command = parse_create_order(request.get_json(silent=True))
        order = order_service.create_order(g.current_seller, command)
    except ChaflowError as e:
        return error_response(e)
    return order.to_dict(), 201


@orders_bp.get("/<int:order_id>")
@require_auth
def get_order_route(order_id: int):
    try:
        order = order_service.get_order(g.current_seller, order_id)
    except ChaflowError as e:
        return error_response(e)
    return order.to_dict()


@orders_bp.post("/<int:order_id>/statuses")
@require_auth
@require_admin
def update_statuses_route(order_id: int):
    try:
        command = parse_status_update(request.get_json(silent=True))
        order = order_service.update_order_statuses(g.current_seller, order_id, command)
    except ChaflowError as e:
        return error_response(e)
    return order.to_dict()


@orders_bp.post("/<int:order_id>/approval")
@require_auth
@require_admin
def review_approval_route(order_id: int):
    try:
        command = parse_approval_decision(request.get_json(silent=True))
        order = order_service.review_order_approval(g.current_seller, order_id, command)
    except ChaflowError as e:
        return error_response(e)
    return order.to_dict()


@orders_bp.post("/<int:order_id>/discount-request")
@require_auth
def request_discount_route(order_id: int):
    try:
        command = parse_discount_request(request.get_json(silent=True))
        order = order_service.request_discount(g.current_seller, order_id, command)
    except ChaflowError as e:
        return error_response(e)
    return order.to_dict()


@orders_bp.post("/<int:order_id>/discount-review")
@require_auth
@require_admin
def review_discount_route(order_id: int):
    try:
        command = parse_discount_review(request.get_json(silent=True))
        order = order_service.review_discount(g.current_seller, order_id, command)
    except ChaflowError as e:
        return error_response(e)
    return order.to_dict()
