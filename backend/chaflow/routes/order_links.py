# Overview: Flask API routes for customer order links, including the unauthenticated public flow.

from flask import Blueprint, request, g

from ..services import order_link_service
from ..validation import parse_order_link, parse_public_order, parse_enabled_flag
from ..errors import ChaflowError, error_response
from ..decorators import require_auth


order_links_bp = Blueprint("order_links", __name__, url_prefix="/api/order-links")
public_links_bp = Blueprint("public_links", __name__, url_prefix="/api/public/order-links")


@order_links_bp.get("")
@require_auth
def list_order_links_route():
    links = order_link_service.list_order_links(g.current_seller)
    return {"items": [link.to_dict(include_items=False) for link in links], "count": len(links)}


@order_links_bp.post("")
@require_auth
def create_order_link_route():
    try:
        command = parse_order_link(request.get_json(silent=True))
        link = order_link_service.create_order_link(g.current_seller, command)
    except ChaflowError as e:
        return error_response(e)
    return link.to_dict(), 201


@order_links_bp.post("/<int:link_id>/status")
@require_auth
def set_order_link_status_route(link_id: int):
    try:
        active = parse_enabled_flag(request.get_json(silent=True))
        link = order_link_service.set_order_link_active(g.current_seller, link_id, active)
    except ChaflowError as e:
        return error_response(e)
    return link.to_dict(include_items=False)


# ---------------------------------------------------------------------------
# Public (no session)
# ---------------------------------------------------------------------------

@public_links_bp.get("/<token>")
def get_public_link_route(token: str):
    try:
        link = order_link_service.get_public_link(token)
    except ChaflowError as e:
        return error_response(e)
    return {
        "seller_name": link.seller_name,
        "expires_at": link.to_dict(include_items=False)["expires_at"],
        "items": [item.to_dict() for item in link.items],
    }


@public_links_bp.post("/<token>/customer")
def start_public_customer_route(token: str):
    data = request.get_json(silent=True) or {}
    try:
        customer = order_link_service.start_public_customer(token, data.get("phone"))
    except ChaflowError as e:
        return error_response(e)
    return {"customer_id": customer.id, "name": customer.name, "phone": customer.phone}


@public_links_bp.post("/<token>/orders")
def submit_public_order_route(token: str):
    try:
        command = parse_public_order(request.get_json(silent=True))
        order = order_link_service.submit_public_order(token, command)
    except ChaflowError as e:
        return error_response(e)
    return {
        "code": order.code,
        "total_weight_kg": order.total_weight_kg,
        "total_sale_amount": order.total_sale_amount,
        "fulfillment_status": order.fulfillment_status,
    }, 201
