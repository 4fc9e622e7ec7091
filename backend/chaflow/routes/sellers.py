# Overview: Flask API routes for seller administration; admin only.

from flask import Blueprint, request, g

from ..services import seller_service
from ..errors import ChaflowError, error_response
from ..validation import parse_enabled_flag
from ..decorators import require_auth, require_admin


sellers_bp = Blueprint("sellers", __name__, url_prefix="/api/sellers")


@sellers_bp.get("")
@require_auth
@require_admin
def list_sellers_route():
    include_disabled = request.args.get("include_disabled", "true").lower() != "false"
    sellers = seller_service.list_sellers(g.current_seller, include_disabled=include_disabled)
    return {"items": [s.to_dict() for s in sellers], "count": len(sellers)}


@sellers_bp.post("")
@require_auth
@require_admin
def create_seller_route():
    data = request.get_json(silent=True) or {}
    try:
        seller = seller_service.create_seller(
            g.current_seller,
            name=data.get("name"),
            email=data.get("email"),
            password=data.get("password"),
            role=data.get("role"),
        )
    except ChaflowError as e:
        return error_response(e)
    return seller.to_dict(), 201


@sellers_bp.put("/<int:seller_id>")
@require_auth
@require_admin
def update_seller_route(seller_id: int):
    data = request.get_json(silent=True) or {}
    try:
        seller = seller_service.update_seller(
            g.current_seller,
            seller_id,
            name=data.get("name"),
            email=data.get("email"),
            role=data.get("role"),
            password=data.get("password") or None,
        )
    except ChaflowError as e:
        return error_response(e)
    return seller.to_dict()


@sellers_bp.post("/<int:seller_id>/status")
@require_auth
@require_admin
def set_seller_status_route(seller_id: int):
    try:
        enabled = parse_enabled_flag(request.get_json(silent=True), key="is_enabled")
        seller = seller_service.set_seller_enabled(g.current_seller, seller_id, enabled)
    except ChaflowError as e:
        return error_response(e)
    return seller.to_dict()


@sellers_bp.post("/<int:seller_id>/reset-password")
@require_auth
@require_admin
def reset_seller_password_route(seller_id: int):
    data = request.get_json(silent=True) or {}
    try:
        seller = seller_service.reset_seller_password(g.current_seller, seller_id, data.get("password"))
    except ChaflowError as e:
        return error_response(e)
    return seller.to_dict()
