# Overview: Flask API routes for price profiles; COST lists are admin only, SALE lists may be seller-scoped.

from flask import Blueprint, request, g

from ..services import price_profile_service
from ..validation import parse_price_profile, parse_enabled_flag
from ..errors import ChaflowError, error_response
from ..decorators import require_auth, require_admin


price_profiles_bp = Blueprint("price_profiles", __name__, url_prefix="/api/price-profiles")


@price_profiles_bp.get("")
@require_auth
def list_price_profiles_route():
    profiles = price_profile_service.list_price_profiles(
        g.current_seller,
        profile_type=request.args.get("type"),
        status=request.args.get("status"),
        seller_id=request.args.get("seller_id", type=int),
    )
    include_items = request.args.get("include_items", "false").lower() == "true"
    return {
        "items": [p.to_dict(include_items=include_items) for p in profiles],
        "count": len(profiles),
    }


@price_profiles_bp.get("/current")
@require_auth
def current_profiles_route():
    """Profiles that would price a new order placed by the caller."""
    seller = g.current_seller
    cost = price_profile_service.current_cost_profile() if seller.is_admin else None
    sale = price_profile_service.current_sale_profile(seller.id)
    return {
        "cost": cost.to_dict() if cost else None,
        "sale": sale.to_dict() if sale else None,
    }


@price_profiles_bp.post("")
@require_auth
def create_price_profile_route():
    try:
        command = parse_price_profile(request.get_json(silent=True))
        profile = price_profile_service.create_price_profile(g.current_seller, command)
    except ChaflowError as e:
        return error_response(e)
    return profile.to_dict(), 201


@price_profiles_bp.get("/<int:profile_id>")
@require_auth
def get_price_profile_route(profile_id: int):
    try:
        profile = price_profile_service.get_price_profile(g.current_seller, profile_id)
    except ChaflowError as e:
        return error_response(e)
    return profile.to_dict()


@price_profiles_bp.put("/<int:profile_id>")
@require_auth
def update_price_profile_route(profile_id: int):
    try:
        existing = price_profile_service.get_price_profile(g.current_seller, profile_id)
        command = parse_price_profile(request.get_json(silent=True), profile_type=existing.type)
        profile = price_profile_service.update_price_profile(g.current_seller, profile_id, command)
    except ChaflowError as e:
        return error_response(e)
    return profile.to_dict()


@price_profiles_bp.post("/<int:profile_id>/status")
@require_auth
def set_price_profile_status_route(profile_id: int):
    try:
        active = parse_enabled_flag(request.get_json(silent=True))
        profile = price_profile_service.set_price_profile_active(g.current_seller, profile_id, active)
    except ChaflowError as e:
        return error_response(e)
    return profile.to_dict()


@price_profiles_bp.post("/<int:profile_id>/clone")
@require_auth
def clone_price_profile_route(profile_id: int):
    try:
        profile = price_profile_service.clone_price_profile(g.current_seller, profile_id)
    except ChaflowError as e:
        return error_response(e)
    return profile.to_dict(), 201


@price_profiles_bp.post("/seed")
@require_auth
@require_admin
def seed_catalog_route():
    """Create the starter products and default COST/SALE profiles if missing."""
    try:
        result = price_profile_service.seed_initial_catalog(g.current_seller)
    except ChaflowError as e:
        return error_response(e)
    return result, 201
