# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/chaflow/routes/products.py
"""
Product management routes.

SECURITY: All routes require authentication; writes require an admin.
"""
from flask import Blueprint, request

from ..services import products_service
from ..models import Product
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    parse_enabled_flag,
)
from ..errors import ChaflowError, error_response
from ..decorators import require_auth, require_admin

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "is_active"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@require_auth
def list_products():
    """
    Query params:
    - status: "active" | "inactive" (optional)
    - search: name substring (optional)
    """
    return products_service.list_products(
        status=request.args.get("status"),
        search=request.args.get("search"),
    )


@products_bp.post("")
@require_auth
@require_admin
def create_product_route():
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        created = products_service.create_product(patch)
    except ChaflowError as e:
        return error_response(e)

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
@require_auth
@require_admin
def update_product_route(product_id: int):
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        updated = products_service.update_product(product_id, patch)
    except ChaflowError as e:
        return error_response(e)

    return updated.to_dict()


@products_bp.post("/<int:product_id>/status")
@require_auth
@require_admin
def set_product_status_route(product_id: int):
    try:
        active = parse_enabled_flag(request.get_json(silent=True))
        product = products_service.set_product_active(product_id, active)
    except ChaflowError as e:
        return error_response(e)
    return product.to_dict()


@products_bp.delete("/<int:product_id>")
@require_auth
@require_admin
def delete_product_route(product_id: int):
    try:
        products_service.delete_product(product_id)
    except ChaflowError as e:
        return error_response(e)

    return {"ok": True}, 200
