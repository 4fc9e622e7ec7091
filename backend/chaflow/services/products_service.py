# backend/chaflow/services/products_service.py
"""
Products Service

Products are global (no per-seller catalog). Names are unique. A product
that appears on any order line cannot be hard-deleted; disable it instead.
"""
from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, PriceProfileItem, OrderLine
from ..errors import ConflictError, NotFoundError

PRODUCT_MUTABLE_FIELDS = {"name", "description", "is_active"}


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _ensure_unique_name(name: str, exclude_id: int | None = None) -> None:
    query = db.session.query(Product).filter(Product.name == name)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"A product named '{name}' already exists")


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFoundError("Product not found")
    return product


def list_products(status: str | None = None, search: str | None = None) -> dict:
    """
    List products.

    status: "active" | "inactive" | None (all)
    search: case-insensitive substring of the name
    """
    query = db.session.query(Product)
    if status == "active":
        query = query.filter(Product.is_active.is_(True))
    elif status == "inactive":
        query = query.filter(Product.is_active.is_(False))
    if search:
        query = query.filter(Product.name.ilike(f"%{search.strip()}%"))

    items = [p.to_dict() for p in query.order_by(Product.name.asc()).all()]
    return {"items": items, "count": len(items)}


def create_product(patch: dict) -> Product:
    _ensure_unique_name(patch["name"])

    product = Product(unit="kg", is_active=True)
    apply_product_patch(product, patch)
    db.session.add(product)
    db.session.commit()
    current_app.logger.info("Product %s created", product.id)
    return product


def update_product(product_id: int, patch: dict) -> Product:
    product = get_product(product_id)
    if "name" in patch:
        _ensure_unique_name(patch["name"], exclude_id=product.id)

    apply_product_patch(product, patch)

    if "name" in patch:
        # Keep denormalized names on price lists in step; orders keep their snapshot
        db.session.query(PriceProfileItem).filter_by(product_id=product.id).update(
            {"product_name": product.name}
        )

    db.session.commit()
    return product


def set_product_active(product_id: int, active: bool) -> Product:
    product = get_product(product_id)
    product.is_active = bool(active)
    db.session.commit()
    return product


def delete_product(product_id: int) -> None:
    product = get_product(product_id)

    if db.session.query(OrderLine.id).filter_by(product_id=product.id).first():
        raise ConflictError("Product is referenced by orders; disable it instead")

    db.session.query(PriceProfileItem).filter_by(product_id=product.id).delete()
    db.session.delete(product)
    db.session.commit()
    current_app.logger.info("Product %s deleted", product_id)
