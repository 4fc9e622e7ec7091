# Overview: Service-layer operations for customers; master data plus order aggregates.

from __future__ import annotations

import re

from flask import current_app

from ..extensions import db
from ..models import Customer
from ..errors import NotFoundError, ValidationError
from ..validation import ModelValidationPolicy, validate_payload
from chaflow.time_utils import utcnow

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "phone", "email", "notes", "is_active"},
    required_on_create={"name", "phone"},
)

# Plain whitespace plus zero-width characters pasted from chat apps
_PHONE_NOISE = re.compile("[\\s\\u200b\\u200c\\u200d\\ufeff]+")


def normalize_phone(value: str | None) -> str:
    return _PHONE_NOISE.sub("", value or "")


def _clean_patch(payload: dict, *, partial: bool) -> dict:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=partial)
    if "phone" in patch and patch["phone"] is not None:
        patch["phone"] = normalize_phone(patch["phone"])
        if not patch["phone"]:
            raise ValidationError("phone cannot be blank")
    if patch.get("email"):
        patch["email"] = patch["email"].lower()
        if "@" not in patch["email"]:
            raise ValidationError("email is not valid")
    return patch


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFoundError("Customer not found")
    return customer


def list_customers(status: str | None = None, search: str | None = None) -> list[Customer]:
    query = db.session.query(Customer)
    if status == "active":
        query = query.filter(Customer.is_active.is_(True))
    elif status == "inactive":
        query = query.filter(Customer.is_active.is_(False))
    if search:
        like = f"%{search.strip()}%"
        query = query.filter(db.or_(
            Customer.name.ilike(like),
            Customer.phone.ilike(like),
            Customer.email.ilike(like),
        ))
    return query.order_by(Customer.name.asc(), Customer.id.asc()).all()


def create_customer(payload: dict) -> Customer:
    patch = _clean_patch(payload, partial=False)
    customer = Customer(is_active=True)
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.add(customer)
    db.session.commit()
    current_app.logger.info("Customer %s created", customer.id)
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    customer = get_customer(customer_id)
    patch = _clean_patch(payload, partial=True)
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.commit()
    return customer


def set_customer_active(customer_id: int, active: bool) -> Customer:
    customer = get_customer(customer_id)
    customer.is_active = bool(active)
    db.session.commit()
    return customer


def find_or_create_by_phone(phone: str) -> Customer:
    """
    Newest customer with this phone, re-activated if needed, or a new one
    named "Customer <phone>".
    """
    normalized = normalize_phone(phone)
    if not normalized or len(normalized) > 24:
        raise ValidationError("A valid phone number is required")

    customer = (
        db.session.query(Customer)
        .filter(Customer.phone == normalized)
        .order_by(Customer.created_at.desc(), Customer.id.desc())
        .first()
    )
    if customer:
        if not customer.is_active:
            customer.is_active = True
            db.session.commit()
        return customer

    customer = Customer(name=f"Customer {normalized}", phone=normalized, is_active=True)
    db.session.add(customer)
    db.session.commit()
    return customer


def record_order(customer_id: int, amount: float) -> None:
    """
    Bump order aggregates after an order is created.

    Best effort: failures are logged and never undo the order.
    """
    try:
        db.session.query(Customer).filter_by(id=customer_id).update({
            "order_count": Customer.order_count + 1,
            "total_spent_amount": Customer.total_spent_amount + float(amount),
            "last_order_at": utcnow(),
        })
        db.session.commit()
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to update aggregates for customer %s", customer_id)
