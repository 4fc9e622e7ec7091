from __future__ import annotations
from datetime import date, datetime
from chaflow.time_utils import parse_iso_date, parse_iso_datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Date, DateTime, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .constants import (
    APPROVAL_DECISIONS,
    COLLECTION_STATUSES,
    FULFILLMENT_STATUSES,
    MAX_DISCOUNT_PERCENT,
    PRICE_PROFILE_TYPES,
    SUPPLIER_PAYMENT_STATUSES,
)
from .errors import ValidationError


# Upper bound for any per-kg price or amount entered by hand
MAX_PRICE_PER_KG = 1_000_000_000


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    """
    writable_fields: set[str]
    required_on_create: set[str] = None  # type: ignore


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lstrip("-").isdigit():
            return int(value.strip())
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Float):
        return _as_number(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be true or false")

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, Date):
        if isinstance(value, date):
            return value
        return _as_date(value, col.key)

    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict with only writable fields.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    required = policy.required_on_create or set()
    if not partial:
        missing = sorted(f for f in required if f not in payload)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        if k not in cols:
            raise ValidationError(f"Unknown field: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)):
            if val == "":
                if not col.nullable:
                    raise ValidationError(f"{k} cannot be blank")
                val = None
            elif col.type.length and len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


# ---------------------------------------------------------------------------
# Scalar helpers
# ---------------------------------------------------------------------------

def _as_number(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a number")
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str) and value.strip():
        try:
            number = float(value.strip())
        except ValueError:
            raise ValidationError(f"{name} must be a number")
    else:
        raise ValidationError(f"{name} must be a number")
    if number != number or number in (float("inf"), float("-inf")):
        raise ValidationError(f"{name} must be a finite number")
    return number


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{name} must be an integer")


def _as_date(value: Any, name: str) -> date:
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
    try:
        parsed = parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{name} must be a date (YYYY-MM-DD)")
    if parsed is None:
        raise ValidationError(f"{name} is required")
    return parsed


def _as_text(value: Any, name: str, *, max_length: int, required: bool = False) -> str | None:
    if value is None:
        text = ""
    elif isinstance(value, str):
        text = value.strip()
    else:
        raise ValidationError(f"{name} must be a string")
    if not text:
        if required:
            raise ValidationError(f"{name} is required")
        return None
    if len(text) > max_length:
        raise ValidationError(f"{name} exceeds max length {max_length}")
    return text


def _require_dict(payload: Any) -> dict:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _choice(value: Any, name: str, choices: tuple[str, ...]) -> str:
    if value not in choices:
        raise ValidationError(f"{name} must be one of: {', '.join(choices)}")
    return value


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class OrderLineInput:
    product_id: int
    weight_kg: float


@dataclass(frozen=True)
class CreateOrderCommand:
    customer_id: int
    lines: tuple[OrderLineInput, ...]
    delivery_date: date
    sale_profile_id: int | None = None
    discount_percent: float | None = None
    discount_reason: str | None = None


def parse_order_lines(raw_lines: Any) -> tuple[OrderLineInput, ...]:
    if not isinstance(raw_lines, list) or not raw_lines:
        raise ValidationError("Order must contain at least one line")
    lines = []
    for idx, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{idx}] must be an object")
        lines.append(OrderLineInput(
            product_id=_as_int(raw.get("product_id"), f"lines[{idx}].product_id"),
            weight_kg=_as_number(raw.get("weight_kg"), f"lines[{idx}].weight_kg"),
        ))
    return tuple(lines)


def parse_create_order(payload: Any) -> CreateOrderCommand:
    data = _require_dict(payload)
    if data.get("customer_id") is None:
        raise ValidationError("customer_id is required")

    sale_profile_id = data.get("sale_profile_id")
    discount_percent = data.get("discount_percent")
    discount_reason = _as_text(data.get("discount_reason"), "discount_reason", max_length=300)

    if discount_percent in (None, "", 0):
        discount_percent = None
    else:
        discount_percent = _parse_discount_percent(discount_percent)
        if not discount_reason:
            raise ValidationError("discount_reason is required when requesting a discount")

    return CreateOrderCommand(
        customer_id=_as_int(data.get("customer_id"), "customer_id"),
        lines=parse_order_lines(data.get("lines")),
        delivery_date=_as_date(data.get("delivery_date"), "delivery_date"),
        sale_profile_id=_as_int(sale_profile_id, "sale_profile_id") if sale_profile_id not in (None, "") else None,
        discount_percent=discount_percent,
        discount_reason=discount_reason if discount_percent is not None else None,
    )


@dataclass(frozen=True)
class StatusUpdateCommand:
    fulfillment_status: str | None = None
    supplier_payment_status: str | None = None
    collection_status: str | None = None


def parse_status_update(payload: Any) -> StatusUpdateCommand:
    data = _require_dict(payload)
    fulfillment = data.get("fulfillment_status")
    supplier = data.get("supplier_payment_status")
    collection = data.get("collection_status")

    if fulfillment is None and supplier is None and collection is None:
        raise ValidationError("At least one status must be provided")

    return StatusUpdateCommand(
        fulfillment_status=_choice(fulfillment, "fulfillment_status", FULFILLMENT_STATUSES) if fulfillment is not None else None,
        supplier_payment_status=_choice(supplier, "supplier_payment_status", SUPPLIER_PAYMENT_STATUSES) if supplier is not None else None,
        collection_status=_choice(collection, "collection_status", COLLECTION_STATUSES) if collection is not None else None,
    )


@dataclass(frozen=True)
class ApprovalDecisionCommand:
    decision: str
    note: str | None = None


def parse_approval_decision(payload: Any) -> ApprovalDecisionCommand:
    data = _require_dict(payload)
    return ApprovalDecisionCommand(
        decision=_choice(data.get("decision"), "decision", APPROVAL_DECISIONS),
        note=_as_text(data.get("note"), "note", max_length=300),
    )


def _parse_discount_percent(value: Any) -> float:
    percent = round(_as_number(value, "percent"), 2)
    if percent <= 0 or percent > MAX_DISCOUNT_PERCENT:
        raise ValidationError(f"Discount percent must be greater than 0 and at most {MAX_DISCOUNT_PERCENT}")
    return percent


@dataclass(frozen=True)
class DiscountRequestCommand:
    percent: float
    reason: str


def parse_discount_request(payload: Any) -> DiscountRequestCommand:
    data = _require_dict(payload)
    return DiscountRequestCommand(
        percent=_parse_discount_percent(data.get("percent")),
        reason=_as_text(data.get("reason"), "reason", max_length=300, required=True),
    )


@dataclass(frozen=True)
class DiscountReviewCommand:
    approve: bool
    note: str | None = None


def parse_discount_review(payload: Any) -> DiscountReviewCommand:
    data = _require_dict(payload)
    approve = data.get("approve")
    if not isinstance(approve, bool):
        raise ValidationError("approve must be true or false")
    return DiscountReviewCommand(
        approve=approve,
        note=_as_text(data.get("note"), "note", max_length=300),
    )


# ---------------------------------------------------------------------------
# Price profiles
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PriceItemInput:
    product_id: int
    price_per_kg: float


@dataclass(frozen=True)
class PriceProfileCommand:
    name: str
    type: str
    items: tuple[PriceItemInput, ...]
    notes: str | None = None
    is_active: bool = True
    effective_from: datetime | None = None


def parse_price_items(raw_items: Any) -> tuple[PriceItemInput, ...]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("A price profile needs at least one item")
    items = []
    seen: set[int] = set()
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        product_id = _as_int(raw.get("product_id"), f"items[{idx}].product_id")
        price = _as_number(raw.get("price_per_kg"), f"items[{idx}].price_per_kg")
        if price < 0:
            raise ValidationError(f"items[{idx}].price_per_kg must be >= 0")
        if price > MAX_PRICE_PER_KG:
            raise ValidationError(f"items[{idx}].price_per_kg cannot exceed {MAX_PRICE_PER_KG}")
        if product_id in seen:
            raise ValidationError("Each product may appear only once in a price profile")
        seen.add(product_id)
        items.append(PriceItemInput(product_id=product_id, price_per_kg=price))
    return tuple(items)


def parse_price_profile(payload: Any, *, profile_type: str | None = None) -> PriceProfileCommand:
    """profile_type is passed on update, where the type of an existing profile is fixed."""
    data = _require_dict(payload)
    effective_raw = data.get("effective_from")
    effective_from = None
    if effective_raw not in (None, ""):
        try:
            effective_from = parse_iso_datetime(str(effective_raw))
        except ValueError:
            raise ValidationError("effective_from must be an ISO-8601 datetime")

    is_active = data.get("is_active", True)
    if not isinstance(is_active, bool):
        raise ValidationError("is_active must be true or false")

    return PriceProfileCommand(
        name=_as_text(data.get("name"), "name", max_length=140, required=True),
        type=profile_type or _choice(data.get("type"), "type", PRICE_PROFILE_TYPES),
        items=parse_price_items(data.get("items")),
        notes=_as_text(data.get("notes"), "notes", max_length=500),
        is_active=is_active,
        effective_from=effective_from,
    )


# ---------------------------------------------------------------------------
# Sellers / auth / links
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ChangePasswordCommand:
    current_password: str
    new_password: str
    confirm_password: str


def parse_change_password(payload: Any) -> ChangePasswordCommand:
    data = _require_dict(payload)
    values = {}
    for key in ("current_password", "new_password", "confirm_password"):
        value = data.get(key)
        if not isinstance(value, str) or not value:
            raise ValidationError(f"{key} is required")
        values[key] = value
    return ChangePasswordCommand(**values)


@dataclass(frozen=True)
class OrderLinkCommand:
    sale_profile_id: int
    expires_at: datetime
    seller_id: int | None = None


def parse_order_link(payload: Any) -> OrderLinkCommand:
    data = _require_dict(payload)
    raw_expires = data.get("expires_at")
    try:
        expires_at = parse_iso_datetime(raw_expires) if isinstance(raw_expires, str) else None
    except ValueError:
        expires_at = None
    if expires_at is None:
        raise ValidationError("expires_at must be an ISO-8601 datetime")
    seller_id = data.get("seller_id")
    return OrderLinkCommand(
        sale_profile_id=_as_int(data.get("sale_profile_id"), "sale_profile_id"),
        expires_at=expires_at,
        seller_id=_as_int(seller_id, "seller_id") if seller_id not in (None, "") else None,
    )


@dataclass(frozen=True)
class PublicOrderCommand:
    customer_id: int
    lines: tuple[OrderLineInput, ...]
    delivery_date: date


def parse_public_order(payload: Any) -> PublicOrderCommand:
    data = _require_dict(payload)
    if data.get("customer_id") is None:
        raise ValidationError("customer_id is required")
    return PublicOrderCommand(
        customer_id=_as_int(data.get("customer_id"), "customer_id"),
        lines=parse_order_lines(data.get("lines")),
        delivery_date=_as_date(data.get("delivery_date"), "delivery_date"),
    )


def parse_enabled_flag(payload: Any, key: str = "is_active") -> bool:
    data = _require_dict(payload)
    value = data.get(key)
    if not isinstance(value, bool):
        raise ValidationError(f"{key} must be true or false")
    return value
