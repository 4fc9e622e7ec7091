# Overview: Service-layer operations for orders; pricing snapshots, approval and discount workflow, status axes.

"""
Order Lifecycle Engine

An order is priced once, at creation, from a cost profile and a sale
profile. Every line keeps its own copy of the prices (cost, base sale and
post-discount sale), and order totals are always the exact sum of the line
values. Later edits to price profiles never touch existing orders.

Every new order starts as:
    fulfillment PENDING_APPROVAL / supplier UNPAID_SUPPLIER / collection UNPAID
    approval PENDING / discount NONE (or PENDING when requested with the cart)

Admin decisions (review_order_approval) move it to CONFIRMED or CANCELED.
Supplier payment and collection move independently at any time.
"""

from __future__ import annotations

import math
import random
import time
from dataclasses import dataclass
from datetime import date, datetime

from flask import current_app

from ..extensions import db
from ..models import Order, OrderLine, Customer, Product, PriceProfile, Seller
from ..constants import (
    PRICE_PROFILE_SALE,
    PENDING_APPROVAL,
    CONFIRMED,
    DELIVERED,
    CANCELED,
    UNPAID_SUPPLIER,
    UNPAID,
    APPROVAL_PENDING,
    APPROVAL_APPROVED,
    APPROVAL_REJECTED,
    DISCOUNT_NONE,
    DISCOUNT_PENDING,
    DISCOUNT_APPROVED,
    DISCOUNT_REJECTED,
    APPROVE_ORDER,
    APPROVE_WITH_DISCOUNT,
    APPROVE_WITHOUT_DISCOUNT,
    REJECT_ORDER,
    MIN_LINE_WEIGHT_KG,
)
from ..errors import (
    ConflictError,
    ForbiddenError,
    NoActivePriceProfileError,
    NotFoundError,
    ProductNotPricedError,
    ValidationError,
)
from ..validation import (
    ApprovalDecisionCommand,
    CreateOrderCommand,
    DiscountRequestCommand,
    DiscountReviewCommand,
    OrderLineInput,
    StatusUpdateCommand,
)
from . import customer_service
from .concurrency import insert_with_unique_retry
from .price_profile_service import current_cost_profile, current_sale_profile
from chaflow.time_utils import utcnow


CODE_PREFIX = "DH"
CODE_ATTEMPTS = 5
INSERT_ATTEMPTS = 3


@dataclass(frozen=True)
class PricingSnapshot:
    """Frozen copy of a price profile used to price one order."""
    profile_id: int
    profile_name: str
    effective_from: datetime
    prices: dict[int, float]
    is_global: bool = True

    @classmethod
    def from_profile(cls, profile: PriceProfile) -> "PricingSnapshot":
        return cls(
            profile_id=profile.id,
            profile_name=profile.name,
            effective_from=profile.effective_from,
            prices=profile.price_map(),
            is_global=profile.is_global,
        )


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero (amounts are >= 0)."""
    return int(math.floor(value + 0.5))


def _money(value: float) -> float:
    return round(value, 2)


# ---------------------------------------------------------------------------
# Codes
# ---------------------------------------------------------------------------

def generate_order_code(now: datetime | None = None) -> str:
    """
    DH-YYYYMMDD-NNNN with a random 4-digit suffix, checked against existing
    codes up to 5 times, then DH-YYYYMMDD-<last 6 digits of epoch millis>.

    The unique constraint on orders.code stays the final arbiter; create
    retries with a fresh code if an insert still collides.
    """
    now = now or utcnow()
    day = now.strftime("%Y%m%d")

    for _ in range(CODE_ATTEMPTS):
        code = f"{CODE_PREFIX}-{day}-{random.randint(1000, 9999)}"
        if not db.session.query(Order.id).filter_by(code=code).first():
            return code

    millis = str(int(time.time() * 1000))
    return f"{CODE_PREFIX}-{day}-{millis[-6:]}"


# ---------------------------------------------------------------------------
# Access
# ---------------------------------------------------------------------------

def _require_admin(actor: Seller) -> None:
    if not actor.is_admin:
        raise ForbiddenError("Administrator access required")


def get_order(actor: Seller, order_id: int) -> Order:
    """Sellers only see their own orders; anything else is reported as missing."""
    order = db.session.get(Order, order_id)
    if not order or (not actor.is_admin and order.seller_id != actor.id):
        raise NotFoundError("Order not found")
    return order


def list_orders(actor: Seller, filters: dict | None = None) -> list[Order]:
    """
    Filter keys: fulfillment_status, supplier_payment_status,
    collection_status, approval_status, discount_status, seller_id (admin
    only), customer_id, year / month / day (on delivery_date), search.
    """
    filters = filters or {}
    query = db.session.query(Order)

    if not actor.is_admin:
        query = query.filter(Order.seller_id == actor.id)
    elif filters.get("seller_id"):
        query = query.filter(Order.seller_id == int(filters["seller_id"]))

    for key, column in (
        ("fulfillment_status", Order.fulfillment_status),
        ("supplier_payment_status", Order.supplier_payment_status),
        ("collection_status", Order.collection_status),
        ("approval_status", Order.approval_status),
        ("discount_status", Order.discount_status),
    ):
        if filters.get(key):
            query = query.filter(column == filters[key])

    if filters.get("customer_id"):
        query = query.filter(Order.customer_id == int(filters["customer_id"]))

    start, end = _delivery_window(filters.get("year"), filters.get("month"), filters.get("day"))
    if start:
        query = query.filter(Order.delivery_date >= start, Order.delivery_date < end)

    search = (filters.get("search") or "").strip()
    if search:
        like = f"%{search}%"
        query = query.filter(db.or_(
            Order.code.ilike(like),
            Order.customer_name.ilike(like),
            Order.buyer_name.ilike(like),
            Order.seller_name.ilike(like),
        ))

    return query.order_by(Order.created_at.desc(), Order.id.desc()).all()


def _delivery_window(year, month, day) -> tuple[date | None, date | None]:
    if not year:
        return None, None
    try:
        year = int(year)
        if month and day:
            start = date(year, int(month), int(day))
            return start, date.fromordinal(start.toordinal() + 1)
        if month:
            month = int(month)
            start = date(year, month, 1)
            end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
            return start, end
        return date(year, 1, 1), date(year + 1, 1, 1)
    except (TypeError, ValueError):
        raise ValidationError("Invalid delivery date filter")


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------

def merge_lines(lines: tuple[OrderLineInput, ...] | list[OrderLineInput]) -> list[tuple[int, float]]:
    """
    Collapse duplicate products (summing weights) and round weights to 3
    decimals, preserving first-seen order.

    Each submitted line must weigh at least MIN_LINE_WEIGHT_KG on its own.
    """
    if not lines:
        raise ValidationError("Order must contain at least one line")

    merged: dict[int, float] = {}
    for line in lines:
        weight = round(float(line.weight_kg), 3)
        if weight < MIN_LINE_WEIGHT_KG:
            raise ValidationError(f"Weight must be at least {MIN_LINE_WEIGHT_KG} kg")
        merged[line.product_id] = merged.get(line.product_id, 0.0) + weight

    return [(product_id, round(weight, 3)) for product_id, weight in merged.items()]


def _resolve_sale_profile(actor: Seller, sale_profile_id: int | None) -> PriceProfile:
    if sale_profile_id is None:
        profile = current_sale_profile(actor.id)
        if not profile:
            raise NoActivePriceProfileError("No active sale price profile")
        return profile

    profile = db.session.get(PriceProfile, sale_profile_id)
    usable = (
        profile is not None
        and profile.type == PRICE_PROFILE_SALE
        and profile.is_active
        and (actor.is_admin or profile.seller_id in (None, actor.id))
    )
    if not usable:
        raise NoActivePriceProfileError("Sale price profile not found or inactive")
    return profile


def _build_lines(
    merged: list[tuple[int, float]],
    cost: PricingSnapshot,
    sale: PricingSnapshot,
) -> list[dict]:
    product_ids = [product_id for product_id, _ in merged]
    products = {
        p.id: p for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }

    rows = []
    for position, (product_id, weight) in enumerate(merged):
        product = products.get(product_id)
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        if not product.is_active:
            raise ValidationError(f"Product '{product.name}' is inactive")
        if product_id not in cost.prices:
            raise ProductNotPricedError(f"'{product.name}' has no price in cost profile '{cost.profile_name}'")
        if product_id not in sale.prices:
            raise ProductNotPricedError(f"'{product.name}' has no price in sale profile '{sale.profile_name}'")

        cost_price = float(cost.prices[product_id])
        sale_price = float(sale.prices[product_id])
        line_cost = _money(weight * cost_price)
        line_sale = _money(weight * sale_price)

        rows.append({
            "position": position,
            "product_id": product.id,
            "product_name": product.name,
            "weight_kg": weight,
            "cost_price_per_kg": cost_price,
            "sale_price_per_kg": sale_price,
            "base_sale_price_per_kg": sale_price,
            "line_cost_total": line_cost,
            "base_line_sale_total": line_sale,
            "line_sale_total": line_sale,
            "line_profit": _money(line_sale - line_cost),
        })
    return rows


def _recompute_totals(order: Order) -> None:
    order.total_weight_kg = round(sum(line.weight_kg for line in order.lines), 3)
    order.total_cost_amount = _money(sum(line.line_cost_total for line in order.lines))
    order.base_sale_amount = _money(sum(line.base_line_sale_total for line in order.lines))
    order.total_sale_amount = _money(sum(line.line_sale_total for line in order.lines))
    order.total_profit_amount = _money(sum(line.line_profit for line in order.lines))


def _discount_amounts(base_sale_amount: float, percent: float) -> tuple[float, float]:
    """Returns (requested_sale_amount, requested_amount)."""
    if base_sale_amount <= 0:
        raise ValidationError("Order has no sale amount to discount")
    requested_sale = float(max(0, round_half_up(base_sale_amount * (1 - percent / 100.0))))
    # Rounding a fractional base up must never price above it
    requested_sale = min(requested_sale, base_sale_amount)
    return requested_sale, max(0.0, _money(base_sale_amount - requested_sale))


def _open_discount_request(order: Order, actor: Seller, percent: float, reason: str, now: datetime) -> None:
    requested_sale, requested_amount = _discount_amounts(order.base_sale_amount, percent)
    order.discount_status = DISCOUNT_PENDING
    order.discount_requested_percent = percent
    order.discount_requested_sale_amount = requested_sale
    order.discount_requested_amount = requested_amount
    order.discount_reason = reason
    order.discount_requested_at = now
    order.discount_requested_by_id = actor.id
    order.discount_reviewed_at = None
    order.discount_reviewed_by_id = None
    order.discount_reviewed_by_name = None
    order.discount_review_note = None


def place_order(
    *,
    seller: Seller,
    customer: Customer,
    lines: tuple[OrderLineInput, ...] | list[OrderLineInput],
    delivery_date: date,
    cost: PricingSnapshot,
    sale: PricingSnapshot,
    discount_percent: float | None = None,
    discount_reason: str | None = None,
    requested_by: Seller | None = None,
) -> Order:
    """
    Price and persist an order from already-resolved profile snapshots.

    Nothing is written unless every line prices successfully. The customer
    aggregates are bumped afterwards in a separate, best-effort commit.
    """
    rows = _build_lines(merge_lines(lines), cost, sale)

    seller_id, seller_name = seller.id, seller.name
    customer_id, customer_name = customer.id, customer.name
    requester = requested_by or seller

    def build() -> Order:
        now = utcnow()
        order = Order(
            code=generate_order_code(now),
            customer_id=customer_id,
            customer_name=customer_name,
            buyer_name=customer_name,
            seller_id=seller_id,
            seller_name=seller_name,
            delivery_date=delivery_date,
            cost_profile_id=cost.profile_id,
            cost_profile_name=cost.profile_name,
            cost_profile_effective_from=cost.effective_from,
            sale_profile_id=sale.profile_id,
            sale_profile_name=sale.profile_name,
            sale_profile_effective_from=sale.effective_from,
            sale_profile_is_global=sale.is_global,
            fulfillment_status=PENDING_APPROVAL,
            supplier_payment_status=UNPAID_SUPPLIER,
            collection_status=UNPAID,
            requires_admin_approval=True,
            approval_status=APPROVAL_PENDING,
            approval_requested_at=now,
            discount_status=DISCOUNT_NONE,
            created_at=now,
            updated_at=now,
        )
        order.lines = [OrderLine(**row) for row in rows]
        _recompute_totals(order)
        if discount_percent:
            _open_discount_request(order, requester, discount_percent, discount_reason or "", now)
        return order

    order = insert_with_unique_retry(build, attempts=INSERT_ATTEMPTS)

    customer_service.record_order(customer_id, order.total_sale_amount)

    current_app.logger.info(
        "Order %s created by seller %s (sale %.2f, profit %.2f)",
        order.code, seller_id, order.total_sale_amount, order.total_profit_amount,
    )
    return order


def create_order(actor: Seller, command: CreateOrderCommand) -> Order:
    """
    Create an order for the acting seller.

    Raises NotFoundError (customer / product), NoActivePriceProfileError,
    ProductNotPricedError, ValidationError (weights) or ForbiddenError (a
    seller requesting a discount on a seller-scoped sale profile).
    """
    customer = db.session.get(Customer, command.customer_id)
    if not customer or not customer.is_active:
        raise NotFoundError("Customer not found")

    cost_profile = current_cost_profile()
    if not cost_profile:
        raise NoActivePriceProfileError("No active cost price profile")
    sale_profile = _resolve_sale_profile(actor, command.sale_profile_id)

    sale = PricingSnapshot.from_profile(sale_profile)
    if command.discount_percent and not actor.is_admin and not sale.is_global:
        raise ForbiddenError("Discounts can only be requested on orders priced with a system sale profile")

    return place_order(
        seller=actor,
        customer=customer,
        lines=command.lines,
        delivery_date=command.delivery_date,
        cost=PricingSnapshot.from_profile(cost_profile),
        sale=sale,
        discount_percent=command.discount_percent,
        discount_reason=command.discount_reason,
    )


# ---------------------------------------------------------------------------
# Discount maths
# ---------------------------------------------------------------------------

def _apply_approved_discount(order: Order) -> None:
    """Scale every line's sale values by requested_sale_amount / base_sale_amount."""
    ratio = (order.discount_requested_sale_amount or 0) / order.base_sale_amount if order.base_sale_amount else 0
    ratio = min(ratio, 1.0)
    for line in order.lines:
        line.sale_price_per_kg = float(min(round_half_up(line.base_sale_price_per_kg * ratio), line.base_sale_price_per_kg))
        line.line_sale_total = float(min(round_half_up(line.base_line_sale_total * ratio), line.base_line_sale_total))
        line.line_profit = _money(line.line_sale_total - line.line_cost_total)
    _recompute_totals(order)


def _restore_base_prices(order: Order) -> None:
    for line in order.lines:
        line.sale_price_per_kg = line.base_sale_price_per_kg
        line.line_sale_total = line.base_line_sale_total
        line.line_profit = _money(line.line_sale_total - line.line_cost_total)
    _recompute_totals(order)


def _close_discount(order: Order, actor: Seller, status: str, note: str | None, now: datetime) -> None:
    if status == DISCOUNT_APPROVED:
        _apply_approved_discount(order)
    else:
        _restore_base_prices(order)
    order.discount_status = status
    order.discount_reviewed_at = now
    order.discount_reviewed_by_id = actor.id
    order.discount_reviewed_by_name = actor.name
    order.discount_review_note = note


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def update_order_statuses(actor: Seller, order_id: int, command: StatusUpdateCommand) -> Order:
    """
    Admin-only update of the three status axes.

    Fulfillment: PENDING_APPROVAL can never be set; while an order awaits
    approval only CANCELED may be set; a DELIVERED order cannot be
    CANCELED. Supplier payment and collection are free-form.
    """
    _require_admin(actor)
    order = get_order(actor, order_id)
    now = utcnow()

    target = command.fulfillment_status
    if target is not None and target != order.fulfillment_status:
        if target == PENDING_APPROVAL:
            raise ValidationError("PENDING_APPROVAL cannot be set manually")
        if order.fulfillment_status == PENDING_APPROVAL and target != CANCELED:
            raise ConflictError("Order is awaiting approval; review it first")
        if target == CANCELED and order.fulfillment_status == DELIVERED:
            raise ConflictError("A delivered order cannot be canceled")

        if order.fulfillment_status == PENDING_APPROVAL and target == CANCELED:
            order.approval_status = APPROVAL_REJECTED
            order.approval_reviewed_at = now
            order.approval_reviewed_by_id = actor.id
            order.approval_reviewed_by_name = actor.name
            if order.discount_status == DISCOUNT_PENDING:
                _close_discount(order, actor, DISCOUNT_REJECTED, None, now)

        order.fulfillment_status = target

    if command.supplier_payment_status is not None:
        order.supplier_payment_status = command.supplier_payment_status
    if command.collection_status is not None:
        order.collection_status = command.collection_status

    order.updated_at = now
    db.session.commit()
    current_app.logger.info(
        "Order %s statuses -> %s / %s / %s by %s",
        order.code, order.fulfillment_status, order.supplier_payment_status, order.collection_status, actor.id,
    )
    return order


def review_order_approval(actor: Seller, order_id: int, command: ApprovalDecisionCommand) -> Order:
    """
    Admin decision on an order awaiting approval.

    APPROVE_ORDER needs no pending discount. APPROVE_WITH_DISCOUNT and
    APPROVE_WITHOUT_DISCOUNT need one and approve/reject it. All three
    confirm the order. REJECT_ORDER cancels it and rejects any pending
    discount.
    """
    _require_admin(actor)
    order = get_order(actor, order_id)

    if order.fulfillment_status != PENDING_APPROVAL or order.approval_status != APPROVAL_PENDING:
        raise ConflictError("Order is not awaiting approval")

    decision = command.decision
    has_pending_discount = order.discount_status == DISCOUNT_PENDING
    now = utcnow()

    if decision == APPROVE_ORDER:
        if has_pending_discount:
            raise ConflictError("Order has a pending discount request; approve with or without the discount")
        order.approval_status = APPROVAL_APPROVED
        order.fulfillment_status = CONFIRMED
    elif decision in (APPROVE_WITH_DISCOUNT, APPROVE_WITHOUT_DISCOUNT):
        if not has_pending_discount:
            raise ConflictError("Order has no pending discount request")
        status = DISCOUNT_APPROVED if decision == APPROVE_WITH_DISCOUNT else DISCOUNT_REJECTED
        _close_discount(order, actor, status, command.note, now)
        order.approval_status = APPROVAL_APPROVED
        order.fulfillment_status = CONFIRMED
    elif decision == REJECT_ORDER:
        if has_pending_discount:
            _close_discount(order, actor, DISCOUNT_REJECTED, command.note, now)
        order.approval_status = APPROVAL_REJECTED
        order.fulfillment_status = CANCELED
    else:
        raise ValidationError(f"Unknown decision: {decision}")

    order.approval_reviewed_at = now
    order.approval_reviewed_by_id = actor.id
    order.approval_reviewed_by_name = actor.name
    order.approval_note = command.note
    order.updated_at = now
    db.session.commit()

    current_app.logger.info("Order %s reviewed by %s: %s", order.code, actor.id, decision)
    return order


def request_discount(actor: Seller, order_id: int, command: DiscountRequestCommand) -> Order:
    """
    Open a discount request (NONE or REJECTED -> PENDING).

    Allowed for the order's seller or an admin, on an order that is neither
    canceled nor delivered. Sellers may only discount orders priced with a
    global (system) sale profile.
    """
    order = get_order(actor, order_id)

    if order.discount_status not in (DISCOUNT_NONE, DISCOUNT_REJECTED):
        raise ConflictError("A discount has already been requested for this order")
    if order.fulfillment_status in (CANCELED, DELIVERED):
        raise ConflictError(f"Cannot request a discount on a {order.fulfillment_status.lower()} order")
    if not actor.is_admin and not order.sale_profile_is_global:
        raise ForbiddenError("Discounts can only be requested on orders priced with a system sale profile")

    now = utcnow()
    _open_discount_request(order, actor, command.percent, command.reason, now)
    order.updated_at = now
    db.session.commit()

    current_app.logger.info(
        "Discount of %.2f%% requested on order %s by %s", command.percent, order.code, actor.id
    )
    return order


def review_discount(actor: Seller, order_id: int, command: DiscountReviewCommand) -> Order:
    """
    Admin decision on a pending discount.

    Approving rewrites line sale values from the base values scaled by
    requested_sale_amount / base_sale_amount; rejecting restores them.
    """
    _require_admin(actor)
    order = get_order(actor, order_id)

    if order.discount_status != DISCOUNT_PENDING:
        raise ConflictError("Order has no pending discount request")

    now = utcnow()
    status = DISCOUNT_APPROVED if command.approve else DISCOUNT_REJECTED
    _close_discount(order, actor, status, command.note, now)
    order.updated_at = now
    db.session.commit()

    current_app.logger.info("Discount on order %s %s by %s", order.code, status.lower(), actor.id)
    return order
