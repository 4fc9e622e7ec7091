# Overview: Service-layer operations for reporting; read-only aggregates over orders and catalog.

from __future__ import annotations

from datetime import date, timedelta

from sqlalchemy import case, func

from chaflow.extensions import db
from chaflow.models import Order, OrderLine, Product, Seller
from chaflow.constants import (
    FULFILLMENT_STATUSES,
    SUPPLIER_PAYMENT_STATUSES,
    COLLECTION_STATUSES,
    APPROVAL_STATUSES,
    DISCOUNT_STATUSES,
    IN_DELIVERY_STATUSES,
    UNCOLLECTED_STATUSES,
    UNPAID_SUPPLIER,
    PENDING_APPROVAL,
    DELIVERING,
    DELIVERED,
    CANCELED,
    TREND_DAILY,
    TREND_MONTHLY,
    TREND_YEARLY,
    TREND_GRANULARITIES,
)
from chaflow.errors import NotFoundError, ValidationError
from chaflow.time_utils import month_bounds, parse_iso_date, utcnow


def _amount(value) -> float:
    return round(float(value or 0), 2)


def _count_by(column, keys: tuple[str, ...], *filters) -> dict[str, int]:
    counts = {key: 0 for key in keys}
    rows = db.session.query(column, func.count(Order.id)).filter(*filters).group_by(column).all()
    for key, count in rows:
        counts[key] = int(count)
    return counts


def dashboard_stats() -> dict:
    """
    Headline numbers for the admin dashboard.

    Every status key is present in the per-axis counts, zero-filled.
    With no orders everything is zero.
    """
    total_products = db.session.query(func.count(Product.id)).scalar() or 0
    active_products = db.session.query(func.count(Product.id)).filter(Product.is_active.is_(True)).scalar() or 0

    totals = db.session.query(
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_sale_amount), 0),
        func.coalesce(func.sum(Order.total_cost_amount), 0),
        func.coalesce(func.sum(Order.total_profit_amount), 0),
    ).one()

    fulfillment = _count_by(Order.fulfillment_status, FULFILLMENT_STATUSES)
    supplier = _count_by(Order.supplier_payment_status, SUPPLIER_PAYMENT_STATUSES)
    collection = _count_by(Order.collection_status, COLLECTION_STATUSES)

    return {
        "total_products": int(total_products),
        "active_products": int(active_products),
        "total_orders": int(totals[0]),
        "delivering_orders": sum(fulfillment[s] for s in IN_DELIVERY_STATUSES),
        "total_revenue": _amount(totals[1]),
        "total_cost": _amount(totals[2]),
        "total_profit": _amount(totals[3]),
        "unpaid_orders": supplier[UNPAID_SUPPLIER],
        "uncollected_orders": sum(collection[s] for s in UNCOLLECTED_STATUSES),
        "fulfillment_counts": fulfillment,
        "supplier_payment_counts": supplier,
        "collection_counts": collection,
        "approval_counts": _count_by(Order.approval_status, APPROVAL_STATUSES),
        "discount_counts": _count_by(Order.discount_status, DISCOUNT_STATUSES),
    }


# ---------------------------------------------------------------------------
# Seller trend
# ---------------------------------------------------------------------------

def _daily_totals(seller_id: int, start: date, end: date) -> dict[date, dict]:
    rows = db.session.query(
        Order.delivery_date,
        func.coalesce(func.sum(Order.total_sale_amount), 0),
        func.coalesce(func.sum(Order.total_cost_amount), 0),
        func.coalesce(func.sum(Order.total_profit_amount), 0),
    ).filter(
        Order.seller_id == seller_id,
        Order.delivery_date >= start,
        Order.delivery_date <= end,
    ).group_by(Order.delivery_date).all()

    return {
        day: {"revenue": _amount(revenue), "cost": _amount(cost), "profit": _amount(profit)}
        for day, revenue, cost, profit in rows
    }


def _fold(daily: dict[date, dict], key_fn) -> dict:
    buckets: dict = {}
    for day, totals in daily.items():
        bucket = buckets.setdefault(key_fn(day), {"revenue": 0.0, "cost": 0.0, "profit": 0.0})
        for field in ("revenue", "cost", "profit"):
            bucket[field] = _amount(bucket[field] + totals[field])
    return buckets


def _point(key: str, label: str, totals: dict | None) -> dict:
    totals = totals or {}
    return {
        "key": key,
        "label": label,
        "revenue": totals.get("revenue", 0.0),
        "cost": totals.get("cost", 0.0),
        "profit": totals.get("profit", 0.0),
    }


def _safe_date(value) -> date | None:
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(value) if value else None
    except ValueError:
        return None


def seller_trend(
    seller_id: int,
    granularity: str = TREND_DAILY,
    *,
    start_date=None,
    end_date=None,
    year=None,
    today: date | None = None,
) -> dict:
    """
    Revenue / cost / profit series for one seller, bucketed by delivery date.

    DAILY:   one point per day in [start_date, end_date]; defaults to the
             current month, and an inverted range falls back to the default.
    MONTHLY: 12 points for `year` (default: current year).
    YEARLY:  10 points, current year - 5 .. current year + 4.
    """
    granularity = (granularity or TREND_DAILY).upper()
    if granularity not in TREND_GRANULARITIES:
        raise ValidationError(f"granularity must be one of: {', '.join(TREND_GRANULARITIES)}")

    if not db.session.get(Seller, seller_id):
        raise NotFoundError("Seller not found")

    today = today or utcnow().date()

    if granularity == TREND_DAILY:
        default_start, default_end = month_bounds(today)
        start = _safe_date(start_date) or default_start
        end = _safe_date(end_date) or default_end
        if start > end:
            start, end = default_start, default_end

        daily = _daily_totals(seller_id, start, end)
        points = []
        cursor = start
        while cursor <= end:
            points.append(_point(cursor.isoformat(), cursor.strftime("%d/%m"), daily.get(cursor)))
            cursor += timedelta(days=1)
        return {
            "granularity": TREND_DAILY,
            "points": points,
            "applied_start_date": start.isoformat(),
            "applied_end_date": end.isoformat(),
        }

    if granularity == TREND_MONTHLY:
        try:
            applied_year = int(year) if year not in (None, "") else today.year
        except (TypeError, ValueError):
            applied_year = today.year
        if not 1 <= applied_year <= 9999:
            applied_year = today.year
        daily = _daily_totals(seller_id, date(applied_year, 1, 1), date(applied_year, 12, 31))
        buckets = _fold(daily, lambda d: d.month)
        points = [
            _point(f"{applied_year}-{month:02d}", f"{month:02d}/{applied_year}", buckets.get(month))
            for month in range(1, 13)
        ]
        return {"granularity": TREND_MONTHLY, "points": points, "applied_year": applied_year}

    start_year, end_year = today.year - 5, today.year + 4
    daily = _daily_totals(seller_id, date(start_year, 1, 1), date(end_year, 12, 31))
    buckets = _fold(daily, lambda d: d.year)
    points = [_point(str(y), str(y), buckets.get(y)) for y in range(start_year, end_year + 1)]
    return {
        "granularity": TREND_YEARLY,
        "points": points,
        "applied_start_date": date(start_year, 1, 1).isoformat(),
        "applied_end_date": date(end_year, 12, 31).isoformat(),
    }


# ---------------------------------------------------------------------------
# Seller performance
# ---------------------------------------------------------------------------

def seller_performance() -> list[dict]:
    """Per-seller totals across all orders, highest revenue first."""
    rows = db.session.query(
        Seller.id,
        Seller.name,
        Seller.role,
        Seller.is_enabled,
        func.count(Order.id),
        func.coalesce(func.sum(Order.total_sale_amount), 0),
        func.coalesce(func.sum(Order.total_cost_amount), 0),
        func.coalesce(func.sum(Order.total_profit_amount), 0),
        func.coalesce(func.sum(case((Order.fulfillment_status == PENDING_APPROVAL, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Order.fulfillment_status == DELIVERING, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Order.fulfillment_status == DELIVERED, 1), else_=0)), 0),
        func.coalesce(func.sum(case((Order.fulfillment_status == CANCELED, 1), else_=0)), 0),
    ).outerjoin(Order, Order.seller_id == Seller.id).group_by(
        Seller.id, Seller.name, Seller.role, Seller.is_enabled
    ).all()

    result = []
    for (seller_id, name, role, enabled, count, sale, cost, profit,
         pending, delivering, delivered, canceled) in rows:
        count = int(count)
        result.append({
            "seller_id": seller_id,
            "seller_name": name,
            "role": role,
            "is_enabled": enabled,
            "order_count": count,
            "total_sale_amount": _amount(sale),
            "total_cost_amount": _amount(cost),
            "total_profit_amount": _amount(profit),
            "average_order_amount": _amount(float(sale) / count) if count else 0.0,
            "pending_approval_orders": int(pending),
            "delivering_orders": int(delivering),
            "delivered_orders": int(delivered),
            "canceled_orders": int(canceled),
        })

    result.sort(key=lambda r: (-r["total_sale_amount"], r["seller_name"]))
    return result


def seller_top_products(seller_id: int, limit: int = 5) -> list[dict]:
    rows = db.session.query(
        OrderLine.product_id,
        OrderLine.product_name,
        func.coalesce(func.sum(OrderLine.weight_kg), 0),
        func.coalesce(func.sum(OrderLine.line_sale_total), 0),
        func.coalesce(func.sum(OrderLine.line_profit), 0),
    ).join(Order, Order.id == OrderLine.order_id).filter(
        Order.seller_id == seller_id
    ).group_by(OrderLine.product_id, OrderLine.product_name).order_by(
        func.sum(OrderLine.line_sale_total).desc()
    ).limit(limit).all()

    return [
        {
            "product_id": product_id,
            "product_name": product_name,
            "total_weight_kg": round(float(weight), 3),
            "total_sale_amount": _amount(sale),
            "total_profit_amount": _amount(profit),
        }
        for product_id, product_name, weight, sale, profit in rows
    ]
