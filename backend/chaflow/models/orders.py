from __future__ import annotations

from ..extensions import db
from ..constants import (
    PENDING_APPROVAL,
    UNPAID_SUPPLIER,
    UNPAID,
    APPROVAL_PENDING,
    DISCOUNT_NONE,
)
from chaflow.time_utils import to_utc_z, utcnow


class Order(db.Model):
    """
    Sales order: the central aggregate.

    Prices are snapshotted from the cost and sale profiles at creation and
    never recomputed from live catalog data. Totals are always exact sums of
    line values. Three status axes (fulfillment, supplier payment,
    collection) move independently. The approval and discount sub-records
    are stored as flat columns and nested again in to_dict().

    Orders are never deleted.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_orders_code"),
        db.Index("ix_orders_seller_id", "seller_id"),
        db.Index("ix_orders_customer_id", "customer_id"),
        db.Index("ix_orders_delivery_date", "delivery_date"),
        db.Index("ix_orders_fulfillment_status", "fulfillment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(32), nullable=False)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False)
    customer_name = db.Column(db.String(120), nullable=False)
    buyer_name = db.Column(db.String(120), nullable=False)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False)
    seller_name = db.Column(db.String(120), nullable=False)
    delivery_date = db.Column(db.Date, nullable=False)

    # Price profile snapshots
    cost_profile_id = db.Column(db.Integer, nullable=False)
    cost_profile_name = db.Column(db.String(140), nullable=False)
    cost_profile_effective_from = db.Column(db.DateTime, nullable=False)
    sale_profile_id = db.Column(db.Integer, nullable=False)
    sale_profile_name = db.Column(db.String(140), nullable=False)
    sale_profile_effective_from = db.Column(db.DateTime, nullable=False)
    sale_profile_is_global = db.Column(db.Boolean, nullable=False, default=True)

    # Aggregates
    total_weight_kg = db.Column(db.Float, nullable=False, default=0)
    total_cost_amount = db.Column(db.Float, nullable=False, default=0)
    base_sale_amount = db.Column(db.Float, nullable=False, default=0)
    total_sale_amount = db.Column(db.Float, nullable=False, default=0)
    total_profit_amount = db.Column(db.Float, nullable=False, default=0)

    # Status axes
    fulfillment_status = db.Column(db.String(24), nullable=False, default=PENDING_APPROVAL)
    supplier_payment_status = db.Column(db.String(32), nullable=False, default=UNPAID_SUPPLIER)
    collection_status = db.Column(db.String(24), nullable=False, default=UNPAID)

    # Approval sub-record
    requires_admin_approval = db.Column(db.Boolean, nullable=False, default=True)
    approval_status = db.Column(db.String(16), nullable=False, default=APPROVAL_PENDING)
    approval_requested_at = db.Column(db.DateTime, nullable=True)
    approval_reviewed_at = db.Column(db.DateTime, nullable=True)
    approval_reviewed_by_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=True)
    approval_reviewed_by_name = db.Column(db.String(120), nullable=True)
    approval_note = db.Column(db.String(300), nullable=True)

    # Discount request sub-record
    discount_status = db.Column(db.String(16), nullable=False, default=DISCOUNT_NONE)
    discount_requested_percent = db.Column(db.Float, nullable=True)
    discount_requested_amount = db.Column(db.Float, nullable=True)
    discount_requested_sale_amount = db.Column(db.Float, nullable=True)
    discount_reason = db.Column(db.String(300), nullable=True)
    discount_requested_at = db.Column(db.DateTime, nullable=True)
    discount_requested_by_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=True)
    discount_reviewed_at = db.Column(db.DateTime, nullable=True)
    discount_reviewed_by_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=True)
    discount_reviewed_by_name = db.Column(db.String(120), nullable=True)
    discount_review_note = db.Column(db.String(300), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    lines = db.relationship(
        "OrderLine",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderLine.position",
    )

    def to_dict(self, include_lines: bool = True) -> dict:
        data = {
            "id": self.id,
            "code": self.code,
            "customer_id": self.customer_id,
            "customer_name": self.customer_name,
            "buyer_name": self.buyer_name,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "delivery_date": self.delivery_date.isoformat() if self.delivery_date else None,
            "cost_profile": {
                "profile_id": self.cost_profile_id,
                "profile_name": self.cost_profile_name,
                "effective_from": to_utc_z(self.cost_profile_effective_from),
            },
            "sale_profile": {
                "profile_id": self.sale_profile_id,
                "profile_name": self.sale_profile_name,
                "effective_from": to_utc_z(self.sale_profile_effective_from),
                "is_global": self.sale_profile_is_global,
            },
            "total_weight_kg": self.total_weight_kg,
            "total_cost_amount": self.total_cost_amount,
            "base_sale_amount": self.base_sale_amount,
            "total_sale_amount": self.total_sale_amount,
            "total_profit_amount": self.total_profit_amount,
            "fulfillment_status": self.fulfillment_status,
            "supplier_payment_status": self.supplier_payment_status,
            "collection_status": self.collection_status,
            "approval": {
                "requires_admin_approval": self.requires_admin_approval,
                "status": self.approval_status,
                "requested_at": to_utc_z(self.approval_requested_at),
                "reviewed_at": to_utc_z(self.approval_reviewed_at),
                "reviewed_by_id": self.approval_reviewed_by_id,
                "reviewed_by_name": self.approval_reviewed_by_name,
                "note": self.approval_note,
            },
            "discount_request": {
                "status": self.discount_status,
                "requested_percent": self.discount_requested_percent,
                "requested_amount": self.discount_requested_amount,
                "requested_sale_amount": self.discount_requested_sale_amount,
                "reason": self.discount_reason,
                "requested_at": to_utc_z(self.discount_requested_at),
                "requested_by_id": self.discount_requested_by_id,
                "reviewed_at": to_utc_z(self.discount_reviewed_at),
                "reviewed_by_id": self.discount_reviewed_by_id,
                "reviewed_by_name": self.discount_reviewed_by_name,
                "review_note": self.discount_review_note,
            },
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class OrderLine(db.Model):
    __tablename__ = "order_lines"
    __table_args__ = (
        db.Index("ix_order_lines_order_id", "order_id"),
        db.Index("ix_order_lines_product_id", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)
    product_name = db.Column(db.String(120), nullable=False)
    weight_kg = db.Column(db.Float, nullable=False)

    cost_price_per_kg = db.Column(db.Float, nullable=False)
    # Post-discount price; equals base_sale_price_per_kg until a discount is approved
    sale_price_per_kg = db.Column(db.Float, nullable=False)
    base_sale_price_per_kg = db.Column(db.Float, nullable=False)

    line_cost_total = db.Column(db.Float, nullable=False)
    base_line_sale_total = db.Column(db.Float, nullable=False)
    line_sale_total = db.Column(db.Float, nullable=False)
    line_profit = db.Column(db.Float, nullable=False)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "weight_kg": self.weight_kg,
            "cost_price_per_kg": self.cost_price_per_kg,
            "sale_price_per_kg": self.sale_price_per_kg,
            "base_sale_price_per_kg": self.base_sale_price_per_kg,
            "line_cost_total": self.line_cost_total,
            "base_line_sale_total": self.base_line_sale_total,
            "line_sale_total": self.line_sale_total,
            "line_profit": self.line_profit,
        }
