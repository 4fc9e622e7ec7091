from __future__ import annotations

from ..extensions import db
from chaflow.time_utils import to_utc_z, utcnow


class Customer(db.Model):
    """
    Customer master data.

    order_count / total_spent_amount / last_order_at are denormalized
    aggregates bumped when an order is created. They are not transactional
    with the order itself and may drift after a partial failure.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_phone", "phone"),
        db.Index("ix_customers_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(24), nullable=False)
    email = db.Column(db.String(160), nullable=True)
    notes = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    # Denormalized aggregates (updated when orders are created)
    order_count = db.Column(db.Integer, nullable=False, default=0)
    total_spent_amount = db.Column(db.Float, nullable=False, default=0)
    last_order_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "notes": self.notes,
            "is_active": self.is_active,
            "order_count": self.order_count,
            "total_spent_amount": self.total_spent_amount,
            "last_order_at": to_utc_z(self.last_order_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
