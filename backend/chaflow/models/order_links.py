from __future__ import annotations

from ..extensions import db
from chaflow.time_utils import to_utc_z, utcnow


class CustomerOrderLink(db.Model):
    """
    Shareable, expiring public ordering link owned by one seller.

    The link freezes a copy of a sale profile's items at creation time, so
    later edits to the profile do not change what link customers pay.
    At most one active link per seller.
    """
    __tablename__ = "customer_order_links"
    __table_args__ = (
        db.UniqueConstraint("token", name="uq_customer_order_links_token"),
        db.Index("ix_customer_order_links_seller_active", "seller_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(120), nullable=False)

    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False)
    seller_name = db.Column(db.String(120), nullable=False)

    sale_profile_id = db.Column(db.Integer, nullable=False)
    sale_profile_name = db.Column(db.String(140), nullable=False)
    sale_profile_effective_from = db.Column(db.DateTime, nullable=False)
    sale_profile_is_global = db.Column(db.Boolean, nullable=False, default=True)

    expires_at = db.Column(db.DateTime, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_by_seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=False)
    created_by_name = db.Column(db.String(120), nullable=False)

    usage_count = db.Column(db.Integer, nullable=False, default=0)
    last_used_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "CustomerOrderLinkItem",
        backref="link",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="CustomerOrderLinkItem.position",
    )

    def is_expired(self, now) -> bool:
        return self.expires_at <= now

    def price_map(self) -> dict[int, float]:
        return {item.product_id: item.price_per_kg for item in self.items}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "token": self.token,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "sale_profile": {
                "profile_id": self.sale_profile_id,
                "profile_name": self.sale_profile_name,
                "effective_from": to_utc_z(self.sale_profile_effective_from),
                "is_global": self.sale_profile_is_global,
            },
            "expires_at": to_utc_z(self.expires_at),
            "is_active": self.is_active,
            "created_by_seller_id": self.created_by_seller_id,
            "created_by_name": self.created_by_name,
            "usage_count": self.usage_count,
            "last_used_at": to_utc_z(self.last_used_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class CustomerOrderLinkItem(db.Model):
    __tablename__ = "customer_order_link_items"
    __table_args__ = (
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    link_id = db.Column(db.Integer, db.ForeignKey("customer_order_links.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, nullable=False)
    product_name = db.Column(db.String(120), nullable=False)
    price_per_kg = db.Column(db.Float, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price_per_kg": self.price_per_kg,
        }
