from __future__ import annotations

from ..extensions import db
from chaflow.time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Sellable product, always priced per kilogram.

    Products are soft-disabled via is_active; a product referenced by any
    order line can no longer be hard-deleted.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_products_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(300), nullable=True)
    unit = db.Column(db.String(8), nullable=False, default="kg")
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PriceProfile(db.Model):
    """
    Named, dated price list of type COST or SALE.

    COST profiles are always global and at most one is active at a time.
    SALE profiles are global (seller_id NULL) or scoped to one seller, and
    any number of them may be active.
    """
    __tablename__ = "price_profiles"
    __table_args__ = (
        db.Index("ix_price_profiles_type_active", "type", "is_active"),
        db.Index("ix_price_profiles_seller_id", "seller_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(140), nullable=False)
    type = db.Column(db.String(8), nullable=False)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=True)
    seller_name = db.Column(db.String(120), nullable=True)
    effective_from = db.Column(db.DateTime, nullable=False, default=utcnow)
    notes = db.Column(db.String(500), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    items = db.relationship(
        "PriceProfileItem",
        backref="profile",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="PriceProfileItem.position",
    )

    @property
    def is_global(self) -> bool:
        return self.seller_id is None

    def price_map(self) -> dict[int, float]:
        return {item.product_id: item.price_per_kg for item in self.items}

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "seller_id": self.seller_id,
            "seller_name": self.seller_name,
            "is_global": self.is_global,
            "effective_from": to_utc_z(self.effective_from),
            "notes": self.notes,
            "is_active": self.is_active,
            "item_count": len(self.items),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PriceProfileItem(db.Model):
    __tablename__ = "price_profile_items"
    __table_args__ = (
        db.UniqueConstraint("profile_id", "product_id", name="uq_price_profile_items_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    profile_id = db.Column(db.Integer, db.ForeignKey("price_profiles.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(120), nullable=False)
    price_per_kg = db.Column(db.Float, nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    def to_dict(self) -> dict:
        return {
            "product_id": self.product_id,
            "product_name": self.product_name,
            "price_per_kg": self.price_per_kg,
        }
