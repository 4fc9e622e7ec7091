from __future__ import annotations

from ..extensions import db
from ..constants import ROLE_ADMIN, ROLE_SELLER
from chaflow.time_utils import to_utc_z, utcnow


class Seller(db.Model):
    """
    Back-office account: either an ADMIN or a SELLER.

    Email is stored normalized (trimmed, lower-case) and is globally unique.
    Disabled sellers cannot authenticate and their sessions resolve to nothing.
    """
    __tablename__ = "sellers"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_sellers_email"),
        db.Index("ix_sellers_role_enabled", "role", "is_enabled"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(160), nullable=False)
    role = db.Column(db.String(16), nullable=False, default=ROLE_SELLER)
    is_enabled = db.Column(db.Boolean, nullable=False, default=True)

    # "{algorithm}${salt}${derived_key_hex}"
    password_hash = db.Column(db.String(255), nullable=False)
    must_change_password = db.Column(db.Boolean, nullable=False, default=False)
    password_changed_at = db.Column(db.DateTime, nullable=True)
    last_login_at = db.Column(db.DateTime, nullable=True)

    created_by_seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id"), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role,
            "is_enabled": self.is_enabled,
            "must_change_password": self.must_change_password,
            "password_changed_at": to_utc_z(self.password_changed_at),
            "last_login_at": to_utc_z(self.last_login_at),
            "created_by_seller_id": self.created_by_seller_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class SellerSession(db.Model):
    """
    Server-side record of an issued bearer token.

    Only the SHA-256 hex digest of the token is stored. A session is valid
    while expires_at is in the future and its seller is enabled; anything
    else is deleted on read or by the maintenance sweep.
    """
    __tablename__ = "seller_sessions"
    __table_args__ = (
        db.UniqueConstraint("token_hash", name="uq_seller_sessions_token_hash"),
        db.Index("ix_seller_sessions_seller_id", "seller_id"),
        db.Index("ix_seller_sessions_expires_at", "expires_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("sellers.id", ondelete="CASCADE"), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False)
    user_agent = db.Column(db.String(300), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    last_seen_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    expires_at = db.Column(db.DateTime, nullable=False)

    seller = db.relationship("Seller", backref=db.backref("sessions", lazy=True, passive_deletes=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "seller_id": self.seller_id,
            "user_agent": self.user_agent,
            "ip_address": self.ip_address,
            "created_at": to_utc_z(self.created_at),
            "last_seen_at": to_utc_z(self.last_seen_at),
            "expires_at": to_utc_z(self.expires_at),
        }
