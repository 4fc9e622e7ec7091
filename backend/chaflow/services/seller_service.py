# Overview: Service-layer operations for seller accounts; bootstrap, administration and password changes.

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Seller
from ..constants import ROLE_ADMIN, ROLE_SELLER, SELLER_ROLES
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError, AuthenticationError
from . import session_service
from .auth_service import hash_password, verify_password, normalize_email
from chaflow.time_utils import utcnow


def _require_admin(actor: Seller) -> None:
    if not actor or not actor.is_admin:
        raise ForbiddenError("Administrator access required")


def _get_seller(seller_id: int) -> Seller:
    seller = db.session.get(Seller, seller_id)
    if not seller:
        raise NotFoundError("Seller not found")
    return seller


def _clean_name(name: str | None) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError("name is required")
    if len(cleaned) > 120:
        raise ValidationError("name exceeds max length 120")
    return cleaned


def _clean_email(email: str | None, *, exclude_id: int | None = None) -> str:
    normalized = normalize_email(email)
    if not normalized or "@" not in normalized:
        raise ValidationError("A valid email is required")
    if len(normalized) > 160:
        raise ValidationError("email exceeds max length 160")
    query = db.session.query(Seller).filter(Seller.email == normalized)
    if exclude_id is not None:
        query = query.filter(Seller.id != exclude_id)
    if query.first():
        raise ConflictError("Email is already in use")
    return normalized


def _clean_role(role: str | None) -> str:
    role = (role or ROLE_SELLER).strip().upper()
    if role not in SELLER_ROLES:
        raise ValidationError(f"role must be one of: {', '.join(SELLER_ROLES)}")
    return role


def ensure_default_admin() -> Seller | None:
    """
    Create the bootstrap admin when no ADMIN account exists.

    Credentials come from ADMIN_EMAIL / ADMIN_NAME / ADMIN_PASSWORD.
    Returns the created seller, or None when an admin already exists.
    """
    if db.session.query(Seller).filter_by(role=ROLE_ADMIN).first():
        return None

    email = normalize_email(current_app.config.get("ADMIN_EMAIL", "admin@gc.vn"))
    existing = db.session.query(Seller).filter_by(email=email).first()
    if existing:
        # An account already owns the admin email: promote it
        existing.role = ROLE_ADMIN
        existing.is_enabled = True
        db.session.commit()
        current_app.logger.info("Promoted seller %s to bootstrap admin", existing.id)
        return existing

    admin = Seller(
        name=current_app.config.get("ADMIN_NAME", "GC Admin"),
        email=email,
        role=ROLE_ADMIN,
        is_enabled=True,
        password_hash=hash_password(current_app.config.get("ADMIN_PASSWORD", "Admin@123")),
    )
    db.session.add(admin)
    db.session.commit()
    current_app.logger.info("Created bootstrap admin %s", admin.email)
    return admin


def list_sellers(actor: Seller, *, include_disabled: bool = True) -> list[Seller]:
    _require_admin(actor)
    query = db.session.query(Seller)
    if not include_disabled:
        query = query.filter(Seller.is_enabled.is_(True))
    return query.order_by(Seller.role.asc(), Seller.name.asc()).all()


def create_seller(
    actor: Seller,
    *,
    name: str,
    email: str,
    password: str,
    role: str | None = ROLE_SELLER,
) -> Seller:
    _require_admin(actor)

    seller = Seller(
        name=_clean_name(name),
        email=_clean_email(email),
        role=_clean_role(role),
        is_enabled=True,
        password_hash=hash_password(password or ""),
        must_change_password=False,
        created_by_seller_id=actor.id,
    )
    db.session.add(seller)
    db.session.commit()
    current_app.logger.info("Seller %s created by %s", seller.id, actor.id)
    return seller


def update_seller(
    actor: Seller,
    seller_id: int,
    *,
    name: str,
    email: str,
    role: str | None,
    password: str | None = None,
) -> Seller:
    """Admin edit. Setting a new password forces a change at next login and logs the seller out."""
    _require_admin(actor)
    seller = _get_seller(seller_id)

    new_role = _clean_role(role)
    if seller.id == actor.id and new_role != ROLE_ADMIN:
        raise ConflictError("You cannot remove your own administrator role")

    seller.name = _clean_name(name)
    seller.email = _clean_email(email, exclude_id=seller.id)
    seller.role = new_role

    password_reset = bool(password)
    if password_reset:
        seller.password_hash = hash_password(password)
        seller.must_change_password = True
        seller.password_changed_at = utcnow()

    db.session.commit()

    if password_reset:
        session_service.revoke_all(seller.id)

    current_app.logger.info("Seller %s updated by %s", seller.id, actor.id)
    return seller


def set_seller_enabled(actor: Seller, seller_id: int, enabled: bool) -> Seller:
    _require_admin(actor)
    seller = _get_seller(seller_id)

    if seller.id == actor.id and not enabled:
        raise ConflictError("You cannot disable your own account")

    seller.is_enabled = bool(enabled)
    db.session.commit()

    if not enabled:
        session_service.revoke_all(seller.id)

    current_app.logger.info(
        "Seller %s %s by %s", seller.id, "enabled" if enabled else "disabled", actor.id
    )
    return seller


def reset_seller_password(actor: Seller, seller_id: int, new_password: str) -> Seller:
    _require_admin(actor)
    seller = _get_seller(seller_id)

    if seller.id == actor.id:
        raise ConflictError("Use change password for your own account")
    if seller.role != ROLE_SELLER:
        raise ForbiddenError("Only seller accounts can be reset here")

    seller.password_hash = hash_password(new_password or "")
    seller.must_change_password = True
    seller.password_changed_at = utcnow()
    db.session.commit()

    session_service.revoke_all(seller.id)
    current_app.logger.info("Password of seller %s reset by %s", seller.id, actor.id)
    return seller


def change_password(seller_id: int, current_password: str, new_password: str, confirm_password: str) -> int:
    """
    Self-service password change.

    On success every session of the seller is revoked, including the one
    making the request. Returns the number of sessions revoked.
    """
    seller = _get_seller(seller_id)

    if not verify_password(current_password, seller.password_hash):
        raise AuthenticationError("Current password is incorrect")
    if new_password != confirm_password:
        raise ValidationError("Password confirmation does not match")
    if new_password == current_password:
        raise ValidationError("New password must differ from the current password")

    seller.password_hash = hash_password(new_password)
    seller.must_change_password = False
    seller.password_changed_at = utcnow()
    db.session.commit()

    revoked = session_service.revoke_all(seller.id)
    current_app.logger.info("Seller %s changed password; %s sessions revoked", seller.id, revoked)
    return revoked
