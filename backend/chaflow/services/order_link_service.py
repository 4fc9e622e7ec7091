# Overview: Service-layer operations for customer order links; public, expiring ordering URLs.

from __future__ import annotations

import re
import secrets
from datetime import datetime, timedelta

from flask import current_app

from ..extensions import db
from ..models import CustomerOrderLink, CustomerOrderLinkItem, Customer, PriceProfile, Seller
from ..constants import PRICE_PROFILE_SALE
from ..errors import ConflictError, ForbiddenError, NoActivePriceProfileError, NotFoundError, ValidationError
from ..validation import OrderLinkCommand, PublicOrderCommand
from . import customer_service, order_service
from .price_profile_service import current_cost_profile
from chaflow.time_utils import utcnow


TOKEN_PATTERN = re.compile(r"^[A-Za-z0-9_-]{12,120}$")
TOKEN_BYTES = 18
TOKEN_ATTEMPTS = 6
MIN_LIFETIME = timedelta(minutes=5)
MAX_LIFETIME = timedelta(days=60)


def _generate_unique_token() -> str:
    for _ in range(TOKEN_ATTEMPTS):
        token = secrets.token_urlsafe(TOKEN_BYTES)
        if not db.session.query(CustomerOrderLink.id).filter_by(token=token).first():
            return token
    raise ConflictError("Could not allocate a unique link token; try again")


def _resolve_target_seller(actor: Seller, seller_id: int | None) -> Seller:
    if seller_id is None or seller_id == actor.id:
        return actor
    if not actor.is_admin:
        raise ForbiddenError("Only administrators can create links for other sellers")
    seller = db.session.get(Seller, seller_id)
    if not seller or not seller.is_enabled:
        raise NotFoundError("Seller not found")
    return seller


def create_order_link(actor: Seller, command: OrderLinkCommand, *, now: datetime | None = None) -> CustomerOrderLink:
    """
    Create a public ordering link for a seller.

    The link freezes the chosen sale profile's items. Expiry must fall
    between 5 minutes and 60 days from now. Any other active link of the
    same seller is deactivated.
    """
    now = now or utcnow()
    seller = _resolve_target_seller(actor, command.seller_id)

    if command.expires_at < now + MIN_LIFETIME:
        raise ValidationError("Link must stay valid for at least 5 minutes")
    if command.expires_at > now + MAX_LIFETIME:
        raise ValidationError("Link cannot stay valid for more than 60 days")

    profile = db.session.get(PriceProfile, command.sale_profile_id)
    usable = (
        profile is not None
        and profile.type == PRICE_PROFILE_SALE
        and profile.is_active
        and profile.seller_id in (None, seller.id)
    )
    if not usable:
        raise NoActivePriceProfileError("Sale price profile not found or inactive")
    if not profile.items:
        raise ValidationError("Sale price profile has no items")

    db.session.query(CustomerOrderLink).filter(
        CustomerOrderLink.seller_id == seller.id,
        CustomerOrderLink.is_active.is_(True),
    ).update({"is_active": False, "updated_at": now})

    link = CustomerOrderLink(
        token=_generate_unique_token(),
        seller_id=seller.id,
        seller_name=seller.name,
        sale_profile_id=profile.id,
        sale_profile_name=profile.name,
        sale_profile_effective_from=profile.effective_from,
        sale_profile_is_global=profile.is_global,
        expires_at=command.expires_at,
        is_active=True,
        created_by_seller_id=actor.id,
        created_by_name=actor.name,
        usage_count=0,
        created_at=now,
        updated_at=now,
    )
    link.items = [
        CustomerOrderLinkItem(
            product_id=item.product_id,
            product_name=item.product_name,
            price_per_kg=item.price_per_kg,
            position=position,
        )
        for position, item in enumerate(profile.items)
    ]
    db.session.add(link)
    db.session.commit()

    current_app.logger.info("Order link %s created for seller %s by %s", link.id, seller.id, actor.id)
    return link


def list_order_links(actor: Seller) -> list[CustomerOrderLink]:
    query = db.session.query(CustomerOrderLink)
    if not actor.is_admin:
        query = query.filter(CustomerOrderLink.seller_id == actor.id)
    return query.order_by(CustomerOrderLink.created_at.desc(), CustomerOrderLink.id.desc()).all()


def set_order_link_active(actor: Seller, link_id: int, active: bool) -> CustomerOrderLink:
    link = db.session.get(CustomerOrderLink, link_id)
    if not link or (not actor.is_admin and link.seller_id != actor.id):
        raise NotFoundError("Order link not found")

    now = utcnow()
    if active:
        if link.is_expired(now):
            raise ConflictError("Order link has expired")
        db.session.query(CustomerOrderLink).filter(
            CustomerOrderLink.seller_id == link.seller_id,
            CustomerOrderLink.id != link.id,
            CustomerOrderLink.is_active.is_(True),
        ).update({"is_active": False, "updated_at": now})

    link.is_active = bool(active)
    link.updated_at = now
    db.session.commit()
    return link


def get_public_link(token: str) -> CustomerOrderLink:
    """
    Resolve a public token.

    NotFoundError for malformed or unknown tokens; ConflictError for links
    that are disabled, expired, or whose seller is disabled.
    """
    if not token or not TOKEN_PATTERN.match(token):
        raise NotFoundError("Order link not found")

    link = db.session.query(CustomerOrderLink).filter_by(token=token).first()
    if not link:
        raise NotFoundError("Order link not found")
    if not link.is_active:
        raise ConflictError("This order link is no longer active")
    if link.is_expired(utcnow()):
        raise ConflictError("This order link has expired")

    seller = db.session.get(Seller, link.seller_id)
    if not seller or not seller.is_enabled:
        raise ConflictError("This order link is no longer active")
    return link


def start_public_customer(token: str, phone: str) -> Customer:
    get_public_link(token)
    return customer_service.find_or_create_by_phone(phone)


def submit_public_order(token: str, command: PublicOrderCommand):
    """
    Place an order through a public link.

    Sale prices come from the link snapshot; cost prices from the current
    COST profile. The order belongs to the link's seller and awaits admin
    approval like any other order.
    """
    link = get_public_link(token)
    seller = db.session.get(Seller, link.seller_id)

    customer = db.session.get(Customer, command.customer_id)
    if not customer or not customer.is_active:
        raise NotFoundError("Customer not found")

    cost_profile = current_cost_profile()
    if not cost_profile:
        raise NoActivePriceProfileError("No active cost price profile")

    sale = order_service.PricingSnapshot(
        profile_id=link.sale_profile_id,
        profile_name=link.sale_profile_name,
        effective_from=link.sale_profile_effective_from,
        prices=link.price_map(),
        is_global=link.sale_profile_is_global,
    )
    link_id = link.id

    order = order_service.place_order(
        seller=seller,
        customer=customer,
        lines=command.lines,
        delivery_date=command.delivery_date,
        cost=order_service.PricingSnapshot.from_profile(cost_profile),
        sale=sale,
    )

    db.session.query(CustomerOrderLink).filter_by(id=link_id).update({
        "usage_count": CustomerOrderLink.usage_count + 1,
        "last_used_at": utcnow(),
    })
    db.session.commit()

    current_app.logger.info("Order %s placed through link %s", order.code, link_id)
    return order
