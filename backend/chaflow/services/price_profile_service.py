# Overview: Service-layer operations for price profiles; COST/SALE price lists and their activation rules.

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import PriceProfile, PriceProfileItem, Product, Seller
from ..constants import PRICE_PROFILE_COST, PRICE_PROFILE_SALE, INITIAL_PRODUCTS
from ..errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from ..validation import PriceItemInput, PriceProfileCommand
from chaflow.time_utils import utcnow


def _newest_first(query):
    return query.order_by(
        PriceProfile.effective_from.desc(),
        PriceProfile.created_at.desc(),
        PriceProfile.id.desc(),
    )


def current_cost_profile() -> PriceProfile | None:
    """The active COST profile (most recent if, by accident, several are active)."""
    return _newest_first(
        db.session.query(PriceProfile).filter_by(type=PRICE_PROFILE_COST, is_active=True)
    ).first()


def current_sale_profile(seller_id: int | None = None) -> PriceProfile | None:
    """
    The SALE profile that applies to a seller.

    An active profile scoped to the seller wins over global ones; otherwise
    the most recent active global profile.
    """
    base = db.session.query(PriceProfile).filter_by(type=PRICE_PROFILE_SALE, is_active=True)
    if seller_id is not None:
        own = _newest_first(base.filter(PriceProfile.seller_id == seller_id)).first()
        if own:
            return own
    return _newest_first(base.filter(PriceProfile.seller_id.is_(None))).first()


def can_view(actor: Seller, profile: PriceProfile) -> bool:
    if actor.is_admin:
        return True
    return profile.type == PRICE_PROFILE_SALE and profile.seller_id in (None, actor.id)


def can_manage(actor: Seller, profile: PriceProfile) -> bool:
    if actor.is_admin:
        return True
    return profile.type == PRICE_PROFILE_SALE and profile.seller_id == actor.id


def get_price_profile(actor: Seller, profile_id: int) -> PriceProfile:
    profile = db.session.get(PriceProfile, profile_id)
    if not profile or not can_view(actor, profile):
        raise NotFoundError("Price profile not found")
    return profile


def list_price_profiles(
    actor: Seller,
    *,
    profile_type: str | None = None,
    status: str | None = None,
    seller_id: int | None = None,
) -> list[PriceProfile]:
    """
    Admins see everything (optionally filtered to one seller's SALE profiles
    plus the global ones); sellers see global SALE profiles and their own.
    """
    query = db.session.query(PriceProfile)

    if not actor.is_admin:
        query = query.filter(
            PriceProfile.type == PRICE_PROFILE_SALE,
            db.or_(PriceProfile.seller_id.is_(None), PriceProfile.seller_id == actor.id),
        )
    elif seller_id is not None:
        query = query.filter(db.or_(PriceProfile.seller_id.is_(None), PriceProfile.seller_id == seller_id))

    if profile_type:
        query = query.filter(PriceProfile.type == profile_type)
    if status == "active":
        query = query.filter(PriceProfile.is_active.is_(True))
    elif status == "inactive":
        query = query.filter(PriceProfile.is_active.is_(False))

    return query.order_by(
        PriceProfile.type.asc(),
        PriceProfile.is_active.desc(),
        PriceProfile.effective_from.desc(),
        PriceProfile.id.desc(),
    ).all()


def _build_items(items: tuple[PriceItemInput, ...]) -> list[PriceProfileItem]:
    if not items:
        raise ValidationError("A price profile needs at least one item")

    product_ids = [item.product_id for item in items]
    if len(set(product_ids)) != len(product_ids):
        raise ValidationError("Each product may appear only once in a price profile")

    products = {
        p.id: p for p in db.session.query(Product).filter(Product.id.in_(product_ids)).all()
    }

    rows = []
    for position, item in enumerate(items):
        product = products.get(item.product_id)
        if not product:
            raise NotFoundError(f"Product {item.product_id} not found")
        if not product.is_active:
            raise ValidationError(f"Product '{product.name}' is inactive")
        if item.price_per_kg < 0:
            raise ValidationError("price_per_kg must be >= 0")
        rows.append(PriceProfileItem(
            product_id=product.id,
            product_name=product.name,
            price_per_kg=float(item.price_per_kg),
            position=position,
        ))
    return rows


def _deactivate_other_cost_profiles(keep_id: int | None) -> None:
    query = db.session.query(PriceProfile).filter(
        PriceProfile.type == PRICE_PROFILE_COST,
        PriceProfile.is_active.is_(True),
    )
    if keep_id is not None:
        query = query.filter(PriceProfile.id != keep_id)
    for other in query.all():
        other.is_active = False


def create_price_profile(actor: Seller, command: PriceProfileCommand) -> PriceProfile:
    """
    Create a COST (admin only) or SALE profile.

    A SALE profile created by an admin is global; one created by a seller is
    scoped to that seller. The first COST profile is always active, and an
    active COST profile replaces the previously active one.
    """
    if command.type == PRICE_PROFILE_COST and not actor.is_admin:
        raise ForbiddenError("Only administrators can manage cost profiles")

    is_active = command.is_active
    if command.type == PRICE_PROFILE_COST:
        has_cost = db.session.query(PriceProfile.id).filter_by(type=PRICE_PROFILE_COST).first()
        if not has_cost:
            is_active = True

    scoped_to_seller = command.type == PRICE_PROFILE_SALE and not actor.is_admin

    profile = PriceProfile(
        name=command.name,
        type=command.type,
        seller_id=actor.id if scoped_to_seller else None,
        seller_name=actor.name if scoped_to_seller else None,
        effective_from=command.effective_from or utcnow(),
        notes=command.notes,
        is_active=is_active,
    )
    profile.items = _build_items(command.items)
    db.session.add(profile)
    db.session.flush()

    if profile.type == PRICE_PROFILE_COST and profile.is_active:
        _deactivate_other_cost_profiles(keep_id=profile.id)

    db.session.commit()
    current_app.logger.info("%s price profile %s created by %s", profile.type, profile.id, actor.id)
    return profile


def update_price_profile(actor: Seller, profile_id: int, command: PriceProfileCommand) -> PriceProfile:
    """Replace name, notes and items. Orders keep their own price snapshot."""
    profile = get_price_profile(actor, profile_id)
    if not can_manage(actor, profile):
        raise ForbiddenError("You cannot edit this price profile")

    profile.name = command.name
    profile.notes = command.notes
    if command.effective_from:
        profile.effective_from = command.effective_from

    new_items = _build_items(command.items)
    profile.items.clear()
    db.session.flush()
    profile.items.extend(new_items)

    db.session.commit()
    return profile


def set_price_profile_active(actor: Seller, profile_id: int, active: bool) -> PriceProfile:
    profile = get_price_profile(actor, profile_id)
    if not can_manage(actor, profile):
        raise ForbiddenError("You cannot change this price profile")

    if profile.type == PRICE_PROFILE_COST:
        if not active and profile.is_active:
            raise ConflictError("The active cost profile cannot be deactivated; activate another one instead")
        if active:
            _deactivate_other_cost_profiles(keep_id=profile.id)

    profile.is_active = bool(active)
    db.session.commit()
    current_app.logger.info(
        "Price profile %s %s by %s", profile.id, "activated" if active else "deactivated", actor.id
    )
    return profile


def clone_price_profile(actor: Seller, profile_id: int) -> PriceProfile:
    """
    Copy a profile as an inactive draft named "<name> - YYYY-MM-DD".

    A seller cloning a global SALE profile gets a copy scoped to themselves.
    """
    source = get_price_profile(actor, profile_id)
    if source.type == PRICE_PROFILE_COST and not actor.is_admin:
        raise ForbiddenError("Only administrators can manage cost profiles")

    now = utcnow()
    suffix = f" - {now.date().isoformat()}"
    name = f"{source.name[:140 - len(suffix)]}{suffix}"

    if actor.is_admin:
        seller_id, seller_name = source.seller_id, source.seller_name
    else:
        seller_id, seller_name = actor.id, actor.name

    clone = PriceProfile(
        name=name,
        type=source.type,
        seller_id=seller_id,
        seller_name=seller_name,
        effective_from=now,
        notes=source.notes,
        is_active=False,
    )
    clone.items = [
        PriceProfileItem(
            product_id=item.product_id,
            product_name=item.product_name,
            price_per_kg=item.price_per_kg,
            position=item.position,
        )
        for item in source.items
    ]
    db.session.add(clone)
    db.session.commit()
    return clone


def round_to_thousand(value: float) -> int:
    return int(round(value / 1000.0)) * 1000


def seed_initial_catalog(actor: Seller, *, now: datetime | None = None) -> dict:
    """
    Upsert the starter products and create default price profiles.

    Creates "Default Cost Price" (active COST) when no COST profile exists and
    "Reference Sale Price" (global SALE at cost + 20%, rounded to the nearest
    thousand) when no SALE profile exists. Safe to run repeatedly.
    """
    if not actor.is_admin:
        raise ForbiddenError("Administrator access required")

    now = now or utcnow()
    created_products = 0
    products: dict[str, Product] = {}
    for name, _cost in INITIAL_PRODUCTS:
        product = db.session.query(Product).filter_by(name=name).first()
        if not product:
            product = Product(name=name, unit="kg", is_active=True)
            db.session.add(product)
            created_products += 1
        products[name] = product
    db.session.flush()

    created_profiles = []

    if not db.session.query(PriceProfile.id).filter_by(type=PRICE_PROFILE_COST).first():
        cost = PriceProfile(
            name="Default Cost Price",
            type=PRICE_PROFILE_COST,
            effective_from=now,
            is_active=True,
            notes="Auto-generated from initial seed data",
        )
        cost.items = [
            PriceProfileItem(product_id=products[name].id, product_name=name, price_per_kg=float(price), position=i)
            for i, (name, price) in enumerate(INITIAL_PRODUCTS)
        ]
        db.session.add(cost)
        created_profiles.append(cost)

    if not db.session.query(PriceProfile.id).filter_by(type=PRICE_PROFILE_SALE).first():
        sale = PriceProfile(
            name="Reference Sale Price",
            type=PRICE_PROFILE_SALE,
            effective_from=now,
            is_active=True,
            notes="Auto-generated: cost + 20%",
        )
        sale.items = [
            PriceProfileItem(
                product_id=products[name].id,
                product_name=name,
                price_per_kg=float(round_to_thousand(price * 1.2)),
                position=i,
            )
            for i, (name, price) in enumerate(INITIAL_PRODUCTS)
        ]
        db.session.add(sale)
        created_profiles.append(sale)

    db.session.commit()
    current_app.logger.info(
        "Seeded catalog: %s new products, %s new profiles", created_products, len(created_profiles)
    )
    return {
        "products_created": created_products,
        "profiles_created": [p.name for p in created_profiles],
    }
