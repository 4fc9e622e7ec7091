"""
Catalog tests: products and COST / SALE price profiles.
"""

import pytest

from chaflow.constants import PRICE_PROFILE_COST, PRICE_PROFILE_SALE
from chaflow.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from chaflow.models import PriceProfile, Product
from chaflow.services import price_profile_service, products_service
from chaflow.validation import PriceItemInput, PriceProfileCommand


def _command(name, profile_type, prices, is_active=True):
    return PriceProfileCommand(
        name=name,
        type=profile_type,
        items=tuple(PriceItemInput(product_id=p.id, price_per_kg=price) for p, price in prices),
        is_active=is_active,
    )


class TestCostProfiles:

    def test_first_cost_profile_is_forced_active(self, db_session, admin, products):
        a, _ = products
        profile = price_profile_service.create_price_profile(
            admin, _command("Cost v1", PRICE_PROFILE_COST, [(a, 90_000)], is_active=False)
        )
        assert profile.is_active is True
        assert price_profile_service.current_cost_profile().id == profile.id

    def test_activating_cost_profile_replaces_previous(self, db_session, admin, products, cost_profile):
        a, b = products
        newer = price_profile_service.create_price_profile(
            admin, _command("Cost v2", PRICE_PROFILE_COST, [(a, 110_000), (b, 170_000)])
        )

        active = db_session.query(PriceProfile).filter_by(type=PRICE_PROFILE_COST, is_active=True).all()
        assert [p.id for p in active] == [newer.id]

    def test_active_cost_profile_cannot_be_deactivated(self, db_session, admin, cost_profile):
        with pytest.raises(ConflictError):
            price_profile_service.set_price_profile_active(admin, cost_profile.id, False)

    def test_seller_cannot_manage_cost(self, db_session, seller, products):
        a, _ = products
        with pytest.raises(ForbiddenError):
            price_profile_service.create_price_profile(seller, _command("Mine", PRICE_PROFILE_COST, [(a, 1)]))

    def test_seller_cannot_see_cost(self, db_session, seller, cost_profile):
        with pytest.raises(NotFoundError):
            price_profile_service.get_price_profile(seller, cost_profile.id)


class TestSaleProfiles:

    def test_admin_sale_profile_is_global(self, db_session, admin, products):
        a, _ = products
        profile = price_profile_service.create_price_profile(admin, _command("Sale", PRICE_PROFILE_SALE, [(a, 150_000)]))
        assert profile.seller_id is None
        assert profile.is_global is True

    def test_seller_profile_wins_over_global(self, db_session, seller, products, sale_profile):
        a, b = products
        own = price_profile_service.create_price_profile(
            seller, _command("Hoa's prices", PRICE_PROFILE_SALE, [(a, 140_000), (b, 210_000)])
        )

        assert own.seller_id == seller.id
        assert price_profile_service.current_sale_profile(seller.id).id == own.id
        assert price_profile_service.current_sale_profile(None).id == sale_profile.id

    def test_seller_lists_global_and_own(self, db_session, seller, other_seller, products, cost_profile, sale_profile, make_profile):
        a, _ = products
        mine = make_profile(name="Mine", profile_type=PRICE_PROFILE_SALE, prices=[(a, 1)], seller=seller)
        make_profile(name="Theirs", profile_type=PRICE_PROFILE_SALE, prices=[(a, 2)], seller=other_seller)

        visible = {p.id for p in price_profile_service.list_price_profiles(seller)}

        assert visible == {sale_profile.id, mine.id}

    def test_seller_cannot_edit_global(self, db_session, seller, products, sale_profile):
        a, _ = products
        with pytest.raises(ForbiddenError):
            price_profile_service.update_price_profile(
                seller, sale_profile.id, _command("Edited", PRICE_PROFILE_SALE, [(a, 1)])
            )

    def test_update_replaces_items(self, db_session, admin, products, sale_profile):
        a, _ = products
        updated = price_profile_service.update_price_profile(
            admin, sale_profile.id, _command("Sale Q4 rev", PRICE_PROFILE_SALE, [(a, 135_000)])
        )
        assert updated.name == "Sale Q4 rev"
        assert updated.price_map() == {a.id: 135_000.0}

    def test_duplicate_items_rejected(self, db_session, admin, products):
        a, _ = products
        command = PriceProfileCommand(
            name="Dup", type=PRICE_PROFILE_SALE,
            items=(PriceItemInput(a.id, 1), PriceItemInput(a.id, 2)),
        )
        with pytest.raises(ValidationError):
            price_profile_service.create_price_profile(admin, command)

    def test_clone_is_inactive_draft(self, db_session, seller, sale_profile):
        clone = price_profile_service.clone_price_profile(seller, sale_profile.id)

        assert clone.is_active is False
        assert clone.name.startswith("Sale Q4 - ")
        assert clone.seller_id == seller.id
        assert clone.price_map() == sale_profile.price_map()


class TestSeed:

    def test_seed_is_idempotent(self, db_session, admin):
        first = price_profile_service.seed_initial_catalog(admin)
        second = price_profile_service.seed_initial_catalog(admin)

        assert first["products_created"] == 11
        assert first["profiles_created"] == ["Default Cost Price", "Reference Sale Price"]
        assert second == {"products_created": 0, "profiles_created": []}

    def test_seed_sale_prices_are_cost_plus_twenty_percent(self, db_session, admin):
        price_profile_service.seed_initial_catalog(admin)

        sale = price_profile_service.current_sale_profile(None)
        lua = db_session.query(Product).filter_by(name="Lụa").one()
        assert sale.is_global
        assert sale.price_map()[lua.id] == 156_000.0

    def test_round_to_thousand(self):
        assert price_profile_service.round_to_thousand(125_000 * 1.2) == 150_000
        assert price_profile_service.round_to_thousand(1_499) == 1_000


class TestProducts:

    def test_duplicate_name(self, db_session, products):
        with pytest.raises(ConflictError):
            products_service.create_product({"name": "Lụa"})

    def test_rename_syncs_price_items(self, db_session, products, sale_profile):
        a, _ = products
        products_service.update_product(a.id, {"name": "Chả lụa"})
        assert sale_profile.items[0].product_name == "Chả lụa"

    def test_list_filters(self, db_session, products):
        _, b = products
        products_service.set_product_active(b.id, False)

        result = products_service.list_products(status="active")

        assert result["count"] == 1
