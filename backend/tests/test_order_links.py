"""
Customer order link tests: creation rules, public resolution and ordering.
"""

from datetime import timedelta

import pytest

from chaflow.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from chaflow.models import CustomerOrderLink, Customer
from chaflow.services import order_link_service, maintenance_service, customer_service
from chaflow.time_utils import utcnow
from chaflow.validation import OrderLinkCommand, PublicOrderCommand, OrderLineInput
from conftest import DELIVERY_DATE


def _link_command(profile, *, lifetime=timedelta(days=3), seller_id=None):
    return OrderLinkCommand(sale_profile_id=profile.id, expires_at=utcnow() + lifetime, seller_id=seller_id)


@pytest.fixture
def link(db_session, seller, cost_profile, sale_profile):
    return order_link_service.create_order_link(seller, _link_command(sale_profile))


class TestCreateLink:

    def test_freezes_profile_items(self, db_session, link, sale_profile):
        sale_profile.items[0].price_per_kg = 1.0
        db_session.commit()

        assert link.is_active is True
        assert link.price_map()[sale_profile.items[1].product_id] == 200_000
        assert link.items[0].price_per_kg == 130_000
        assert order_link_service.TOKEN_PATTERN.match(link.token)

    @pytest.mark.parametrize("lifetime", [timedelta(minutes=1), timedelta(days=61)])
    def test_lifetime_bounds(self, db_session, seller, sale_profile, lifetime):
        with pytest.raises(ValidationError):
            order_link_service.create_order_link(seller, _link_command(sale_profile, lifetime=lifetime))

    def test_new_link_deactivates_previous(self, db_session, seller, link, sale_profile):
        newer = order_link_service.create_order_link(seller, _link_command(sale_profile))

        db_session.refresh(link)
        assert link.is_active is False
        assert newer.is_active is True

    def test_seller_cannot_create_for_others(self, db_session, seller, other_seller, sale_profile):
        with pytest.raises(ForbiddenError):
            order_link_service.create_order_link(seller, _link_command(sale_profile, seller_id=other_seller.id))

    def test_admin_creates_for_seller(self, db_session, admin, seller, sale_profile):
        created = order_link_service.create_order_link(admin, _link_command(sale_profile, seller_id=seller.id))
        assert created.seller_id == seller.id
        assert created.created_by_seller_id == admin.id

    def test_listing_is_scoped(self, db_session, link, other_seller, admin):
        assert order_link_service.list_order_links(other_seller) == []
        assert [l.id for l in order_link_service.list_order_links(admin)] == [link.id]


class TestPublicLink:

    @pytest.mark.parametrize("token", ["", "short", "has spaces in it!!", "x" * 200])
    def test_malformed_token(self, db_session, token):
        with pytest.raises(NotFoundError):
            order_link_service.get_public_link(token)

    def test_unknown_token(self, db_session):
        with pytest.raises(NotFoundError):
            order_link_service.get_public_link("A" * 24)

    def test_inactive_link(self, db_session, seller, link):
        order_link_service.set_order_link_active(seller, link.id, False)
        with pytest.raises(ConflictError):
            order_link_service.get_public_link(link.token)

    def test_expired_link(self, db_session, link):
        link.expires_at = utcnow() - timedelta(seconds=1)
        db_session.commit()
        with pytest.raises(ConflictError):
            order_link_service.get_public_link(link.token)

    def test_disabled_seller(self, db_session, seller, link):
        seller.is_enabled = False
        db_session.commit()
        with pytest.raises(ConflictError):
            order_link_service.get_public_link(link.token)

    def test_start_customer_finds_by_phone(self, db_session, link, customer):
        found = order_link_service.start_public_customer(link.token, " 0901 234\u200b567 ")
        assert found.id == customer.id

    def test_start_customer_creates_new(self, db_session, link):
        created = order_link_service.start_public_customer(link.token, "0987654321")
        assert created.name == "Customer 0987654321"
        assert db_session.query(Customer).count() == 1


class TestPublicOrder:

    def test_places_order_for_link_seller(self, db_session, seller, link, products, customer):
        a, _ = products
        command = PublicOrderCommand(
            customer_id=customer.id,
            lines=(OrderLineInput(a.id, 2),),
            delivery_date=DELIVERY_DATE,
        )

        order = order_link_service.submit_public_order(link.token, command)

        assert order.seller_id == seller.id
        assert order.sale_profile_id == link.sale_profile_id
        assert order.total_sale_amount == 260_000
        assert order.fulfillment_status == "PENDING_APPROVAL"
        refreshed = db_session.get(CustomerOrderLink, link.id)
        assert refreshed.usage_count == 1
        assert refreshed.last_used_at is not None

    def test_uses_link_prices_not_current_profile(self, db_session, link, products, customer, sale_profile):
        a, _ = products
        sale_profile.items[0].price_per_kg = 500_000
        db_session.commit()

        order = order_link_service.submit_public_order(
            link.token,
            PublicOrderCommand(customer_id=customer.id, lines=(OrderLineInput(a.id, 1),), delivery_date=DELIVERY_DATE),
        )
        assert order.lines[0].sale_price_per_kg == 130_000


class TestMaintenance:

    def test_expire_links(self, db_session, link):
        link.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()

        assert maintenance_service.deactivate_expired_order_links() == 1
        db_session.refresh(link)
        assert link.is_active is False

    def test_normalize_phone(self):
        assert customer_service.normalize_phone("\ufeff090 123\u200c4567\t") == "0901234567"
