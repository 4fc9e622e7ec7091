"""
HTTP tests for CHAFLOW.

Verifies:
- Unauthenticated requests return 401 with a login redirect
- Sellers are denied admin operations (403)
- Login / logout / change-password session handling, cookie and bearer
- The order flow end to end over HTTP, including the public link flow
- Health reporting and the degraded response for database outages
"""

from datetime import timedelta

import pytest
from sqlalchemy.exc import OperationalError

from chaflow.models import SellerSession
from chaflow.services import reporting_service
from chaflow.time_utils import utcnow, to_utc_z
from conftest import SELLER_PASSWORD, get_auth_token, auth_headers


# =============================================================================
# UNAUTHENTICATED ACCESS: 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("POST", "/api/auth/change-password"),
            ("GET", "/api/sellers"),
            ("GET", "/api/products"),
            ("GET", "/api/price-profiles"),
            ("GET", "/api/customers"),
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("GET", "/api/order-links"),
            ("GET", "/api/reports/dashboard"),
            ("GET", "/api/reports/sellers/1/trend"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["redirect"] == "/login"

    def test_garbage_bearer_token(self, client, db_session):
        resp = client.get("/api/orders", headers=auth_headers("garbage"))
        assert resp.status_code == 401


# =============================================================================
# SELLER DENIED ADMIN OPERATIONS: 403
# =============================================================================


class TestSellerDeniedAdmin:

    @pytest.mark.parametrize(
        "method,path,body",
        [
            ("GET", "/api/sellers", None),
            ("POST", "/api/sellers", {"name": "x", "email": "x@gc.vn", "password": "password1"}),
            ("POST", "/api/products", {"name": "Chả"}),
            ("DELETE", "/api/products/1", None),
            ("POST", "/api/price-profiles/seed", None),
            ("POST", "/api/orders/1/statuses", {"collection_status": "PAID_IN_FULL"}),
            ("POST", "/api/orders/1/approval", {"decision": "APPROVE_ORDER"}),
            ("POST", "/api/orders/1/discount-review", {"approve": True}),
            ("GET", "/api/reports/dashboard", None),
            ("GET", "/api/reports/sellers", None),
        ],
    )
    def test_forbidden(self, client, seller_headers, method, path, body):
        kwargs = {"headers": seller_headers}
        if body is not None:
            kwargs["json"] = body
        resp = getattr(client, method.lower())(path, **kwargs)
        assert resp.status_code == 403

    def test_cannot_read_other_sellers_trend(self, client, seller_headers, other_seller):
        resp = client.get(f"/api/reports/sellers/{other_seller.id}/trend", headers=seller_headers)
        assert resp.status_code == 403


# =============================================================================
# AUTH
# =============================================================================


class TestAuthRoutes:

    def test_login_sets_cookie_and_returns_token(self, client, seller):
        resp = client.post("/api/auth/login", json={"email": seller.email, "password": SELLER_PASSWORD})

        assert resp.status_code == 200
        assert resp.json["seller"]["email"] == seller.email
        assert "password_hash" not in resp.json["seller"]
        cookie = resp.headers.get("Set-Cookie")
        assert cookie.startswith(f"CHAFLOW_SESSION={resp.json['token']}")
        assert "HttpOnly" in cookie
        assert "SameSite=Lax" in cookie

    def test_cookie_authenticates(self, client, seller):
        token = get_auth_token(client, seller.email, SELLER_PASSWORD)
        resp = client.get("/api/auth/me", headers={"Cookie": f"CHAFLOW_SESSION={token}"})
        assert resp.status_code == 200
        assert resp.json["seller"]["id"] == seller.id

    def test_login_creates_bootstrap_admin(self, app, client, db_session):
        resp = client.post("/api/auth/login", json={
            "email": app.config["ADMIN_EMAIL"],
            "password": app.config["ADMIN_PASSWORD"],
        })
        assert resp.status_code == 200
        assert resp.json["seller"]["role"] == "ADMIN"

    @pytest.mark.parametrize("body,status", [
        ({}, 400),
        ({"email": "hoa@gc.vn", "password": "wrong-password"}, 401),
        ({"email": "nobody@gc.vn", "password": SELLER_PASSWORD}, 401),
    ])
    def test_bad_login(self, client, seller, body, status):
        assert client.post("/api/auth/login", json=body).status_code == status

    def test_disabled_seller_cannot_login(self, client, db_session, seller):
        seller.is_enabled = False
        db_session.commit()
        resp = client.post("/api/auth/login", json={"email": seller.email, "password": SELLER_PASSWORD})
        assert resp.status_code == 401

    def test_logout_revokes_session(self, client, seller):
        token = get_auth_token(client, seller.email, SELLER_PASSWORD)

        resp = client.post("/api/auth/logout", headers=auth_headers(token))

        assert resp.status_code == 200
        assert resp.json["redirect"] == "/login"
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_logout_without_session(self, client, db_session):
        assert client.post("/api/auth/logout").status_code == 200

    def test_change_password_logs_out_everywhere(self, client, db_session, seller):
        first = get_auth_token(client, seller.email, SELLER_PASSWORD)
        second = get_auth_token(client, seller.email, SELLER_PASSWORD)

        resp = client.post("/api/auth/change-password", headers=auth_headers(first), json={
            "current_password": SELLER_PASSWORD,
            "new_password": "fresh-password",
            "confirm_password": "fresh-password",
        })

        assert resp.status_code == 200
        assert resp.json["sessions_revoked"] == 2
        assert db_session.query(SellerSession).count() == 0
        assert client.get("/api/auth/me", headers=auth_headers(second)).status_code == 401
        assert get_auth_token(client, seller.email, "fresh-password") is not None

    def test_disabling_seller_ends_session(self, client, admin_headers, seller):
        token = get_auth_token(client, seller.email, SELLER_PASSWORD)

        resp = client.post(f"/api/sellers/{seller.id}/status", headers=admin_headers, json={"is_enabled": False})

        assert resp.status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401


# =============================================================================
# ORDER FLOW
# =============================================================================


class TestOrderFlow:

    def _create(self, client, headers, customer, product, **extra):
        body = {
            "customer_id": customer.id,
            "delivery_date": "2026-10-20",
            "lines": [{"product_id": product.id, "weight_kg": 2}],
        }
        body.update(extra)
        return client.post("/api/orders", headers=headers, json=body)

    def test_seller_creates_and_admin_approves(self, client, admin_headers, seller_headers, products, catalog):
        a, _ = products
        created = self._create(client, seller_headers, catalog["customer"], a)

        assert created.status_code == 201
        body = created.json
        assert body["total_sale_amount"] == 260_000
        assert body["total_profit_amount"] == 60_000
        assert body["fulfillment_status"] == "PENDING_APPROVAL"
        assert body["approval"]["status"] == "PENDING"
        assert body["lines"][0]["sale_price_per_kg"] == 130_000

        discount = client.post(
            f"/api/orders/{body['id']}/discount-request",
            headers=seller_headers,
            json={"percent": 10, "reason": "Regular customer"},
        )
        assert discount.status_code == 200
        assert discount.json["discount_request"]["status"] == "PENDING"

        approved = client.post(
            f"/api/orders/{body['id']}/approval",
            headers=admin_headers,
            json={"decision": "APPROVE_WITH_DISCOUNT"},
        )
        assert approved.status_code == 200
        assert approved.json["fulfillment_status"] == "CONFIRMED"
        assert approved.json["total_sale_amount"] == 234_000
        assert approved.json["total_profit_amount"] == 34_000

        delivering = client.post(
            f"/api/orders/{body['id']}/statuses",
            headers=admin_headers,
            json={"fulfillment_status": "DELIVERING", "collection_status": "PAID_IN_FULL"},
        )
        assert delivering.status_code == 200
        assert delivering.json["collection_status"] == "PAID_IN_FULL"

    def test_invalid_payload_is_400(self, client, seller_headers, catalog):
        resp = client.post("/api/orders", headers=seller_headers, json={"customer_id": catalog["customer"].id})
        assert resp.status_code == 400
        assert "error" in resp.json

    def test_missing_cost_profile_is_404(self, client, seller_headers, customer, products, sale_profile):
        a, _ = products
        resp = self._create(client, seller_headers, customer, a)
        assert resp.status_code == 404

    def test_transition_conflict_is_409(self, client, admin_headers, seller_headers, products, catalog):
        a, _ = products
        order_id = self._create(client, seller_headers, catalog["customer"], a).json["id"]
        resp = client.post(
            f"/api/orders/{order_id}/statuses",
            headers=admin_headers,
            json={"fulfillment_status": "DELIVERED"},
        )
        assert resp.status_code == 409

    def test_other_seller_gets_404(self, client, seller_headers, other_seller, products, catalog):
        a, _ = products
        order_id = self._create(client, seller_headers, catalog["customer"], a).json["id"]
        other_headers = auth_headers(get_auth_token(client, other_seller.email, SELLER_PASSWORD))

        assert client.get(f"/api/orders/{order_id}", headers=other_headers).status_code == 404

    def test_list_orders_with_filters(self, client, seller_headers, products, catalog):
        a, _ = products
        self._create(client, seller_headers, catalog["customer"], a)

        resp = client.get("/api/orders?fulfillment_status=PENDING_APPROVAL&year=2026", headers=seller_headers)

        assert resp.status_code == 200
        assert resp.json["count"] == 1
        assert "lines" not in resp.json["items"][0]


# =============================================================================
# CATALOG AND CUSTOMERS
# =============================================================================


class TestCatalogRoutes:

    def test_admin_seeds_catalog(self, client, admin_headers):
        resp = client.post("/api/price-profiles/seed", headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["products_created"] == 11

        products = client.get("/api/products", headers=admin_headers)
        assert products.json["count"] == 11

    def test_seller_sees_current_sale_profile(self, client, seller_headers, cost_profile, sale_profile):
        resp = client.get("/api/price-profiles/current", headers=seller_headers)
        assert resp.json["sale"]["id"] == sale_profile.id
        assert resp.json["cost"] is None

    def test_seller_creates_own_sale_profile(self, client, seller, seller_headers, products):
        a, _ = products
        resp = client.post("/api/price-profiles", headers=seller_headers, json={
            "name": "Hoa weekend",
            "type": "SALE",
            "items": [{"product_id": a.id, "price_per_kg": 140000}],
        })
        assert resp.status_code == 201
        assert resp.json["seller_id"] == seller.id

    def test_customer_crud(self, client, seller_headers):
        created = client.post("/api/customers", headers=seller_headers, json={"name": "Anh Tuấn", "phone": "0912 000 111"})
        assert created.status_code == 201
        assert created.json["phone"] == "0912000111"

        updated = client.put(
            f"/api/customers/{created.json['id']}", headers=seller_headers, json={"notes": "Giao buổi sáng"},
        )
        assert updated.status_code == 200
        assert updated.json["notes"] == "Giao buổi sáng"

    def test_customer_unknown_field(self, client, seller_headers):
        resp = client.post("/api/customers", headers=seller_headers, json={"name": "X", "phone": "1", "order_count": 9})
        assert resp.status_code == 400

    def test_customer_string_flag_rejected(self, client, seller_headers):
        resp = client.post(
            "/api/customers", headers=seller_headers, json={"name": "X", "phone": "1", "is_active": "false"},
        )
        assert resp.status_code == 400
        assert "is_active" in resp.json["error"]


# =============================================================================
# PUBLIC ORDER LINKS
# =============================================================================


class TestPublicLinkRoutes:

    def test_public_flow(self, client, seller_headers, products, catalog):
        a, _ = products
        link = client.post("/api/order-links", headers=seller_headers, json={
            "sale_profile_id": catalog["sale"].id,
            "expires_at": "2099-01-01T00:00:00Z",
        })
        # more than 60 days away
        assert link.status_code == 400

        link = client.post("/api/order-links", headers=seller_headers, json={
            "sale_profile_id": catalog["sale"].id,
            "expires_at": to_utc_z(utcnow() + timedelta(days=2)),
        })
        assert link.status_code == 201
        token = link.json["token"]

        public = client.get(f"/api/public/order-links/{token}")
        assert public.status_code == 200
        assert [i["price_per_kg"] for i in public.json["items"]] == [130_000, 200_000]

        started = client.post(f"/api/public/order-links/{token}/customer", json={"phone": "0901234567"})
        assert started.status_code == 200
        assert started.json["customer_id"] == catalog["customer"].id

        placed = client.post(f"/api/public/order-links/{token}/orders", json={
            "customer_id": started.json["customer_id"],
            "delivery_date": "2026-10-20",
            "lines": [{"product_id": a.id, "weight_kg": 2}],
        })
        assert placed.status_code == 201
        assert placed.json["total_sale_amount"] == 260_000
        assert placed.json["fulfillment_status"] == "PENDING_APPROVAL"

    def test_unknown_token_is_404(self, client, db_session):
        assert client.get("/api/public/order-links/AAAAAAAAAAAAAAAA").status_code == 404


# =============================================================================
# REPORTS / HEALTH
# =============================================================================


class TestReportsAndHealth:

    def test_seller_reads_own_trend(self, client, seller, seller_headers):
        resp = client.get(f"/api/reports/sellers/{seller.id}/trend?granularity=MONTHLY&year=2026", headers=seller_headers)
        assert resp.status_code == 200
        assert len(resp.json["points"]) == 12

    def test_dashboard(self, client, admin_headers):
        resp = client.get("/api/reports/dashboard", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["total_orders"] == 0

    def test_health(self, client, db_session):
        resp = client.get("/api/health")
        assert resp.status_code == 200
        assert resp.json["status"] == "healthy"
        assert resp.json["degraded"] is False

    def test_database_outage_is_degraded(self, client, admin_headers, monkeypatch):
        def broken():
            raise OperationalError("SELECT 1", {}, Exception("database is locked"))

        monkeypatch.setattr(reporting_service, "dashboard_stats", broken)

        resp = client.get("/api/reports/dashboard", headers=admin_headers)

        assert resp.status_code == 503
        assert resp.json["degraded"] is True
