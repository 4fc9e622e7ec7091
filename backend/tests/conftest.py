"""
Pytest fixtures for CHAFLOW backend tests.

Provides an in-memory database, seller accounts, a priced catalog and a
test client. The client does not keep cookies; requests authenticate with
"Authorization: Bearer <token>" unless a test sends the cookie itself.
"""

from datetime import date

import pytest
from chaflow import create_app
from chaflow.extensions import db
from chaflow.models import Seller, Product, PriceProfile, PriceProfileItem, Customer
from chaflow.constants import ROLE_ADMIN, ROLE_SELLER, PRICE_PROFILE_COST, PRICE_PROFILE_SALE
from chaflow.services.auth_service import hash_password


ADMIN_PASSWORD = "Admin@123"
SELLER_PASSWORD = "Seller@123"
DELIVERY_DATE = date(2026, 10, 20)


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'PASSWORD_HASH_ROUNDS': 1,
        'LOG_LEVEL': 'WARNING',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client(use_cookies=False)


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        db.session.remove()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_seller(db_session, *, name, email, password, role):
    seller = Seller(
        name=name,
        email=email,
        role=role,
        is_enabled=True,
        password_hash=hash_password(password),
    )
    db_session.add(seller)
    db_session.commit()
    return seller


@pytest.fixture(scope='function')
def admin(db_session):
    """The administrator account."""
    return _make_seller(db_session, name="GC Admin", email="admin@gc.vn", password=ADMIN_PASSWORD, role=ROLE_ADMIN)


@pytest.fixture(scope='function')
def seller(db_session):
    """A regular seller."""
    return _make_seller(db_session, name="Seller Hoa", email="hoa@gc.vn", password=SELLER_PASSWORD, role=ROLE_SELLER)


@pytest.fixture(scope='function')
def other_seller(db_session):
    return _make_seller(db_session, name="Seller Minh", email="minh@gc.vn", password=SELLER_PASSWORD, role=ROLE_SELLER)


@pytest.fixture(scope='function')
def products(db_session):
    """Two active products: A (Lụa) and B (Bò)."""
    a = Product(name="Lụa", unit="kg", is_active=True)
    b = Product(name="Bò", unit="kg", is_active=True)
    db_session.add_all([a, b])
    db_session.commit()
    return a, b


def _make_profile(db_session, *, name, profile_type, prices, seller=None, is_active=True):
    profile = PriceProfile(
        name=name,
        type=profile_type,
        seller_id=seller.id if seller else None,
        seller_name=seller.name if seller else None,
        is_active=is_active,
    )
    profile.items = [
        PriceProfileItem(product_id=product.id, product_name=product.name, price_per_kg=float(price), position=i)
        for i, (product, price) in enumerate(prices)
    ]
    db_session.add(profile)
    db_session.commit()
    return profile


@pytest.fixture(scope='function')
def cost_profile(db_session, products):
    """Active COST profile: A = 100,000/kg, B = 160,000/kg."""
    a, b = products
    return _make_profile(db_session, name="Cost Q4", profile_type=PRICE_PROFILE_COST, prices=[(a, 100_000), (b, 160_000)])


@pytest.fixture(scope='function')
def sale_profile(db_session, products):
    """Active global SALE profile: A = 130,000/kg, B = 200,000/kg."""
    a, b = products
    return _make_profile(db_session, name="Sale Q4", profile_type=PRICE_PROFILE_SALE, prices=[(a, 130_000), (b, 200_000)])


@pytest.fixture(scope='function')
def make_profile(db_session):
    """Factory for additional price profiles."""
    def _factory(**kwargs):
        return _make_profile(db_session, **kwargs)
    return _factory


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Chị Lan", phone="0901234567", is_active=True)
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def catalog(cost_profile, sale_profile, customer):
    """Everything needed to place an order."""
    return {"cost": cost_profile, "sale": sale_profile, "customer": customer}


def get_auth_token(client, email: str, password: str) -> str:
    """Helper to get auth token for a seller."""
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, admin):
    return auth_headers(get_auth_token(client, admin.email, ADMIN_PASSWORD))


@pytest.fixture(scope='function')
def seller_headers(client, seller):
    return auth_headers(get_auth_token(client, seller.email, SELLER_PASSWORD))
