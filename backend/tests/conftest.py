"""
Pytest fixtures for ShopStock backend tests.

Provides test database setup, one user per role, a small catalog, and
authenticated test-client headers.
"""

from decimal import Decimal

import pytest
from shopstock import create_app
from shopstock.cache import cache
from shopstock.extensions import db
from shopstock.models import Customer, Product, Supplier, User, ROLE_ADMIN, ROLE_MANAGER, ROLE_CLERK
from shopstock.services.auth_service import hash_password
from shopstock.services.authorization import Actor

PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()
        cache.clear()

        yield db.session

        # Cleanup after test
        db.session.rollback()


def _make_user(db_session, name: str, email: str, role: str) -> User:
    user = User(name=name, email=email, password_hash=hash_password(PASSWORD), role=role)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_user(db_session):
    return _make_user(db_session, "Ada Admin", "admin@shop.test", ROLE_ADMIN)


@pytest.fixture(scope='function')
def manager_user(db_session):
    return _make_user(db_session, "Max Manager", "manager@shop.test", ROLE_MANAGER)


@pytest.fixture(scope='function')
def clerk_user(db_session):
    return _make_user(db_session, "Cleo Clerk", "clerk@shop.test", ROLE_CLERK)


@pytest.fixture(scope='function')
def seed(admin_user, manager_user, clerk_user):
    """All three roles present."""
    return {"admin": admin_user, "manager": manager_user, "clerk": clerk_user}


@pytest.fixture(scope='function')
def admin_actor(admin_user):
    return Actor.from_user(admin_user)


@pytest.fixture(scope='function')
def manager_actor(manager_user):
    return Actor.from_user(manager_user)


@pytest.fixture(scope='function')
def clerk_actor(clerk_user):
    return Actor.from_user(clerk_user)


@pytest.fixture(scope='function')
def supplier(db_session):
    s = Supplier(name="Acme Wholesale", contact_person="Wile E.", email="orders@acme.test")
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Jane Buyer", email="jane@example.test")
    db_session.add(c)
    db_session.commit()
    return c


def make_product(db_session, sku: str, **fields) -> Product:
    values = {
        "name": f"Product {sku}",
        "cost_price": Decimal("5.0000"),
        "sale_price": Decimal("19.99"),
        "stock_qty": 10,
        "min_stock": 5,
    }
    values.update(fields)
    product = Product(sku=sku, **values)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def product(db_session):
    """stock 10 @ cost 5.00, sells for 19.99."""
    return make_product(db_session, "SKU-001", name="Blue Widget", brand="Acme", category="Widgets")


@pytest.fixture(scope='function')
def other_product(db_session):
    return make_product(
        db_session, "SKU-002", name="Red Gadget", brand="Globex", category="Gadgets",
        cost_price=Decimal("2.0000"), sale_price=Decimal("4.50"), stock_qty=3,
    )


def get_auth_token(client, email: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
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
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, admin_user.email))


@pytest.fixture(scope='function')
def manager_headers(client, manager_user):
    return auth_headers(get_auth_token(client, manager_user.email))


@pytest.fixture(scope='function')
def clerk_headers(client, clerk_user):
    return auth_headers(get_auth_token(client, clerk_user.email))
