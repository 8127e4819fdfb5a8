"""
Pytest fixtures for RetailPOS backend tests.

Provides test database setup, operator accounts, a small catalog and the
test client.
"""

import pytest

from retailpos import create_app
from retailpos.extensions import db
from retailpos.models import Customer, Product, User
from retailpos.models.auth import DEFAULT_USER_PERMISSIONS, ROLE_ADMIN, ROLE_USER
from retailpos.services.auth_service import hash_password


PASSWORD = "secret123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SECRET_KEY': 'test',
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'POINTS_CURRENCY_UNIT': 10,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='session')
def password_hash():
    """bcrypt is slow on purpose; hash the shared test password once."""
    return hash_password(PASSWORD)


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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def admin_user(db_session, password_hash):
    user = User(
        username="admin",
        name="Admin",
        email="admin@test.local",
        password_hash=password_hash,
        role=ROLE_ADMIN,
        permissions=None,
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def cashier_user(db_session, password_hash):
    user = User(
        username="cashier",
        name="Cashier",
        email="cashier@test.local",
        password_hash=password_hash,
        role=ROLE_USER,
        permissions=list(DEFAULT_USER_PERMISSIONS),
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin_headers(client, admin_user):
    return auth_headers(get_auth_token(client, "admin", PASSWORD))


@pytest.fixture(scope='function')
def cashier_headers(client, cashier_user):
    return auth_headers(get_auth_token(client, "cashier", PASSWORD))


@pytest.fixture(scope='function')
def catalog(db_session):
    """Product A: 10.00, stock 5. Product B: 5.00, stock 3. Returns ids."""
    product_a = Product(
        name="Product A",
        price_cents=1000,
        cost_cents=600,
        stock=5,
        min_stock=1,
        category="Groceries",
        barcode="7890000000011",
    )
    product_b = Product(
        name="Product B",
        price_cents=500,
        cost_cents=200,
        stock=3,
        min_stock=3,
        category="Groceries",
        custom_category="Snacks",
    )
    db_session.add_all([product_a, product_b])
    db_session.commit()
    return {"a": product_a.id, "b": product_b.id}


@pytest.fixture(scope='function')
def customer(db_session):
    c = Customer(name="Maria Souza", phone="+55 11 98888-0001", email="maria@example.com")
    db_session.add(c)
    db_session.commit()
    return c


def stock_of(product_id: int) -> int:
    """Read stock straight from the database (bypasses the identity map)."""
    return db.session.query(Product.stock).filter(Product.id == product_id).scalar()


def customer_totals(customer_id: int) -> tuple:
    return (
        db.session.query(Customer.total_purchases, Customer.total_spent_cents, Customer.points)
        .filter(Customer.id == customer_id)
        .one()
    )


def get_auth_token(client, username: str, password: str) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
