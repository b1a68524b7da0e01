"""
Pytest fixtures for Attar POS backend tests.

Provides test database setup, users, auth headers and test client.
"""

import pytest
from attar_pos import create_app
from attar_pos.extensions import db
from attar_pos.models import InventoryItem, User
from attar_pos.services.auth_service import hash_password
from attar_pos.services import session_service


ADMIN_PASSWORD = "admin123"
CASHIER_PASSWORD = "cashier123"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'STORAGE_RETRY_BACKOFF': 0,
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

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='session')
def password_hashes():
    """bcrypt is slow on purpose; hash the fixture passwords once."""
    return {
        "admin": hash_password(ADMIN_PASSWORD),
        "cashier": hash_password(CASHIER_PASSWORD),
    }


@pytest.fixture(scope='function')
def admin_user(db_session, password_hashes):
    user = User(
        username="admin",
        password_hash=password_hashes["admin"],
        display_name="Admin",
        role="admin",
    )
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def cashier_user(db_session, password_hashes):
    user = User(
        username="cashier",
        password_hash=password_hashes["cashier"],
        display_name="Cashier",
        role="cashier",
    )
    db_session.add(user)
    db_session.commit()
    return user


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    _, token = session_service.create_session(admin_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def cashier_headers(cashier_user):
    _, token = session_service.create_session(cashier_user.id)
    return auth_headers(token)


@pytest.fixture(scope='function')
def make_item(db_session):
    """Factory for inventory items inserted directly."""
    def _make(name="Rose Attar", type="Attar", price=500, stock=10):
        item = InventoryItem(name=name, type=type, price=price, stock=stock)
        db_session.add(item)
        db_session.commit()
        return item
    return _make


def sale_line(item, qty, rate=None):
    """Line payload with amount = qty x rate."""
    rate = rate if rate is not None else float(item.price)
    return {"item_id": item.id, "name": item.name, "qty": qty, "rate": rate, "amount": rate * qty}


def totals_for(lines, discount_amount=0, gst_amount=0):
    subtotal = sum(line["amount"] for line in lines)
    taxable = subtotal - discount_amount
    return {
        "subtotal": subtotal,
        "discount_amount": discount_amount,
        "taxable": taxable,
        "gst_amount": gst_amount,
        "grand_total": taxable + gst_amount,
    }
