"""
Pytest fixtures for the back-office ledger tests.

Provides test database setup, two restaurants for cross-tenant cases,
seeded entities and a test client with actor headers.
"""

from datetime import datetime, timedelta

import pytest
from backoffice import create_app
from backoffice.extensions import db
from backoffice.models import Restaurant, Customer, Sale, Expense, InventoryItem
from backoffice.services import inventory_service
from backoffice.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
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
        db.session.expunge_all()


@pytest.fixture(scope='function')
def manager_headers():
    return {'X-User-Id': 'u-manager', 'X-User-Name': 'Mariama', 'X-User-Role': 'Manager'}


@pytest.fixture(scope='function')
def staff_headers():
    return {'X-User-Id': 'u-staff', 'X-User-Name': 'Ibrahima', 'X-User-Role': 'Staff'}


@pytest.fixture(scope='function')
def restaurant(db_session):
    """Restaurant A with 100,000 GNF opening cash."""
    r = Restaurant(
        name="Kaloum",
        initial_cash_balance=100_000,
        initial_orange_balance=20_000,
        initial_card_balance=0,
        stock_deduction_mode="immediate",
    )
    db_session.add(r)
    db_session.commit()
    return r


@pytest.fixture(scope='function')
def restaurant_b(db_session):
    """Restaurant B (second tenant, transfer target)."""
    r = Restaurant(name="Ratoma", stock_deduction_mode="immediate")
    db_session.add(r)
    db_session.commit()
    return r


@pytest.fixture(scope='function')
def customer(db_session, restaurant):
    c = Customer(restaurant_id=restaurant.id, name="Aissatou Diallo", phone="+224 620 00 00 00")
    db_session.add(c)
    db_session.commit()
    return c


@pytest.fixture(scope='function')
def sale(db_session, restaurant):
    """Pending sale: 50,000 cash + 10,000 card."""
    s = Sale(
        restaurant_id=restaurant.id,
        date=datetime(2026, 3, 2, 18, 0),
        total_gnf=60_000,
        cash_gnf=50_000,
        orange_money_gnf=0,
        card_gnf=10_000,
        status="Pending",
    )
    db_session.add(s)
    db_session.commit()
    return s


@pytest.fixture(scope='function')
def expense(db_session, restaurant):
    """Pending 50,000 GNF expense."""
    e = Expense(
        restaurant_id=restaurant.id,
        date=utcnow(),
        category_name="Utilities",
        description="Electricity March",
        amount_gnf=50_000,
        status="Pending",
    )
    db_session.add(e)
    db_session.commit()
    return e


def make_item(db_session, restaurant, name="Flour", stock=0, unit="kg", **extra):
    """Create an item and, when stock > 0, seed it through a Purchase movement."""
    item = InventoryItem(
        restaurant_id=restaurant.id,
        name=name,
        category=extra.pop("category", "Dry goods"),
        unit=unit,
        current_stock=0,
        min_stock=extra.pop("min_stock", 0),
        unit_cost_gnf=extra.pop("unit_cost_gnf", 1_000),
        **extra,
    )
    db_session.add(item)
    db_session.commit()
    if stock:
        inventory_service.adjust_stock(item.id, "Purchase", stock, reason="Opening stock")
    return item


@pytest.fixture(scope='function')
def flour(db_session, restaurant):
    """10 kg of flour in restaurant A."""
    return make_item(db_session, restaurant, "Flour", stock=10)


@pytest.fixture(scope='function')
def due_soon():
    return utcnow() + timedelta(days=30)
