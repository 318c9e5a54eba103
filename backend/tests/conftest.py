"""
Pytest fixtures for tablepos backend tests.

Provides an in-memory database, a per-test clean slate and the usual
restaurant entities: products, tables, an open register and a supplier.
"""

import pytest

from tablepos import create_app
from tablepos.extensions import db
from tablepos.models import CashRegister, DiningTable, Product, Shift, Supplier, TableState
from tablepos.time_utils import utcnow


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'CLOSURE_EXPENSE_SCOPE': 'system',
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


@pytest.fixture(scope='function')
def product(db_session):
    """Cola: stock 50, price 3000."""
    product = Product(name="Cola 500ml", category="Drinks", price_cents=3000, stock=50, min_stock=10)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def scarce_product(db_session):
    """Empanada: only 5 in stock."""
    product = Product(name="Empanada", category="Food", price_cents=1500, stock=5, min_stock=10)
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def table1(db_session):
    table = DiningTable(number=1, name="Window", state=TableState.FREE, total_cents=0)
    db_session.add(table)
    db_session.commit()
    return table


@pytest.fixture(scope='function')
def table2(db_session):
    table = DiningTable(number=2, name="Terrace", state=TableState.FREE, total_cents=0)
    db_session.add(table)
    db_session.commit()
    return table


@pytest.fixture(scope='function')
def open_register(db_session):
    """Register 1, morning shift, opened with a float of 100000."""
    register = CashRegister(
        register_number=1,
        shift=Shift.MORNING,
        cash_cents=100000,
        transfer_cents=0,
        receivable_cents=0,
        opening_float_cents=100000,
        is_open=True,
        opened_at=utcnow(),
        opened_by="ana",
    )
    db_session.add(register)
    db_session.commit()
    return register


@pytest.fixture(scope='function')
def supplier(db_session):
    supplier = Supplier(name="Distribuidora Sur", phone="555-0100", is_active=True)
    db_session.add(supplier)
    db_session.commit()
    return supplier
