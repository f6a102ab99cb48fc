"""
Pytest fixtures for print shop backend tests.

Provides test database setup, a company/branch/product catalog, a pinned
action context and the Flask test client.
"""

from datetime import datetime
from decimal import Decimal

import pytest
from printshop import create_app
from printshop.context import ActionContext
from printshop.extensions import db
from printshop.models import Branch, Company, Product


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'CONCURRENCY_BACKOFF_BASE': 0,
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
def ctx():
    """Acting user 7 at a fixed wall-clock time."""
    return ActionContext(actor_user_id=7, now=datetime(2026, 3, 14, 9, 30, 0))


@pytest.fixture(scope='function')
def company(db_session):
    company = Company(name="Colombo Print House", code="CPH", tax_rate=Decimal("0.12"))
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def other_company(db_session):
    company = Company(name="Kandy Press", code="KDY", tax_rate=Decimal("0.08"))
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def branch(db_session, company):
    branch = Branch(company_id=company.id, name="Colombo Main", code="COL")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope='function')
def product(db_session, company):
    """Flyer pack: 100.00 each, 200 g per unit, no product tax."""
    product = Product(
        company_id=company.id,
        name="A5 Flyer Pack",
        product_code="FLY-A5",
        base_price=Decimal("100.00"),
        weight_per_unit=Decimal("200"),
        weight_unit="grams",
        tax_rate=Decimal("0"),
    )
    db_session.add(product)
    db_session.commit()
    return product


@pytest.fixture(scope='function')
def bounded_product(db_session, company):
    """Business cards sold in boxes of 1..10, 15% product tax, weight in kg."""
    product = Product(
        company_id=company.id,
        name="Business Card Box",
        product_code="BC-BOX",
        base_price=Decimal("1500.00"),
        weight_per_unit=Decimal("0.250"),
        weight_unit="kg",
        tax_rate=Decimal("15"),
        minimum_quantity=1,
        maximum_quantity=10,
    )
    db_session.add(product)
    db_session.commit()
    return product
