"""
Pytest fixtures for multico backend tests.

Provides test database setup, two tenants with sister companies, linked
counterparties and a test client with tenant headers.
"""

import pytest
from multico import create_app
from multico.config import TestConfig
from multico.decorators import TENANT_HEADER
from multico.extensions import db
from multico.models import Customer, Tenant, Vendor
from multico.services import account_service, company_service, product_service


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

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
        account_service.seed_account_types()
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def tenant_a(db_session):
    """Create Tenant A (first tenant)."""
    tenant = Tenant(name="Acme Group", subdomain="acme", plan_type="professional", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def tenant_b(db_session):
    """Create Tenant B (second tenant)."""
    tenant = Tenant(name="Beta Holdings", subdomain="beta", plan_type="standard", is_active=True)
    db_session.add(tenant)
    db_session.commit()
    return tenant


@pytest.fixture(scope='function')
def manufacturer(db_session, tenant_a):
    """Selling company in Tenant A."""
    company = company_service.create_company(
        tenant_id=tenant_a.id, name="Acme Manufacturing", code="MFG", company_type="manufacturer"
    )
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def distributor(db_session, tenant_a):
    """Buying company in Tenant A."""
    company = company_service.create_company(
        tenant_id=tenant_a.id, name="Acme Distribution", code="DIST", company_type="distributor"
    )
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def foreign_company(db_session, tenant_b):
    """Company in Tenant B."""
    company = company_service.create_company(tenant_id=tenant_b.id, name="Beta Trading", code="BT")
    db_session.commit()
    return company


@pytest.fixture(scope='function')
def customer(db_session, manufacturer):
    """Plain (external) customer of the manufacturer."""
    customer = Customer(company_id=manufacturer.id, name="Retail Co", is_active=True)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def vendor(db_session, distributor):
    """Plain (external) vendor of the distributor."""
    vendor = Vendor(company_id=distributor.id, name="Parts Supplier", is_active=True)
    db_session.add(vendor)
    db_session.commit()
    return vendor


@pytest.fixture(scope='function')
def widget(db_session, manufacturer):
    """Product of the manufacturer: sells at 25.00, costs 15.00."""
    product = product_service.create_product(
        company=manufacturer,
        code="WIDGET",
        name="Widget",
        sales_price_cents=2500,
        purchase_price_cents=1500,
    )
    db_session.commit()
    return product


def tenant_headers(tenant) -> dict:
    """Helper to create tenant headers."""
    return {TENANT_HEADER: str(tenant.id)}


@pytest.fixture(scope='function')
def headers_a(tenant_a):
    return tenant_headers(tenant_a)


@pytest.fixture(scope='function')
def headers_b(tenant_b):
    return tenant_headers(tenant_b)
