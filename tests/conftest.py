"""Root conftest for all tests.

This file makes shared fixtures available across all test modules.
"""

from contextlib import contextmanager
from decimal import Decimal

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.core.context import AuditContext
from storefront.db.models import Base, Category, Product, ProductImage, Tenant
from storefront.db.session import enable_sqlite_savepoints


@pytest.fixture
def engine():
    """Isolated in-memory SQLite engine with all tables created."""
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine, monkeypatch):
    """
    Provides a transactional in-memory SQLite DB session for tests.

    This fixture:
    - Creates an isolated in-memory SQLite database per test
    - Patches the engine getter to use it
    - Patches get_session() to return the test session

    Usage:
        def test_something(db_session):
            db_session.add(Product(...))
            db_session.flush()
    """
    monkeypatch.setattr("storefront.db.session._get_engine", lambda: engine)

    test_session_local = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = test_session_local()

    @contextmanager
    def mock_get_session():
        yield session

    # Patch where it's imported/used (not just where it's defined)
    import storefront.cli as cli_module
    import storefront.db.session as session_module

    monkeypatch.setattr(session_module, "get_session", mock_get_session)
    monkeypatch.setattr(cli_module, "get_session", mock_get_session)

    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture
def tenant(db_session) -> Tenant:
    tenant = Tenant(name="Acme Outfitters", subdomain="acme")
    db_session.add(tenant)
    db_session.flush()
    return tenant


@pytest.fixture
def audit_context(tenant) -> AuditContext:
    return AuditContext(tenant_id=tenant.id, username="alice", ip_address="203.0.113.7", user_agent="pytest")


@pytest.fixture
def category(db_session, tenant) -> Category:
    category = Category(name="Gadgets", tenant_id=tenant.id)
    db_session.add(category)
    db_session.flush()
    return category


@pytest.fixture
def product(db_session, tenant, category) -> Product:
    """A persisted product with one category and two images."""
    product = Product(
        sku="WID-001",
        name="Widget",
        price=Decimal("9.99"),
        stock_quantity=5,
        tenant_id=tenant.id,
        category=category,
        images=[ProductImage(image_url="/img/1.png"), ProductImage(image_url="/img/2.png")],
    )
    db_session.add(product)
    db_session.flush()
    return product
