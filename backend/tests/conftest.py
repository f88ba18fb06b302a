"""Pytest configuration and fixtures."""

import pytest
from decimal import Decimal
from typing import Generator

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from concessions.db.base import Base
from concessions.db.session import configure_sqlite, get_db
from concessions.main import app
# Import all models to ensure they're registered with Base.metadata
from concessions.models import *
from concessions.models.product import Product
from concessions.models.venue import Venue

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Create a test client with database override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    # Disable rate limiter during tests to avoid flaky failures
    from concessions.core.rate_limit import limiter as global_limiter
    global_limiter.enabled = False
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    global_limiter.enabled = True
    app.dependency_overrides.clear()


@pytest.fixture
def test_venue(db_session: Session) -> Venue:
    """Create a test venue."""
    venue = Venue(name="Test Arena", code="ARENA", active=True)
    db_session.add(venue)
    db_session.commit()
    db_session.refresh(venue)
    return venue


@pytest.fixture
def test_product(db_session: Session, test_venue: Venue) -> Product:
    """Create a stock-tracked test product."""
    product = Product(
        venue_id=test_venue.id,
        name="Bottled Water",
        sku="WATER-500",
        unit="pcs",
        track_stock=True,
        current_stock=Decimal("0"),
        min_stock=Decimal("0"),
        active=True,
    )
    db_session.add(product)
    db_session.commit()
    db_session.refresh(product)
    return product
