# backend/tests/conftest.py
"""
Pytest configuration for the Trim booking engine.

Every test gets a fresh in-memory SQLite database. The seeded tenants
deliberately share barber, service and customer names. The Celery
hand-off is patched for every test so nothing reaches a broker.
"""

import os

# Set testing mode BEFORE any trim_booking imports
os.environ["IS_TESTING"] = "true"
os.environ["ENVIRONMENT"] = "testing"
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["DB_DIALECT"] = "sqlite"
os.environ["CELERY_BROKER_URL"] = "memory://"
os.environ["STRIPE_SECRET_KEY"] = "sk_test_dummy"
os.environ["STRIPE_WEBHOOK_SECRET"] = "whsec_test_secret"

from datetime import date, timedelta
from typing import Dict
from unittest.mock import Mock, patch

from fastapi.testclient import TestClient
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from trim_booking.api.dependencies.database import get_db
from trim_booking.core.timezone_utils import business_today
from trim_booking.database import Base
from trim_booking.main import app

from .factories import DUBLIN, SeededTenant, auth_headers_for, seed_tenant

test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestSessionLocal = sessionmaker(
    autocommit=False, autoflush=False, bind=test_engine, expire_on_commit=False
)


@pytest.fixture(scope="function")
def db():
    """Create a new database session for each test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestSessionLocal()

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def session_factory():
    return TestSessionLocal


@pytest.fixture(autouse=True)
def mock_enqueue():
    """Capture notification hand-offs instead of sending them to Celery."""
    with patch("trim_booking.services.notification_dispatcher.enqueue_task") as mocked:
        mocked.return_value = Mock(id="task-id")
        yield mocked


@pytest.fixture
def mock_stripe_intent():
    with patch("stripe.PaymentIntent.create") as mocked:
        mocked.return_value = Mock(id="pi_test_123", client_secret="pi_test_123_secret_abc")
        yield mocked


@pytest.fixture
def tenant_a(db: Session) -> SeededTenant:
    return seed_tenant(db, "downtown")


@pytest.fixture
def tenant_b(db: Session) -> SeededTenant:
    return seed_tenant(db, "uptown")


@pytest.fixture
def booking_day() -> date:
    """A week ahead in the business timezone, so nothing is in the past."""
    return business_today(DUBLIN) + timedelta(days=7)


@pytest.fixture
def client(db: Session):
    """Create a test client with the test database."""

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    # Don't use context manager: the lifespan would touch the real engine
    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()
    test_client.close()


@pytest.fixture
def customer_headers(tenant_a: SeededTenant) -> Dict[str, str]:
    return auth_headers_for(tenant_a.customer, tenant_a.business.slug)


@pytest.fixture
def staff_headers(tenant_a: SeededTenant) -> Dict[str, str]:
    return auth_headers_for(tenant_a.staff, tenant_a.business.slug)
