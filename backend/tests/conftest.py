"""
Pytest configuration and shared fixtures for backend tests.

WHAT: Centralized test configuration with markers and shared fixtures
WHY: Enable test organization, filtering, and shared test utilities
HOW: Point the app at an in-memory database, define markers and fixtures
"""

import os

# Must be set before freight_exchange.core.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DISTANCE_PROVIDER", "lookup")

import pytest

from freight_exchange.core.database import Base, engine, init_db
from freight_exchange.core.record_store import SqlRecordStore
from freight_exchange.models.freight import Load, Truck
from freight_exchange.models.negotiation import Agent
from freight_exchange.services.distance import LookupDistanceEstimator, reset_distance_estimator


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "unit: Unit tests (isolated component tests)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (services against the database)"
    )
    config.addinivalue_line(
        "markers", "slow: Tests that take significant time to run"
    )


@pytest.fixture(autouse=True)
def reset_estimator_singleton():
    """
    Reset distance estimator singleton before each test.

    WHAT: Clear estimator cache between tests
    WHY: Prevent test pollution when a test switches provider
    HOW: Call reset_distance_estimator() before and after each test
    """
    reset_distance_estimator()
    yield
    reset_distance_estimator()


@pytest.fixture
def db():
    """Create a fresh schema for each test."""
    Base.metadata.drop_all(bind=engine)
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def store(db):
    """Record store over the fresh test database."""
    return SqlRecordStore()


@pytest.fixture
def lookup_estimator():
    """Distance estimator over the built-in city table."""
    return LookupDistanceEstimator()


@pytest.fixture
def pune_load():
    """A 12 tonne general cargo load from Pune to Bangalore."""
    return Load(
        id="load_pune_blr",
        origin="Pune",
        destination="Bangalore",
        load_type="General Cargo",
        weight=12000,
        pickup_time="2025-01-15T10:30:00",
        delivery_time="2025-01-17T18:00:00",
        status="listed",
    )


@pytest.fixture
def nearby_trucks():
    """Trucks around Pune at varying distances and idle times."""
    return [
        Truck(id="truck_satara", capacity=15000, current_location="Satara", idle_hours=4),
        Truck(id="truck_mumbai", capacity=12000, current_location="Mumbai", idle_hours=10),
        Truck(id="truck_pune", capacity=20000, current_location="Pune", idle_hours=0),
        Truck(id="truck_delhi", capacity=20000, current_location="Delhi", idle_hours=2),
    ]


@pytest.fixture
def buyer_agent():
    """Load owner's agent willing to pay up to 49,500."""
    return Agent(id="buyer_1", name="Load Owner Agent", min_price=36000, max_price=49500, concession_rate=2)


@pytest.fixture
def seller_agent():
    """Fleet agent that won't go below 40,500."""
    return Agent(id="seller_1", name="Fleet Agent", min_price=40500, max_price=54000, concession_rate=2)
