# tests/conftest.py

import os

# Must be set before the app settings are imported
os.environ["STATS_SCHEDULER_ENABLED"] = "false"
os.environ["INTERNAL_API_KEY"] = "test-internal-key"
os.environ["ENV"] = "local"

from datetime import timedelta
from decimal import Decimal

import pytest
from starlette.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from activity_stats.main import app
from activity_stats.db.session import enable_sqlite_savepoints, get_db
from activity_stats.db.base_class import Base
from activity_stats.constants.ledger import BookingStatus, PaymentStatus
from activity_stats.models import Activity, ActivityView, Booking
from activity_stats.utils.dates import utcnow

INTERNAL_HEADERS = {"X-Internal-Api-Key": "test-internal-key"}


# --- Test Database Setup ---
# One in-memory database shared by every connection of the test engine
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
enable_sqlite_savepoints(engine)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    yield session
    session.close()
    Base.metadata.drop_all(bind=engine)


# --- Ledger factories ---
@pytest.fixture
def make_activity(db_session):
    """Insert and commit a ledger activity. Starts in a week unless told otherwise."""

    def _make(host_id="host_1", capacity=10, price=None, start_time=None, **kwargs):
        activity = Activity(
            host_id=host_id,
            title=kwargs.pop("title", "Sunrise run club"),
            capacity=capacity,
            price=Decimal(price) if price is not None else None,
            start_time=start_time or utcnow() + timedelta(days=7),
            **kwargs,
        )
        db_session.add(activity)
        db_session.commit()
        return activity

    return _make


@pytest.fixture
def make_booking(db_session):
    """Insert and commit a ledger booking, confirmed and unpaid by default."""

    def _make(activity, attendee_id="attendee_1", **kwargs):
        booking = Booking(
            activity_id=activity.id,
            attendee_id=attendee_id,
            status=kwargs.pop("status", BookingStatus.CONFIRMED),
            payment_status=kwargs.pop("payment_status", PaymentStatus.PENDING),
            **kwargs,
        )
        db_session.add(booking)
        db_session.commit()
        return booking

    return _make


@pytest.fixture
def make_view(db_session):
    def _make(activity, viewer_id=None, **kwargs):
        view = ActivityView(activity_id=activity.id, viewer_id=viewer_id, **kwargs)
        db_session.add(view)
        db_session.commit()
        return view

    return _make


# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def test_client(db_session):
    """
    Provides a TestClient bound to the in-memory test database, sending the
    internal API key on every request.
    """

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app, headers=INTERNAL_HEADERS) as client:
        yield client

    app.dependency_overrides.clear()
