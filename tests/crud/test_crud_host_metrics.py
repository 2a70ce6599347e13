from decimal import Decimal
from unittest.mock import MagicMock

from activity_stats.crud.crud_activity_metrics import CRUDActivityMetrics
from activity_stats.crud.crud_host_metrics import CRUDHostMetrics
from activity_stats.models import HostMetrics

# Instantiate the classes to test their methods
host_crud = CRUDHostMetrics()
activity_crud = CRUDActivityMetrics()


def test_ensure_is_idempotent(db_session):
    first = host_crud.ensure(db_session, "host_1")
    second = host_crud.ensure(db_session, "host_1")
    db_session.commit()

    assert first is second
    assert db_session.query(HostMetrics).count() == 1
    assert host_crud.get(db_session, "host_1").total_bookings == 0


def test_increment_adds_and_subtracts(db_session):
    host_crud.ensure(db_session, "host_1")

    touched = host_crud.increment(db_session, "host_1", total_bookings=3, total_revenue=Decimal("99.50"))
    host_crud.increment(db_session, "host_1", total_bookings=-1)
    db_session.commit()

    metrics = host_crud.get(db_session, "host_1")
    assert touched == 1
    assert metrics.total_bookings == 2
    assert metrics.total_revenue == Decimal("99.50")


def test_increment_skips_zero_deltas():
    db_session = MagicMock()

    assert host_crud.increment(db_session, "host_1", upcoming_events=0) == 0
    db_session.query.assert_not_called()


def test_increment_missing_row_touches_nothing(db_session):
    assert host_crud.increment(db_session, "host_missing", total_bookings=1) == 0


def test_recalculate_rates_reads_fresh_counts(db_session):
    host_crud.ensure(db_session, "host_1")
    host_crud.increment(db_session, "host_1", total_spots_offered=8, total_spots_filled=2, total_events=2)

    metrics = host_crud.recalculate_rates(db_session, "host_1")

    assert metrics.average_attendance_rate == Decimal("25.00")
    assert metrics.average_attendees_per_event == Decimal("1.00")


def test_upsert_overwrites(db_session):
    host_crud.upsert(db_session, "host_1", {"total_events": 5})
    host_crud.upsert(db_session, "host_1", {"total_events": 2, "cancelled_events": 1})
    db_session.commit()

    metrics = host_crud.get(db_session, "host_1")
    assert metrics.total_events == 2
    assert metrics.cancelled_events == 1


def test_activity_ensure_starts_with_all_spots_remaining(db_session, make_activity):
    activity = make_activity(capacity=6)

    metrics = activity_crud.ensure(db_session, activity_id=activity.id, host_id="host_1", capacity=6)

    assert metrics.total_spots == 6
    assert metrics.spots_remaining == 6
    assert metrics.spots_filled == 0


def test_activity_ensure_without_capacity(db_session, make_activity):
    activity = make_activity(capacity=None)

    metrics = activity_crud.ensure(db_session, activity_id=activity.id, host_id="host_1", capacity=None)

    assert metrics.total_spots == 0
    assert metrics.spots_remaining == 0
