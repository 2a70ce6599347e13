"""
Tests for the daily and monthly snapshot builders.

Verifies that:
- The cohort is exactly the hosts with ledger activity in the window
- Per-activity results are folded into the right host
- Re-running a period overwrites instead of double counting
"""

from datetime import datetime
from decimal import Decimal

from activity_stats.constants.ledger import BookingStatus, PaymentStatus
from activity_stats.crud import host_daily_snapshot_crud, host_monthly_snapshot_crud
from activity_stats.models import HostDailySnapshot, HostMonthlySnapshot
from activity_stats.services.stats.snapshots import (
    build_daily_snapshot,
    build_monthly_snapshot,
    fold_by_host,
)

DAY = datetime(2026, 3, 14)
DATE_BEFORE = datetime(2026, 3, 13)


def at(hour, day=DAY):
    return day.replace(hour=hour)


class TestFoldByHost:

    def test_drops_hosts_outside_cohort(self):
        totals = fold_by_host(
            {"act_1": 2, "act_2": 3, "act_3": 5},
            {"act_1": "host_a", "act_2": "host_a", "act_3": "host_b"},
            {"host_a"},
        )

        assert dict(totals) == {"host_a": 5}

    def test_decimal_zero(self):
        totals = fold_by_host({"act_1": Decimal("10.50")}, {"act_1": "host_a"}, {"host_a", "host_b"}, zero=Decimal("0.00"))

        assert totals["host_a"] == Decimal("10.50")
        assert totals["host_b"] == Decimal("0.00")


class TestDailySnapshot:

    def _seed(self, make_activity, make_booking, make_view):
        morning_class = make_activity(host_id="host_1", start_time=at(18), capacity=10)
        make_booking(morning_class, attendee_id="a", created_at=at(9))
        make_booking(
            morning_class, attendee_id="b", created_at=at(10),
            payment_status=PaymentStatus.PAID, amount_paid=Decimal("1200"), paid_at=at(10),
        )
        make_booking(
            morning_class, attendee_id="c", created_at=at(8, DATE_BEFORE),
            status=BookingStatus.CANCELLED, cancelled_at=at(11),
        )
        make_view(morning_class, viewed_at=at(7))
        make_view(morning_class, viewed_at=at(12))
        make_view(morning_class, viewed_at=at(12, DATE_BEFORE))

        # Booked today for an activity next week
        later = make_activity(host_id="host_2", start_time=datetime(2026, 3, 21, 9))
        make_booking(later, attendee_id="d", created_at=at(15))

        # Nothing on the day
        quiet = make_activity(host_id="host_3", start_time=datetime(2026, 3, 20, 9))
        make_booking(quiet, attendee_id="e", created_at=at(9, DATE_BEFORE))

    def test_cohort_and_values(self, db_session, make_activity, make_booking, make_view):
        self._seed(make_activity, make_booking, make_view)

        assert build_daily_snapshot(db_session, DAY) == 2

        host_1 = host_daily_snapshot_crud.get(db_session, host_id="host_1", date=DAY)
        assert host_1.events_hosted == 1
        assert host_1.new_bookings == 2
        assert host_1.cancellations == 1
        assert host_1.revenue == Decimal("1200")
        assert host_1.activity_views == 2

        host_2 = host_daily_snapshot_crud.get(db_session, host_id="host_2", date=DAY)
        assert host_2.events_hosted == 0
        assert host_2.new_bookings == 1

        assert host_daily_snapshot_crud.get(db_session, host_id="host_3", date=DAY) is None

    def test_soft_deleted_booking_does_not_join_cohort(self, db_session, make_activity, make_booking):
        next_week = make_activity(host_id="host_4", start_time=datetime(2026, 3, 21, 9))
        make_booking(next_week, attendee_id="f", created_at=at(9), deleted_at=at(10))

        assert build_daily_snapshot(db_session, DAY) == 0
        assert host_daily_snapshot_crud.get(db_session, host_id="host_4", date=DAY) is None

    def test_time_of_day_is_normalized(self, db_session, make_activity, make_booking, make_view):
        self._seed(make_activity, make_booking, make_view)

        build_daily_snapshot(db_session, at(23))

        assert host_daily_snapshot_crud.get(db_session, host_id="host_1", date=DAY) is not None

    def test_rerun_overwrites(self, db_session, make_activity, make_booking, make_view):
        self._seed(make_activity, make_booking, make_view)

        build_daily_snapshot(db_session, DAY)
        build_daily_snapshot(db_session, DAY)

        assert db_session.query(HostDailySnapshot).count() == 2
        host_1 = host_daily_snapshot_crud.get(db_session, host_id="host_1", date=DAY)
        assert host_1.new_bookings == 2
        assert host_1.revenue == Decimal("1200")

    def test_empty_day(self, db_session):
        assert build_daily_snapshot(db_session, DAY) == 0
        assert db_session.query(HostDailySnapshot).count() == 0


class TestMonthlySnapshot:

    def test_month_values(self, db_session, make_activity, make_booking, make_view):
        feb = datetime(2026, 2, 1)
        bootcamp = make_activity(host_id="host_1", capacity=10, start_time=datetime(2026, 2, 3, 7))
        swim = make_activity(host_id="host_1", capacity=10, start_time=datetime(2026, 2, 20, 7))
        march = make_activity(host_id="host_1", capacity=10, start_time=datetime(2026, 3, 2, 7))
        make_activity(host_id="host_2", capacity=10, start_time=datetime(2026, 3, 5, 7))

        for activity, attendee_id in [(bootcamp, "a"), (bootcamp, "b"), (swim, "a"), (swim, "c"), (swim, "d")]:
            make_booking(activity, attendee_id=attendee_id, created_at=feb)
        make_booking(
            bootcamp, attendee_id="e", created_at=feb, payment_status=PaymentStatus.PAID,
            amount_paid=Decimal("1000"), paid_at=datetime(2026, 2, 2),
        )
        make_booking(
            swim, attendee_id="f", created_at=feb, payment_status=PaymentStatus.PAID,
            amount_paid=Decimal("1000"), paid_at=datetime(2026, 2, 15),
        )
        make_booking(march, attendee_id="g")
        make_booking(
            swim, attendee_id="h", status=BookingStatus.CANCELLED,
            cancelled_at=datetime(2026, 2, 10),
        )
        make_view(bootcamp, viewed_at=datetime(2026, 1, 30))
        make_view(bootcamp, viewed_at=datetime(2026, 2, 1, 12))

        assert build_monthly_snapshot(db_session, 2026, 2) == 1

        snapshot = host_monthly_snapshot_crud.get(db_session, host_id="host_1", year=2026, month=2)
        assert snapshot.events_hosted == 2
        assert snapshot.total_spots_offered == 20
        assert snapshot.total_bookings == 7
        assert snapshot.total_spots_filled == 7
        assert snapshot.unique_attendees == 6
        assert snapshot.cancellations == 1
        assert snapshot.average_fill_rate == Decimal("35.00")
        assert snapshot.total_revenue == Decimal("2000")
        assert snapshot.average_revenue_per_event == Decimal("1000.00")
        assert snapshot.activity_views == 1

        assert host_monthly_snapshot_crud.get(db_session, host_id="host_2", year=2026, month=2) is None

    def test_rerun_overwrites(self, db_session, make_activity, make_booking):
        activity = make_activity(capacity=4, start_time=datetime(2026, 2, 3, 7))
        make_booking(activity, attendee_id="a")

        build_monthly_snapshot(db_session, 2026, 2)
        make_booking(activity, attendee_id="b")
        build_monthly_snapshot(db_session, 2026, 2)

        assert db_session.query(HostMonthlySnapshot).count() == 1
        snapshot = host_monthly_snapshot_crud.get(db_session, host_id="host_1", year=2026, month=2)
        assert snapshot.total_bookings == 2
        assert snapshot.average_fill_rate == Decimal("50.00")
