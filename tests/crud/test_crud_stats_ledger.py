from datetime import datetime
from decimal import Decimal

from activity_stats.constants.ledger import BookingStatus, PaymentStatus
from activity_stats.crud.crud_attendee_relationship import CRUDAttendeeRelationship
from activity_stats.crud.crud_stats_ledger import CRUDStatsLedger
from activity_stats.utils.dates import utcnow

ledger = CRUDStatsLedger()
relationships = CRUDAttendeeRelationship()


class TestStatsLedger:

    def test_count_confirmed_with_host(self, db_session, make_activity, make_booking):
        yoga = make_activity(host_id="host_1")
        other_host = make_activity(host_id="host_2")
        deleted = make_activity(host_id="host_1", deleted_at=utcnow())

        booking = make_booking(yoga, attendee_id="a")
        make_booking(yoga, attendee_id="a")
        make_booking(yoga, attendee_id="a", status=BookingStatus.CANCELLED)
        make_booking(yoga, attendee_id="a", deleted_at=utcnow())
        make_booking(other_host, attendee_id="a")
        make_booking(deleted, attendee_id="a")

        assert ledger.count_confirmed_with_host(db_session, host_id="host_1", attendee_id="a") == 2
        assert ledger.count_confirmed_with_host(
            db_session, host_id="host_1", attendee_id="a", exclude_booking_id=booking.id
        ) == 1

    def test_host_ids_skip_deleted_activities(self, db_session, make_activity):
        make_activity(host_id="host_b")
        make_activity(host_id="host_a")
        make_activity(host_id="host_a")
        make_activity(host_id="host_c", deleted_at=utcnow())

        assert ledger.get_host_ids_with_activities(db_session) == ["host_a", "host_b"]
        assert ledger.host_has_activities(db_session, "host_c") is False

    def test_view_lookback_excludes_current(self, db_session, make_activity):
        activity = make_activity()

        first = ledger.add_view(db_session, activity_id=activity.id, viewer_id="v1")
        assert not ledger.has_earlier_view(
            db_session, activity_id=activity.id, viewer_id="v1", exclude_view_id=first.id
        )

        second = ledger.add_view(db_session, activity_id=activity.id, viewer_id="v1")
        assert ledger.has_earlier_view(
            db_session, activity_id=activity.id, viewer_id="v1", exclude_view_id=second.id
        )

    def test_view_counts(self, db_session, make_activity, make_view):
        activity = make_activity()
        make_view(activity, viewer_id="v1")
        make_view(activity, viewer_id="v1")
        make_view(activity, viewer_id="v2")
        make_view(activity)

        assert ledger.get_view_counts(db_session, activity.id) == (4, 2)
        assert ledger.count_views(db_session, [activity.id]) == 4
        assert ledger.count_views(db_session, []) == 0

    def test_paid_amounts_are_decimal(self, db_session, make_activity, make_booking):
        activity = make_activity()
        paid_at = datetime(2026, 5, 1, 12)
        make_booking(
            activity, attendee_id="a", payment_status=PaymentStatus.PAID,
            amount_paid=Decimal("12.50"), paid_at=paid_at,
        )
        make_booking(activity, attendee_id="b", payment_status=PaymentStatus.REFUNDED, amount_paid=Decimal("9"))

        amounts = ledger.get_paid_amounts_for_host(db_session, "host_1")

        assert amounts == [(Decimal("12.50"), paid_at)]
        assert ledger.get_paid_revenue_for_activity(db_session, activity.id) == Decimal("12.50")

    def test_booking_status_counts(self, db_session, make_activity, make_booking):
        activity = make_activity()
        make_booking(activity, attendee_id="a")
        make_booking(activity, attendee_id="b")
        make_booking(activity, attendee_id="c", status=BookingStatus.CANCELLED)

        assert ledger.get_booking_status_counts(db_session, activity.id) == {
            BookingStatus.CONFIRMED: 2,
            BookingStatus.CANCELLED: 1,
        }


class TestAttendeeRelationshipCrud:

    def test_record_attendance_creates_then_bumps(self, db_session):
        first_seen = datetime(2026, 1, 5, 9)
        later = datetime(2026, 2, 5, 9)

        relationships.record_attendance(
            db_session, host_id="host_1", attendee_id="a", amount=Decimal("10"), attended_at=first_seen
        )
        relationships.record_attendance(
            db_session, host_id="host_1", attendee_id="a", amount=Decimal("15"), attended_at=later
        )
        db_session.commit()

        row = relationships.get(db_session, host_id="host_1", attendee_id="a")
        assert row.total_events_attended == 2
        assert row.first_attended_at == first_seen
        assert row.last_attended_at == later
        assert row.total_spent == Decimal("25")

    def test_increment_missing_row_is_noop(self, db_session):
        touched = relationships.increment(
            db_session, host_id="host_1", attendee_id="ghost", total_events_attended=-1
        )

        assert touched == 0
        assert relationships.get(db_session, host_id="host_1", attendee_id="ghost") is None
