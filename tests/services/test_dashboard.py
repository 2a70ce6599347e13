from datetime import timedelta
from decimal import Decimal

from activity_stats.crud import (
    attendee_relationship_crud,
    host_metrics_crud,
    host_monthly_snapshot_crud,
)
from activity_stats.services.stats.aggregation import recompute_activity
from activity_stats.services.stats.dashboard import get_host_dashboard
from activity_stats.utils.dates import utcnow


def test_unknown_host_gets_zeros(db_session):
    dashboard = get_host_dashboard(db_session, "host_nobody")

    assert dashboard.stats["total_events"] == 0
    assert dashboard.stats["total_revenue"] == 0.0
    assert dashboard.stats["last_updated"] is None
    assert dashboard.trends == {"monthly": []}
    assert dashboard.top_activities == []
    assert dashboard.recent_attendees == []
    assert dashboard.top_attendees == []
    # Nothing is created for a host without activities
    assert host_metrics_crud.get(db_session, "host_nobody") is None


def test_aggregates_on_first_read(db_session, make_activity, make_booking):
    activity = make_activity(capacity=4)
    make_booking(activity, attendee_id="a")

    dashboard = get_host_dashboard(db_session, "host_1")

    assert dashboard.stats["total_events"] == 1
    assert dashboard.stats["total_bookings"] == 1
    assert dashboard.stats["average_attendance_rate"] == 25.0
    assert host_metrics_crud.get(db_session, "host_1") is not None


def test_monthly_trend_is_last_six_oldest_first(db_session, make_activity):
    make_activity()
    for month in range(1, 9):
        host_monthly_snapshot_crud.upsert(
            db_session, host_id="host_1", year=2026, month=month,
            values={"events_hosted": month, "total_revenue": Decimal(month * 100)},
        )
    db_session.commit()

    trend = get_host_dashboard(db_session, "host_1").trends["monthly"]

    assert [point["month"] for point in trend] == [3, 4, 5, 6, 7, 8]
    assert trend[-1]["total_revenue"] == 800.0


def test_top_activities_and_attendees(db_session, make_activity, make_booking):
    quiet = make_activity(title="Quiet", capacity=10)
    busy = make_activity(title="Busy", capacity=2)
    make_booking(quiet, attendee_id="a")
    make_booking(busy, attendee_id="a")
    make_booking(busy, attendee_id="b")
    recompute_activity(db_session)

    now = utcnow()
    for attendee_id, count in [("a", 3), ("b", 1), ("c", 2)]:
        attendee_relationship_crud.upsert(
            db_session, host_id="host_1", attendee_id=attendee_id,
            values={
                "total_events_attended": count,
                "first_attended_at": now - timedelta(days=30),
                "last_attended_at": now - timedelta(days=count),
            },
        )
    db_session.commit()

    dashboard = get_host_dashboard(db_session, "host_1")

    assert [a["title"] for a in dashboard.top_activities] == ["Busy", "Quiet"]
    assert dashboard.top_activities[0]["fill_rate"] == 100.0
    # Most recent attendance first
    assert [a["attendee_id"] for a in dashboard.recent_attendees] == ["b", "c", "a"]
    assert [a["attendee_id"] for a in dashboard.top_attendees] == ["a", "c"]
