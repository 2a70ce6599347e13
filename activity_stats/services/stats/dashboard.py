# activity_stats/services/stats/dashboard.py
import logging

from sqlalchemy.orm import Session

from activity_stats.crud import (
    activity_metrics_crud,
    attendee_relationship_crud,
    host_metrics_crud,
    host_monthly_snapshot_crud,
    stats_ledger,
)
from activity_stats.schemas.stats import HostDashboard
from activity_stats.services.stats.aggregation import aggregate_single_host

logger = logging.getLogger(__name__)

EMPTY_STATS = {
    "total_events": 0,
    "events_this_month": 0,
    "events_this_year": 0,
    "upcoming_events": 0,
    "completed_events": 0,
    "cancelled_events": 0,
    "total_bookings": 0,
    "bookings_this_month": 0,
    "total_unique_attendees": 0,
    "unique_attendees_this_month": 0,
    "average_attendance_rate": 0.0,
    "average_attendees_per_event": 0.0,
    "repeat_attendees": 0,
    "repeat_attendee_rate": 0.0,
    "total_revenue": 0.0,
    "revenue_this_month": 0.0,
    "revenue_this_year": 0.0,
    "average_revenue_per_event": 0.0,
    "total_activity_views": 0,
    "conversion_rate": 0.0,
    "last_aggregated_at": None,
    "last_updated": None,
}


def get_host_dashboard(db: Session, host_id: str) -> HostDashboard:
    """
    Everything the host dashboard shows, read from the rollup tables.

    A host with activities but no rollup yet is aggregated on the spot;
    a host with nothing gets all-zero stats and empty lists.
    """
    metrics = host_metrics_crud.get(db, host_id)

    if not metrics and stats_ledger.host_has_activities(db, host_id):
        logger.info(f"No stats for host {host_id} yet, aggregating now")
        try:
            metrics = aggregate_single_host(db, host_id)
            db.commit()
        except Exception:
            db.rollback()
            raise

    if not metrics:
        return HostDashboard(
            host_id=host_id,
            stats=dict(EMPTY_STATS),
            trends={"monthly": []},
            top_activities=[],
            recent_attendees=[],
            top_attendees=[],
        )

    # Newest first from the store, oldest first on the chart
    monthly = host_monthly_snapshot_crud.get_recent_by_host(db, host_id=host_id, limit=6)
    top_activities = activity_metrics_crud.get_top_by_fill_rate(db, host_id=host_id, limit=5)
    recent = attendee_relationship_crud.get_recent_by_host(db, host_id=host_id, limit=10)
    top = attendee_relationship_crud.get_top_repeat_by_host(db, host_id=host_id, limit=5)

    return HostDashboard(
        host_id=host_id,
        stats=metrics.to_dict(),
        trends={"monthly": [snapshot.to_trend_point() for snapshot in reversed(monthly)]},
        top_activities=[activity.to_dict() for activity in top_activities],
        recent_attendees=[relationship.to_dict() for relationship in recent],
        top_attendees=[relationship.to_dict() for relationship in top],
    )
