# activity_stats/services/stats/aggregation.py
"""
Batch aggregation: recompute rollups from the ledger and overwrite them.

This is the source of truth for the rollup tables. Whatever drift the
incremental path accumulates (lost races, failed best-effort calls) is
replaced here by values computed from raw bookings, payments and views.

Unlike the incremental path these functions are must-succeed: a failure is
rolled back, logged and re-raised. The exception is `recompute_all_hosts`,
which isolates failures per host so one bad host does not stop the run.
"""

import logging
import time
from collections import Counter
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from activity_stats.constants.ledger import ActivityStatus, BookingStatus, PaymentStatus
from activity_stats.crud import (
    activity_metrics_crud,
    attendee_relationship_crud,
    host_metrics_crud,
    stats_ledger,
)
from activity_stats.models.activity import Activity
from activity_stats.models.booking import Booking
from activity_stats.services.stats.results import AggregationResult
from activity_stats.utils.dates import start_of_month, start_of_year, utcnow
from activity_stats.utils.rates import (
    ZERO,
    activity_rates,
    host_rates,
    money_sum,
    to_decimal,
)

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


# ==================== Pure computations ====================

def compute_host_metrics(
    *,
    activities: Sequence[Activity],
    confirmed_bookings: Sequence[Booking],
    paid_amounts: Sequence[Tuple[Decimal, Optional[datetime]]],
    view_count: int,
    now: datetime,
) -> dict:
    """Every HostMetrics column for one host, from that host's ledger rows."""
    month_start = start_of_month(now)
    year_start = start_of_year(now)

    total_events = len(activities)
    events_this_month = 0
    events_this_year = 0
    upcoming_events = 0
    completed_events = 0
    cancelled_events = 0
    total_spots_offered = 0

    for activity in activities:
        if activity.created_at and activity.created_at >= month_start:
            events_this_month += 1
        if activity.created_at and activity.created_at >= year_start:
            events_this_year += 1

        if activity.status == ActivityStatus.CANCELLED:
            cancelled_events += 1
        elif activity.start_time is not None:
            if activity.start_time >= now:
                upcoming_events += 1
            else:
                completed_events += 1

        total_spots_offered += activity.capacity or 0

    bookings_per_attendee = Counter(b.attendee_id for b in confirmed_bookings)
    bookings_this_month = [
        b for b in confirmed_bookings if b.created_at and b.created_at >= month_start
    ]
    total_bookings = len(confirmed_bookings)
    total_unique_attendees = len(bookings_per_attendee)
    repeat_attendees = sum(1 for count in bookings_per_attendee.values() if count >= 2)

    total_revenue = money_sum(amount for amount, _ in paid_amounts)
    revenue_this_month = money_sum(
        amount for amount, paid_at in paid_amounts if paid_at and paid_at >= month_start
    )
    revenue_this_year = money_sum(
        amount for amount, paid_at in paid_amounts if paid_at and paid_at >= year_start
    )

    values = {
        "total_events": total_events,
        "total_events_this_month": events_this_month,
        "total_events_this_year": events_this_year,
        "upcoming_events": upcoming_events,
        "completed_events": completed_events,
        "cancelled_events": cancelled_events,
        "total_bookings": total_bookings,
        "total_bookings_this_month": len(bookings_this_month),
        "total_unique_attendees": total_unique_attendees,
        "total_unique_attendees_this_month": len({b.attendee_id for b in bookings_this_month}),
        "repeat_attendees": repeat_attendees,
        "total_spots_offered": total_spots_offered,
        # Every confirmed booking holds one spot
        "total_spots_filled": total_bookings,
        "total_revenue": total_revenue,
        "total_revenue_this_month": revenue_this_month,
        "total_revenue_this_year": revenue_this_year,
        "total_activity_views": view_count,
    }
    values.update(
        host_rates(
            total_events=total_events,
            total_spots_offered=total_spots_offered,
            total_spots_filled=total_bookings,
            total_unique_attendees=total_unique_attendees,
            repeat_attendees=repeat_attendees,
            total_revenue=total_revenue,
            total_bookings=total_bookings,
            total_activity_views=view_count,
        )
    )
    return values


def compute_activity_metrics(
    *,
    capacity: Optional[int],
    status_counts: Dict[str, int],
    view_count: int,
    unique_viewers: int,
    revenue: Decimal,
) -> dict:
    """Every ActivityMetrics column for one activity."""
    confirmed = status_counts.get(BookingStatus.CONFIRMED, 0)
    total_spots = capacity or 0

    values = {
        "total_spots": total_spots,
        "spots_filled": confirmed,
        # Unclamped so filled + remaining always equals total, even when oversold
        "spots_remaining": total_spots - confirmed,
        "total_bookings": sum(status_counts.values()),
        "confirmed_bookings": confirmed,
        "cancelled_bookings": status_counts.get(BookingStatus.CANCELLED, 0),
        "view_count": view_count,
        "unique_viewers": unique_viewers,
        "total_revenue": revenue,
    }
    values.update(
        activity_rates(
            total_spots=total_spots,
            spots_filled=confirmed,
            confirmed_bookings=confirmed,
            view_count=view_count,
        )
    )
    return values


def compute_attendee_history(confirmed_bookings: Sequence[Booking]) -> Dict[str, dict]:
    """
    attendee_id -> relationship values, from a host's confirmed bookings.
    Bookings must be ordered by created_at.
    """
    history: Dict[str, dict] = {}
    for booking in confirmed_bookings:
        spent = (
            to_decimal(booking.amount_paid)
            if booking.payment_status == PaymentStatus.PAID
            else ZERO
        )
        entry = history.get(booking.attendee_id)
        if entry is None:
            history[booking.attendee_id] = {
                "total_events_attended": 1,
                "first_attended_at": booking.created_at,
                "last_attended_at": booking.created_at,
                "total_spent": spent,
            }
        else:
            entry["total_events_attended"] += 1
            entry["last_attended_at"] = booking.created_at
            entry["total_spent"] += spent
    return history


# ==================== Host rollups ====================

def aggregate_single_host(db: Session, host_id: str):
    """Recompute and overwrite one host's HostMetrics row. Does not commit."""
    now = utcnow()
    activities = stats_ledger.get_host_activities(db, host_id)
    activity_ids = [activity.id for activity in activities]

    values = compute_host_metrics(
        activities=activities,
        confirmed_bookings=stats_ledger.get_confirmed_bookings(db, activity_ids),
        paid_amounts=stats_ledger.get_paid_amounts_for_host(db, host_id),
        view_count=stats_ledger.count_views(db, activity_ids),
        now=now,
    )
    values["last_aggregated_at"] = now
    values["updated_at"] = now
    return host_metrics_crud.upsert(db, host_id, values)


def recompute_host(db: Session, host_id: str) -> AggregationResult:
    """Recompute one host. Raises on failure after rolling back."""
    started = time.monotonic()
    try:
        aggregate_single_host(db, host_id)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to aggregate stats for host {host_id}: {e}", exc_info=True)
        raise

    result = AggregationResult(processed=1, duration_ms=_elapsed_ms(started))
    logger.info(f"Aggregated stats for host {host_id} in {result.duration_ms}ms")
    return result


def recompute_all_hosts(db: Session) -> AggregationResult:
    """
    Recompute every host that has at least one live activity.

    Hosts are processed one at a time, each in its own transaction. A failing
    host is rolled back, logged and listed in `failed`; the run carries on.
    """
    started = time.monotonic()
    host_ids = stats_ledger.get_host_ids_with_activities(db)
    logger.info(f"Starting host stats aggregation for {len(host_ids)} hosts")

    processed = 0
    failed: List[str] = []
    for host_id in host_ids:
        try:
            aggregate_single_host(db, host_id)
            db.commit()
            processed += 1
        except Exception as e:
            db.rollback()
            failed.append(host_id)
            logger.error(f"Failed to aggregate stats for host {host_id}: {e}", exc_info=True)

    result = AggregationResult(
        processed=processed, duration_ms=_elapsed_ms(started), failed=failed
    )
    if failed:
        logger.warning(
            f"Host stats aggregation finished with {len(failed)} failures "
            f"({processed} hosts in {result.duration_ms}ms)"
        )
    else:
        logger.info(f"Aggregated {processed} hosts in {result.duration_ms}ms")
    return result


# ==================== Activity rollups ====================

def aggregate_single_activity(db: Session, activity: Activity):
    """Recompute and overwrite one activity's ActivityMetrics row. Does not commit."""
    view_count, unique_viewers = stats_ledger.get_view_counts(db, activity.id)
    values = compute_activity_metrics(
        capacity=activity.capacity,
        status_counts=stats_ledger.get_booking_status_counts(db, activity.id),
        view_count=view_count,
        unique_viewers=unique_viewers,
        revenue=stats_ledger.get_paid_revenue_for_activity(db, activity.id),
    )
    now = utcnow()
    values["last_aggregated_at"] = now
    values["updated_at"] = now
    return activity_metrics_crud.upsert(
        db, activity_id=activity.id, host_id=activity.host_id, values=values
    )


def recompute_activity(db: Session, activity_id: Optional[str] = None) -> int:
    """
    Recompute one activity, or every live activity when no id is given.
    Returns the number of activities processed. Raises on failure.
    """
    started = time.monotonic()
    activities = stats_ledger.get_activities(db, activity_id)
    try:
        for activity in activities:
            aggregate_single_activity(db, activity)
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to aggregate activity stats: {e}", exc_info=True)
        raise

    logger.info(
        f"Aggregated {len(activities)} activities in {_elapsed_ms(started)}ms"
    )
    return len(activities)


# ==================== Attendee history ====================

def rebuild_attendee_relationships(db: Session, host_id: str) -> int:
    """
    Overwrite every AttendeeRelationship of a host from its confirmed bookings.

    Attendees with no confirmed bookings left keep their row with zeroed
    counters. Returns the number of attendees with at least one booking.
    Does not commit.
    """
    activity_ids = [a.id for a in stats_ledger.get_host_activities(db, host_id)]
    history = compute_attendee_history(
        stats_ledger.get_confirmed_bookings(db, activity_ids)
    )

    for relationship in attendee_relationship_crud.get_multi_by_host(db, host_id=host_id):
        if relationship.attendee_id not in history:
            relationship.total_events_attended = 0
            relationship.total_spent = ZERO
            relationship.updated_at = utcnow()

    for attendee_id, values in history.items():
        values["updated_at"] = utcnow()
        attendee_relationship_crud.upsert(
            db, host_id=host_id, attendee_id=attendee_id, values=values
        )

    db.flush()
    return len(history)


def recompute_attendee_history(db: Session, host_id: Optional[str] = None) -> int:
    """Rebuild attendee history for one host or all hosts. Returns hosts processed."""
    host_ids = [host_id] if host_id else stats_ledger.get_host_ids_with_activities(db)
    try:
        for current_host_id in host_ids:
            attendees = rebuild_attendee_relationships(db, current_host_id)
            logger.debug(f"Rebuilt history of {attendees} attendees for host {current_host_id}")
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to rebuild attendee history: {e}", exc_info=True)
        raise

    logger.info(f"Rebuilt attendee history for {len(host_ids)} hosts")
    return len(host_ids)
