# activity_stats/services/stats/realtime.py
"""
Real-time stats updates.

Called right after the booking, payment, listing or view-tracking system has
committed its own write. Each function applies the smallest correct delta to
the rollups inside a savepoint of the session it is handed, commits, and
reports the outcome as a StatsUpdateResult instead of raising (see
`best_effort`). A failure rolls back the savepoint only.

The deltas are not idempotent: call each function exactly once per real-world
event. Rows are created on demand, so ordering between an activity's creation
event and its first booking does not matter. Anything these updates get wrong
(lost races, a failed call) is corrected by the next batch aggregation.
"""

import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from activity_stats.crud import (
    activity_metrics_crud,
    attendee_relationship_crud,
    host_metrics_crud,
    stats_ledger,
)
from activity_stats.schemas.stats import ActivityRef, BookingRef
from activity_stats.services.stats.results import StatsUpdateResult, best_effort
from activity_stats.utils.dates import utcnow
from activity_stats.utils.rates import to_decimal

logger = logging.getLogger(__name__)


def _is_upcoming(activity: ActivityRef) -> bool:
    return activity.start_time is not None and activity.start_time >= utcnow()


def _ensure_rows(db: Session, activity: ActivityRef) -> None:
    host_metrics_crud.ensure(db, activity.host_id)
    activity_metrics_crud.ensure(
        db,
        activity_id=activity.id,
        host_id=activity.host_id,
        capacity=activity.capacity,
    )


def _recalculate(db: Session, activity: ActivityRef) -> None:
    host_metrics_crud.recalculate_rates(db, activity.host_id)
    activity_metrics_crud.recalculate_rates(db, activity.id)


@best_effort("booking_confirmed")
def apply_booking_confirmed(db: Session, booking, activity):
    """
    An attendee's booking was confirmed.

    Novelty is decided from the attendee's other confirmed bookings with this
    host: none means a new unique attendee, exactly one means this booking made
    them a repeat attendee.
    """
    booking = BookingRef.model_validate(booking)
    activity = ActivityRef.model_validate(activity)
    host_id = activity.host_id

    _ensure_rows(db, activity)

    host_metrics_crud.increment(
        db,
        host_id,
        total_bookings=1,
        total_bookings_this_month=1,
        total_spots_filled=1,
    )

    previous_bookings = stats_ledger.count_confirmed_with_host(
        db,
        host_id=host_id,
        attendee_id=booking.attendee_id,
        exclude_booking_id=booking.id,
    )
    if previous_bookings == 0:
        host_metrics_crud.increment(
            db,
            host_id,
            total_unique_attendees=1,
            total_unique_attendees_this_month=1,
        )
    elif previous_bookings == 1:
        host_metrics_crud.increment(db, host_id, repeat_attendees=1)

    activity_metrics_crud.increment(
        db,
        activity.id,
        total_bookings=1,
        confirmed_bookings=1,
        spots_filled=1,
        spots_remaining=-1,
    )

    attendee_relationship_crud.record_attendance(
        db,
        host_id=host_id,
        attendee_id=booking.attendee_id,
        amount=to_decimal(booking.amount_paid),
    )

    _recalculate(db, activity)
    logger.debug(
        f"Booking {booking.id} confirmed for activity {activity.id} "
        f"(previous bookings with host {host_id}: {previous_bookings})"
    )


@best_effort("booking_paid")
def apply_booking_paid(db: Session, booking, activity, amount):
    """A payment was captured for a booking. Booking counts are not touched."""
    booking = BookingRef.model_validate(booking)
    activity = ActivityRef.model_validate(activity)
    amount = to_decimal(amount)
    host_id = activity.host_id

    if amount <= 0:
        logger.warning(f"Ignoring non-positive payment {amount} for booking {booking.id}")
        return False

    _ensure_rows(db, activity)

    host_metrics_crud.increment(
        db,
        host_id,
        total_revenue=amount,
        total_revenue_this_month=amount,
        total_revenue_this_year=amount,
    )
    activity_metrics_crud.increment(db, activity.id, total_revenue=amount)
    attendee_relationship_crud.increment(
        db, host_id=host_id, attendee_id=booking.attendee_id, total_spent=amount
    )

    # Average revenue per event moved
    host_metrics_crud.recalculate_rates(db, host_id)


@best_effort("booking_cancelled")
def apply_booking_cancelled(
    db: Session, booking, activity, refund_amount: Optional[Decimal] = None
):
    """
    A confirmed booking was cancelled, optionally with a refund.

    The attendee's remaining confirmed bookings with the host (this one left
    out) decide the reclassification: none left undoes the unique attendee,
    exactly one left means they are no longer a repeat attendee. Counts and
    refund move together in one transaction.

    total_unique_attendees_this_month is not decremented: it counts
    attendees acquired this month.
    """
    booking = BookingRef.model_validate(booking)
    activity = ActivityRef.model_validate(activity)
    host_id = activity.host_id

    _ensure_rows(db, activity)

    host_metrics_crud.increment(db, host_id, total_bookings=-1, total_spots_filled=-1)

    remaining_bookings = stats_ledger.count_confirmed_with_host(
        db,
        host_id=host_id,
        attendee_id=booking.attendee_id,
        exclude_booking_id=booking.id,
    )
    if remaining_bookings == 0:
        host_metrics_crud.increment(db, host_id, total_unique_attendees=-1)
    elif remaining_bookings == 1:
        host_metrics_crud.increment(db, host_id, repeat_attendees=-1)

    activity_metrics_crud.increment(
        db,
        activity.id,
        cancelled_bookings=1,
        confirmed_bookings=-1,
        spots_filled=-1,
        spots_remaining=1,
    )

    attendee_relationship_crud.increment(
        db, host_id=host_id, attendee_id=booking.attendee_id, total_events_attended=-1
    )

    refund = to_decimal(refund_amount)
    if refund > 0:
        host_metrics_crud.increment(db, host_id, total_revenue=-refund)
        activity_metrics_crud.increment(db, activity.id, total_revenue=-refund)
        attendee_relationship_crud.increment(
            db, host_id=host_id, attendee_id=booking.attendee_id, total_spent=-refund
        )

    _recalculate(db, activity)


@best_effort("activity_created")
def apply_activity_created(db: Session, activity):
    activity = ActivityRef.model_validate(activity)
    host_id = activity.host_id

    _ensure_rows(db, activity)

    host_metrics_crud.increment(
        db,
        host_id,
        total_events=1,
        total_events_this_month=1,
        total_events_this_year=1,
        upcoming_events=1 if _is_upcoming(activity) else 0,
        total_spots_offered=activity.capacity or 0,
    )

    _recalculate(db, activity)


@best_effort("activity_cancelled")
def apply_activity_cancelled(db: Session, activity):
    activity = ActivityRef.model_validate(activity)

    host_metrics_crud.ensure(db, activity.host_id)
    host_metrics_crud.increment(
        db,
        activity.host_id,
        cancelled_events=1,
        upcoming_events=-1 if _is_upcoming(activity) else 0,
    )


@best_effort("activity_completed")
def apply_activity_completed(db: Session, activity):
    activity = ActivityRef.model_validate(activity)

    host_metrics_crud.ensure(db, activity.host_id)
    host_metrics_crud.increment(
        db, activity.host_id, completed_events=1, upcoming_events=-1
    )


def record_view(
    db: Session,
    activity_id: str,
    viewer_id: Optional[str] = None,
    source: Optional[str] = None,
    device_type: Optional[str] = None,
) -> StatsUpdateResult:
    """
    Append a view record, then bump view counters.

    The view is committed on its own before any counter moves, so a failed
    stats update never loses the view. A signed-in viewer counts as unique only
    if no earlier view of theirs exists for the activity. Two simultaneous
    first views can both pass that check; the batch run corrects the overcount.
    """
    try:
        activity = stats_ledger.get_activity(db, activity_id)
        if not activity:
            logger.warning(f"View recorded for unknown activity {activity_id}")
            return StatsUpdateResult(operation="activity_view", applied=False)
        activity = ActivityRef.model_validate(activity)

        with db.begin_nested():
            view = stats_ledger.add_view(
                db,
                activity_id=activity_id,
                viewer_id=viewer_id,
                source=source,
                device_type=device_type,
            )
        view_id = view.id
    except Exception as e:
        logger.error(f"Failed to record view of activity {activity_id}: {e}", exc_info=True)
        return StatsUpdateResult(operation="activity_view", applied=False, error=str(e))

    try:
        db.commit()
    except Exception as e:
        logger.error(f"Commit of view for activity {activity_id} failed: {e}", exc_info=True)
        db.rollback()
        return StatsUpdateResult(operation="activity_view", applied=False, error=str(e))

    return _apply_view(db, activity, view_id, viewer_id)


@best_effort("activity_view")
def _apply_view(db: Session, activity: ActivityRef, view_id: str, viewer_id: Optional[str]):
    _ensure_rows(db, activity)

    activity_metrics_crud.increment(db, activity.id, view_count=1)
    host_metrics_crud.increment(db, activity.host_id, total_activity_views=1)

    if viewer_id and not stats_ledger.has_earlier_view(
        db, activity_id=activity.id, viewer_id=viewer_id, exclude_view_id=view_id
    ):
        activity_metrics_crud.increment(db, activity.id, unique_viewers=1)

    _recalculate(db, activity)


@best_effort("activity_rates")
def recalculate_activity_rates(db: Session, activity_id: str):
    """Rewrite an activity's fill and conversion rates from its stored counts."""
    return activity_metrics_crud.recalculate_rates(db, activity_id) is not None


@best_effort("host_rates")
def recalculate_host_rates(db: Session, host_id: str):
    """Rewrite a host's derived rates from its stored counts."""
    return host_metrics_crud.recalculate_rates(db, host_id) is not None
