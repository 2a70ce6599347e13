# activity_stats/crud/crud_stats_ledger.py
"""
Read queries against the source ledger (activities, bookings, views).

The booking and listing systems own these tables. The only write here is
appending a view record, which the view-tracking path does on their behalf.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Set, Tuple
from sqlalchemy.orm import Session
from sqlalchemy import func, distinct

from activity_stats.constants.ledger import BookingStatus, PaymentStatus
from activity_stats.models.activity import Activity
from activity_stats.models.activity_view import ActivityView
from activity_stats.models.booking import Booking
from activity_stats.utils.rates import to_decimal


class CRUDStatsLedger:

    # ------------------------------------------------------------------ #
    # Single-event lookups (incremental path)
    # ------------------------------------------------------------------ #

    def get_activity(self, db: Session, activity_id: str) -> Optional[Activity]:
        return db.query(Activity).filter(Activity.id == activity_id).first()

    def count_confirmed_with_host(
        self,
        db: Session,
        *,
        host_id: str,
        attendee_id: str,
        exclude_booking_id: Optional[str] = None,
    ) -> int:
        """
        Counts an attendee's confirmed bookings across a host's live activities,
        optionally leaving one booking out of the count.
        """
        query = (
            db.query(func.count(Booking.id))
            .join(Activity, Activity.id == Booking.activity_id)
            .filter(
                Activity.host_id == host_id,
                Activity.deleted_at.is_(None),
                Booking.attendee_id == attendee_id,
                Booking.status == BookingStatus.CONFIRMED,
                Booking.deleted_at.is_(None),
            )
        )
        if exclude_booking_id:
            query = query.filter(Booking.id != exclude_booking_id)
        return query.scalar() or 0

    def add_view(
        self,
        db: Session,
        *,
        activity_id: str,
        viewer_id: Optional[str] = None,
        source: Optional[str] = None,
        device_type: Optional[str] = None,
    ) -> ActivityView:
        view = ActivityView(
            activity_id=activity_id,
            viewer_id=viewer_id,
            source=source,
            device_type=device_type,
        )
        db.add(view)
        db.flush()
        return view

    def has_earlier_view(
        self, db: Session, *, activity_id: str, viewer_id: str, exclude_view_id: str
    ) -> bool:
        return (
            db.query(ActivityView.id)
            .filter(
                ActivityView.activity_id == activity_id,
                ActivityView.viewer_id == viewer_id,
                ActivityView.id != exclude_view_id,
            )
            .first()
            is not None
        )

    # ------------------------------------------------------------------ #
    # Host-level batch reads
    # ------------------------------------------------------------------ #

    def get_host_ids_with_activities(self, db: Session) -> List[str]:
        rows = (
            db.query(distinct(Activity.host_id))
            .filter(Activity.deleted_at.is_(None))
            .order_by(Activity.host_id)
            .all()
        )
        return [host_id for (host_id,) in rows]

    def host_has_activities(self, db: Session, host_id: str) -> bool:
        return (
            db.query(Activity.id)
            .filter(Activity.host_id == host_id, Activity.deleted_at.is_(None))
            .first()
            is not None
        )

    def get_host_activities(self, db: Session, host_id: str) -> List[Activity]:
        return (
            db.query(Activity)
            .filter(Activity.host_id == host_id, Activity.deleted_at.is_(None))
            .all()
        )

    def get_confirmed_bookings(
        self, db: Session, activity_ids: List[str]
    ) -> List[Booking]:
        if not activity_ids:
            return []
        return (
            db.query(Booking)
            .filter(
                Booking.activity_id.in_(activity_ids),
                Booking.status == BookingStatus.CONFIRMED,
                Booking.deleted_at.is_(None),
            )
            .order_by(Booking.created_at)
            .all()
        )

    def get_paid_amounts_for_host(
        self, db: Session, host_id: str
    ) -> List[Tuple[Decimal, Optional[datetime]]]:
        """(amount_paid, paid_at) for every paid booking on the host's live activities."""
        rows = (
            db.query(Booking.amount_paid, Booking.paid_at)
            .join(Activity, Activity.id == Booking.activity_id)
            .filter(
                Activity.host_id == host_id,
                Activity.deleted_at.is_(None),
                Booking.payment_status == PaymentStatus.PAID,
                Booking.deleted_at.is_(None),
            )
            .all()
        )
        return [(to_decimal(amount), paid_at) for amount, paid_at in rows]

    def count_views(self, db: Session, activity_ids: List[str]) -> int:
        if not activity_ids:
            return 0
        return (
            db.query(func.count(ActivityView.id))
            .filter(ActivityView.activity_id.in_(activity_ids))
            .scalar()
            or 0
        )

    # ------------------------------------------------------------------ #
    # Activity-level batch reads
    # ------------------------------------------------------------------ #

    def get_activities(self, db: Session, activity_id: Optional[str] = None) -> List[Activity]:
        query = db.query(Activity).filter(Activity.deleted_at.is_(None))
        if activity_id:
            query = query.filter(Activity.id == activity_id)
        return query.all()

    def get_booking_status_counts(self, db: Session, activity_id: str) -> Dict[str, int]:
        rows = (
            db.query(Booking.status, func.count(Booking.id))
            .filter(Booking.activity_id == activity_id, Booking.deleted_at.is_(None))
            .group_by(Booking.status)
            .all()
        )
        return {status: count for status, count in rows}

    def get_view_counts(self, db: Session, activity_id: str) -> Tuple[int, int]:
        """(total views, distinct signed-in viewers) for one activity."""
        view_count = (
            db.query(func.count(ActivityView.id))
            .filter(ActivityView.activity_id == activity_id)
            .scalar()
            or 0
        )
        viewer_rows = (
            db.query(ActivityView.viewer_id)
            .filter(
                ActivityView.activity_id == activity_id,
                ActivityView.viewer_id.isnot(None),
            )
            .group_by(ActivityView.viewer_id)
            .all()
        )
        return view_count, len(viewer_rows)

    def get_paid_revenue_for_activity(self, db: Session, activity_id: str) -> Decimal:
        total = (
            db.query(func.sum(Booking.amount_paid))
            .filter(
                Booking.activity_id == activity_id,
                Booking.payment_status == PaymentStatus.PAID,
                Booking.deleted_at.is_(None),
            )
            .scalar()
        )
        return to_decimal(total)

    # ------------------------------------------------------------------ #
    # Period-grouped reads (snapshots)
    # ------------------------------------------------------------------ #

    def get_hosts_with_activity_starting(
        self, db: Session, *, start: datetime, end: datetime
    ) -> Set[str]:
        rows = (
            db.query(distinct(Activity.host_id))
            .filter(
                Activity.deleted_at.is_(None),
                Activity.start_time >= start,
                Activity.start_time < end,
            )
            .all()
        )
        return {host_id for (host_id,) in rows}

    def get_hosts_with_bookings_created(
        self, db: Session, *, start: datetime, end: datetime
    ) -> Set[str]:
        rows = (
            db.query(distinct(Activity.host_id))
            .join(Booking, Booking.activity_id == Activity.id)
            .filter(
                Activity.deleted_at.is_(None),
                Booking.deleted_at.is_(None),
                Booking.created_at >= start,
                Booking.created_at < end,
            )
            .all()
        )
        return {host_id for (host_id,) in rows}

    def get_activities_starting_by_host(
        self, db: Session, *, host_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, Tuple[int, int]]:
        """host_id -> (activities starting in the window, summed capacity)."""
        host_ids = list(host_ids)
        if not host_ids:
            return {}
        rows = (
            db.query(
                Activity.host_id,
                func.count(Activity.id),
                func.coalesce(func.sum(Activity.capacity), 0),
            )
            .filter(
                Activity.host_id.in_(host_ids),
                Activity.deleted_at.is_(None),
                Activity.start_time >= start,
                Activity.start_time < end,
            )
            .group_by(Activity.host_id)
            .all()
        )
        return {host_id: (count, int(spots or 0)) for host_id, count, spots in rows}

    def get_activity_host_map(self, db: Session, activity_ids: Iterable[str]) -> Dict[str, str]:
        activity_ids = list(activity_ids)
        if not activity_ids:
            return {}
        rows = (
            db.query(Activity.id, Activity.host_id)
            .filter(Activity.id.in_(activity_ids))
            .all()
        )
        return {activity_id: host_id for activity_id, host_id in rows}

    def _bookings_by_activity(self, db: Session, aggregate, host_ids: List[str], *filters) -> dict:
        if not host_ids:
            return {}
        rows = (
            db.query(Booking.activity_id, aggregate)
            .join(Activity, Activity.id == Booking.activity_id)
            .filter(
                Activity.host_id.in_(host_ids),
                Activity.deleted_at.is_(None),
                *filters,
            )
            .group_by(Booking.activity_id)
            .all()
        )
        return {activity_id: value for activity_id, value in rows}

    def count_new_bookings_by_activity(
        self, db: Session, *, host_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, int]:
        return self._bookings_by_activity(
            db,
            func.count(Booking.id),
            list(host_ids),
            Booking.status == BookingStatus.CONFIRMED,
            Booking.deleted_at.is_(None),
            Booking.created_at >= start,
            Booking.created_at < end,
        )

    def count_cancellations_by_activity(
        self, db: Session, *, host_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, int]:
        return self._bookings_by_activity(
            db,
            func.count(Booking.id),
            list(host_ids),
            Booking.status == BookingStatus.CANCELLED,
            Booking.cancelled_at >= start,
            Booking.cancelled_at < end,
        )

    def sum_revenue_by_activity(
        self, db: Session, *, host_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, Decimal]:
        totals = self._bookings_by_activity(
            db,
            func.sum(Booking.amount_paid),
            list(host_ids),
            Booking.payment_status == PaymentStatus.PAID,
            Booking.deleted_at.is_(None),
            Booking.paid_at >= start,
            Booking.paid_at < end,
        )
        return {activity_id: to_decimal(total) for activity_id, total in totals.items()}

    def count_confirmed_by_activity_starting(
        self, db: Session, *, host_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, int]:
        """Confirmed bookings on activities that start inside the window."""
        return self._bookings_by_activity(
            db,
            func.count(Booking.id),
            list(host_ids),
            Booking.status == BookingStatus.CONFIRMED,
            Booking.deleted_at.is_(None),
            Activity.start_time >= start,
            Activity.start_time < end,
        )

    def count_unique_attendees_by_host_starting(
        self, db: Session, *, host_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, int]:
        host_ids = list(host_ids)
        if not host_ids:
            return {}
        rows = (
            db.query(Activity.host_id, func.count(distinct(Booking.attendee_id)))
            .join(Booking, Booking.activity_id == Activity.id)
            .filter(
                Activity.host_id.in_(host_ids),
                Activity.deleted_at.is_(None),
                Activity.start_time >= start,
                Activity.start_time < end,
                Booking.status == BookingStatus.CONFIRMED,
                Booking.deleted_at.is_(None),
            )
            .group_by(Activity.host_id)
            .all()
        )
        return {host_id: count for host_id, count in rows}

    def count_views_by_activity(
        self, db: Session, *, host_ids: Iterable[str], start: datetime, end: datetime
    ) -> Dict[str, int]:
        host_ids = list(host_ids)
        if not host_ids:
            return {}
        rows = (
            db.query(ActivityView.activity_id, func.count(ActivityView.id))
            .join(Activity, Activity.id == ActivityView.activity_id)
            .filter(
                Activity.host_id.in_(host_ids),
                Activity.deleted_at.is_(None),
                ActivityView.viewed_at >= start,
                ActivityView.viewed_at < end,
            )
            .group_by(ActivityView.activity_id)
            .all()
        )
        return {activity_id: count for activity_id, count in rows}


# Singleton instance
stats_ledger = CRUDStatsLedger()
