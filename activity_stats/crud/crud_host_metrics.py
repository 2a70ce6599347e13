# activity_stats/crud/crud_host_metrics.py
from typing import Optional
from sqlalchemy.orm import Session

from activity_stats.models.host_metrics import HostMetrics
from activity_stats.utils.rates import host_rates
from activity_stats.utils.dates import utcnow


class CRUDHostMetrics:
    """
    Narrow mutation primitives for HostMetrics rows.

    None of these methods commit: callers own the transaction boundary.
    """

    def get(self, db: Session, host_id: str) -> Optional[HostMetrics]:
        return db.query(HostMetrics).filter(HostMetrics.host_id == host_id).first()

    def get_fresh(self, db: Session, host_id: str) -> Optional[HostMetrics]:
        """Re-read the row, overwriting any stale identity-map state."""
        return (
            db.query(HostMetrics)
            .populate_existing()
            .filter(HostMetrics.host_id == host_id)
            .first()
        )

    def ensure(self, db: Session, host_id: str) -> HostMetrics:
        """Create an all-zero row for the host if none exists."""
        metrics = self.get(db, host_id)
        if not metrics:
            metrics = HostMetrics(host_id=host_id)
            db.add(metrics)
            db.flush()
        return metrics

    def increment(self, db: Session, host_id: str, **deltas) -> int:
        """
        Atomically add deltas to counter columns, e.g.
        increment(db, host_id, total_bookings=1, total_spots_filled=1).
        Negative deltas decrement. Returns the number of rows touched.
        """
        values = {
            getattr(HostMetrics, column): getattr(HostMetrics, column) + delta
            for column, delta in deltas.items()
            if delta
        }
        if not values:
            return 0
        values[HostMetrics.updated_at] = utcnow()
        return (
            db.query(HostMetrics)
            .filter(HostMetrics.host_id == host_id)
            .update(values, synchronize_session=False)
        )

    def recalculate_rates(self, db: Session, host_id: str) -> Optional[HostMetrics]:
        """Rewrite the derived rate columns from the row's current counts."""
        metrics = self.get_fresh(db, host_id)
        if not metrics:
            return None
        rates = host_rates(
            total_events=metrics.total_events,
            total_spots_offered=metrics.total_spots_offered,
            total_spots_filled=metrics.total_spots_filled,
            total_unique_attendees=metrics.total_unique_attendees,
            repeat_attendees=metrics.repeat_attendees,
            total_revenue=metrics.total_revenue,
            total_bookings=metrics.total_bookings,
            total_activity_views=metrics.total_activity_views,
        )
        for column, value in rates.items():
            setattr(metrics, column, value)
        db.flush()
        return metrics

    def upsert(self, db: Session, host_id: str, values: dict) -> HostMetrics:
        """Overwrite every given column of the host's row, creating it if needed."""
        metrics = self.ensure(db, host_id)
        for column, value in values.items():
            setattr(metrics, column, value)
        db.flush()
        return metrics


# Singleton instance
host_metrics_crud = CRUDHostMetrics()
