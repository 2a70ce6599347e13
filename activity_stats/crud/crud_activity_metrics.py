# activity_stats/crud/crud_activity_metrics.py
from typing import List, Optional
from sqlalchemy.orm import Session

from activity_stats.models.activity_metrics import ActivityMetrics
from activity_stats.utils.rates import activity_rates
from activity_stats.utils.dates import utcnow


class CRUDActivityMetrics:
    """Mutation and read primitives for ActivityMetrics rows. Never commits."""

    def get(self, db: Session, activity_id: str) -> Optional[ActivityMetrics]:
        return (
            db.query(ActivityMetrics)
            .filter(ActivityMetrics.activity_id == activity_id)
            .first()
        )

    def get_fresh(self, db: Session, activity_id: str) -> Optional[ActivityMetrics]:
        return (
            db.query(ActivityMetrics)
            .populate_existing()
            .filter(ActivityMetrics.activity_id == activity_id)
            .first()
        )

    def ensure(
        self, db: Session, *, activity_id: str, host_id: str, capacity: Optional[int]
    ) -> ActivityMetrics:
        """
        Create the row if missing with every spot remaining.
        An existing row is returned untouched.
        """
        metrics = self.get(db, activity_id)
        if not metrics:
            spots = capacity or 0
            metrics = ActivityMetrics(
                activity_id=activity_id,
                host_id=host_id,
                total_spots=spots,
                spots_filled=0,
                spots_remaining=spots,
            )
            db.add(metrics)
            db.flush()
        return metrics

    def increment(self, db: Session, activity_id: str, **deltas) -> int:
        values = {
            getattr(ActivityMetrics, column): getattr(ActivityMetrics, column) + delta
            for column, delta in deltas.items()
            if delta
        }
        if not values:
            return 0
        values[ActivityMetrics.updated_at] = utcnow()
        return (
            db.query(ActivityMetrics)
            .filter(ActivityMetrics.activity_id == activity_id)
            .update(values, synchronize_session=False)
        )

    def recalculate_rates(self, db: Session, activity_id: str) -> Optional[ActivityMetrics]:
        metrics = self.get_fresh(db, activity_id)
        if not metrics:
            return None
        rates = activity_rates(
            total_spots=metrics.total_spots,
            spots_filled=metrics.spots_filled,
            confirmed_bookings=metrics.confirmed_bookings,
            view_count=metrics.view_count,
        )
        for column, value in rates.items():
            setattr(metrics, column, value)
        db.flush()
        return metrics

    def upsert(
        self, db: Session, *, activity_id: str, host_id: str, values: dict
    ) -> ActivityMetrics:
        metrics = self.ensure(
            db, activity_id=activity_id, host_id=host_id, capacity=values.get("total_spots")
        )
        metrics.host_id = host_id
        for column, value in values.items():
            setattr(metrics, column, value)
        db.flush()
        return metrics

    def get_top_by_fill_rate(
        self, db: Session, *, host_id: str, limit: int = 5
    ) -> List[ActivityMetrics]:
        return (
            db.query(ActivityMetrics)
            .filter(ActivityMetrics.host_id == host_id)
            .order_by(ActivityMetrics.fill_rate.desc(), ActivityMetrics.confirmed_bookings.desc())
            .limit(limit)
            .all()
        )


# Singleton instance
activity_metrics_crud = CRUDActivityMetrics()
