# activity_stats/models/host_metrics.py
"""
HostMetrics model - Current-state rollup of a host's activities.

Counts and sums are moved by small increments as bookings, payments and views
happen. The rate columns are always derived from those counts; they are
rewritten whenever a count feeding them changes, and in bulk by the batch
aggregator, which overwrites the whole row from the ledger.
"""

from sqlalchemy import Column, String, Integer, DateTime, Numeric, text
from activity_stats.db.base_class import Base
from activity_stats.utils.dates import utcnow


def _count_column():
    return Column(Integer, nullable=False, default=0, server_default=text("0"))


def _decimal_column():
    return Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))


class HostMetrics(Base):
    __tablename__ = "host_metrics"

    host_id = Column(String, primary_key=True)

    # Event counts
    total_events = _count_column()
    total_events_this_month = _count_column()
    total_events_this_year = _count_column()
    upcoming_events = _count_column()
    completed_events = _count_column()
    cancelled_events = _count_column()

    # Bookings & attendees
    total_bookings = _count_column()
    total_bookings_this_month = _count_column()
    total_unique_attendees = _count_column()
    total_unique_attendees_this_month = _count_column()
    repeat_attendees = _count_column()

    # Capacity
    total_spots_offered = _count_column()
    total_spots_filled = _count_column()

    # Derived rates (percentages) and averages
    average_attendance_rate = _decimal_column()
    average_attendees_per_event = _decimal_column()
    repeat_attendee_rate = _decimal_column()
    average_revenue_per_event = _decimal_column()
    booking_conversion_rate = _decimal_column()

    # Revenue, smallest currency unit
    total_revenue = _decimal_column()
    total_revenue_this_month = _decimal_column()
    total_revenue_this_year = _decimal_column()

    # Engagement
    total_activity_views = _count_column()

    last_aggregated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        """Convert the rollup to a JSON-friendly dictionary."""
        return {
            "total_events": self.total_events,
            "events_this_month": self.total_events_this_month,
            "events_this_year": self.total_events_this_year,
            "upcoming_events": self.upcoming_events,
            "completed_events": self.completed_events,
            "cancelled_events": self.cancelled_events,
            "total_bookings": self.total_bookings,
            "bookings_this_month": self.total_bookings_this_month,
            "total_unique_attendees": self.total_unique_attendees,
            "unique_attendees_this_month": self.total_unique_attendees_this_month,
            "average_attendance_rate": float(self.average_attendance_rate or 0),
            "average_attendees_per_event": float(self.average_attendees_per_event or 0),
            "repeat_attendees": self.repeat_attendees,
            "repeat_attendee_rate": float(self.repeat_attendee_rate or 0),
            "total_revenue": float(self.total_revenue or 0),
            "revenue_this_month": float(self.total_revenue_this_month or 0),
            "revenue_this_year": float(self.total_revenue_this_year or 0),
            "average_revenue_per_event": float(self.average_revenue_per_event or 0),
            "total_activity_views": self.total_activity_views,
            "conversion_rate": float(self.booking_conversion_rate or 0),
            "last_aggregated_at": self.last_aggregated_at.isoformat() if self.last_aggregated_at else None,
            "last_updated": self.updated_at.isoformat() if self.updated_at else None,
        }
