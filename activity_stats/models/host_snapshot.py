# activity_stats/models/host_snapshot.py
"""
Period snapshots of host activity.

Written only by the snapshot builder. A re-run for the same period overwrites
the row instead of adding to it.
"""

import uuid
from sqlalchemy import Column, String, Integer, DateTime, Numeric, UniqueConstraint, text
from activity_stats.db.base_class import Base
from activity_stats.utils.dates import utcnow


class HostDailySnapshot(Base):
    __tablename__ = "host_daily_snapshots"

    id = Column(
        String, primary_key=True, default=lambda: f"hds_{uuid.uuid4().hex[:12]}"
    )
    host_id = Column(String, nullable=False, index=True)
    # Midnight of the snapshot day
    date = Column(DateTime, nullable=False, index=True)

    events_hosted = Column(Integer, nullable=False, default=0, server_default=text("0"))
    new_bookings = Column(Integer, nullable=False, default=0, server_default=text("0"))
    cancellations = Column(Integer, nullable=False, default=0, server_default=text("0"))
    revenue = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))
    activity_views = Column(Integer, nullable=False, default=0, server_default=text("0"))

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("host_id", "date", name="uq_host_daily_snapshot_host_date"),
    )


class HostMonthlySnapshot(Base):
    __tablename__ = "host_monthly_snapshots"

    id = Column(
        String, primary_key=True, default=lambda: f"hms_{uuid.uuid4().hex[:12]}"
    )
    host_id = Column(String, nullable=False, index=True)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False)

    events_hosted = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_bookings = Column(Integer, nullable=False, default=0, server_default=text("0"))
    unique_attendees = Column(Integer, nullable=False, default=0, server_default=text("0"))
    cancellations = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_spots_offered = Column(Integer, nullable=False, default=0, server_default=text("0"))
    total_spots_filled = Column(Integer, nullable=False, default=0, server_default=text("0"))
    average_fill_rate = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))
    total_revenue = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))
    average_revenue_per_event = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))
    activity_views = Column(Integer, nullable=False, default=0, server_default=text("0"))

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("host_id", "year", "month", name="uq_host_monthly_snapshot_period"),
    )

    def to_trend_point(self) -> dict:
        return {
            "year": self.year,
            "month": self.month,
            "events_hosted": self.events_hosted,
            "total_bookings": self.total_bookings,
            "unique_attendees": self.unique_attendees,
            "total_revenue": float(self.total_revenue or 0),
            "average_fill_rate": float(self.average_fill_rate or 0),
        }
