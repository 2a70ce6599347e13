# activity_stats/models/activity_metrics.py
from sqlalchemy import Column, String, Integer, DateTime, Numeric, ForeignKey, text
from sqlalchemy.orm import relationship
from activity_stats.db.base_class import Base
from activity_stats.utils.dates import utcnow


class ActivityMetrics(Base):
    """
    Per-activity rollup.

    spots_filled + spots_remaining == total_spots holds after every mutation:
    the incremental path moves both columns together, the batch path derives
    remaining from filled.
    """
    __tablename__ = "activity_metrics"

    activity_id = Column(String, ForeignKey("activities.id", ondelete="CASCADE"), primary_key=True)
    host_id = Column(String, nullable=False, index=True)

    total_spots = Column(Integer, nullable=False, default=0, server_default=text("0"))
    spots_filled = Column(Integer, nullable=False, default=0, server_default=text("0"))
    spots_remaining = Column(Integer, nullable=False, default=0, server_default=text("0"))
    fill_rate = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))

    total_bookings = Column(Integer, nullable=False, default=0, server_default=text("0"))
    confirmed_bookings = Column(Integer, nullable=False, default=0, server_default=text("0"))
    cancelled_bookings = Column(Integer, nullable=False, default=0, server_default=text("0"))

    view_count = Column(Integer, nullable=False, default=0, server_default=text("0"))
    unique_viewers = Column(Integer, nullable=False, default=0, server_default=text("0"))
    view_to_booking_rate = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))

    total_revenue = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))

    last_aggregated_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    activity = relationship("Activity")

    def to_dict(self) -> dict:
        return {
            "id": self.activity_id,
            "title": self.activity.title if self.activity else None,
            "date": self.activity.start_time.isoformat() if self.activity and self.activity.start_time else None,
            "fill_rate": float(self.fill_rate or 0),
            "confirmed_bookings": self.confirmed_bookings,
            "total_revenue": float(self.total_revenue or 0),
            "view_count": self.view_count,
        }
