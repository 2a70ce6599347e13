# activity_stats/models/activity.py
import uuid
from sqlalchemy import Column, Integer, String, DateTime, Numeric, text
from sqlalchemy.orm import relationship
from activity_stats.db.base_class import Base
from activity_stats.utils.dates import utcnow


class Activity(Base):
    """
    A hosted activity (event listing). Owned by the listings system; the stats
    engine reads it as part of the source ledger.
    """
    __tablename__ = "activities"

    id = Column(
        String, primary_key=True, default=lambda: f"act_{uuid.uuid4().hex[:12]}"
    )
    host_id = Column(String, nullable=False, index=True)
    title = Column(String, nullable=False, server_default="")
    # Nullable: an activity without a limit offers no countable spots
    capacity = Column(Integer, nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    start_time = Column(DateTime, nullable=True, index=True)
    status = Column(String, nullable=False, default="published", server_default=text("'published'"))
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    deleted_at = Column(DateTime, nullable=True)

    bookings = relationship("Booking", back_populates="activity")
