# activity_stats/models/activity_view.py
import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from activity_stats.db.base_class import Base
from activity_stats.utils.dates import utcnow


class ActivityView(Base):
    """One recorded view of an activity page. Append-only."""
    __tablename__ = "activity_views"

    id = Column(
        String, primary_key=True, default=lambda: f"avw_{uuid.uuid4().hex[:12]}"
    )
    activity_id = Column(String, ForeignKey("activities.id", ondelete="CASCADE"), nullable=False, index=True)
    # Null for anonymous visitors
    viewer_id = Column(String, nullable=True)
    source = Column(String(50), nullable=True)
    device_type = Column(String(20), nullable=True)
    viewed_at = Column(DateTime, nullable=False, default=utcnow, index=True)

    __table_args__ = (
        Index("ix_activity_views_activity_viewer", "activity_id", "viewer_id"),
    )
