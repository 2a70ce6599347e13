# activity_stats/models/attendee_relationship.py
import uuid
from sqlalchemy import Column, String, Integer, DateTime, Numeric, UniqueConstraint, text
from activity_stats.db.base_class import Base
from activity_stats.utils.dates import utcnow


class AttendeeRelationship(Base):
    """
    History of one attendee with one host.

    Rows are never deleted: cancellations decrement the counters and the row
    stays as history.
    """
    __tablename__ = "attendee_relationships"

    id = Column(
        String, primary_key=True, default=lambda: f"atr_{uuid.uuid4().hex[:12]}"
    )
    host_id = Column(String, nullable=False, index=True)
    attendee_id = Column(String, nullable=False, index=True)

    total_events_attended = Column(Integer, nullable=False, default=0, server_default=text("0"))
    first_attended_at = Column(DateTime, nullable=True)
    last_attended_at = Column(DateTime, nullable=True)
    total_spent = Column(Numeric(12, 2), nullable=False, default=0, server_default=text("0"))

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("host_id", "attendee_id", name="uq_attendee_relationship_host_attendee"),
    )

    def to_dict(self) -> dict:
        return {
            "attendee_id": self.attendee_id,
            "total_events_attended": self.total_events_attended,
            "first_attended_at": self.first_attended_at.isoformat() if self.first_attended_at else None,
            "last_attended_at": self.last_attended_at.isoformat() if self.last_attended_at else None,
            "total_spent": float(self.total_spent or 0),
        }
