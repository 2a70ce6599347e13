# activity_stats/crud/crud_attendee_relationship.py
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from sqlalchemy.orm import Session

from activity_stats.models.attendee_relationship import AttendeeRelationship
from activity_stats.utils.dates import utcnow


class CRUDAttendeeRelationship:
    """CRUD operations for host/attendee history rows. Never commits."""

    def get(
        self, db: Session, *, host_id: str, attendee_id: str
    ) -> Optional[AttendeeRelationship]:
        return (
            db.query(AttendeeRelationship)
            .filter(
                AttendeeRelationship.host_id == host_id,
                AttendeeRelationship.attendee_id == attendee_id,
            )
            .first()
        )

    def record_attendance(
        self,
        db: Session,
        *,
        host_id: str,
        attendee_id: str,
        amount: Decimal,
        attended_at: Optional[datetime] = None,
    ) -> None:
        """
        First booking creates the row with a count of 1; later bookings bump
        the count, move last_attended_at and add any amount already paid.
        """
        attended_at = attended_at or utcnow()
        existing = self.get(db, host_id=host_id, attendee_id=attendee_id)
        if not existing:
            db.add(
                AttendeeRelationship(
                    host_id=host_id,
                    attendee_id=attendee_id,
                    total_events_attended=1,
                    first_attended_at=attended_at,
                    last_attended_at=attended_at,
                    total_spent=amount,
                )
            )
            db.flush()
            return

        (
            db.query(AttendeeRelationship)
            .filter(AttendeeRelationship.id == existing.id)
            .update(
                {
                    AttendeeRelationship.total_events_attended: AttendeeRelationship.total_events_attended + 1,
                    AttendeeRelationship.total_spent: AttendeeRelationship.total_spent + amount,
                    AttendeeRelationship.last_attended_at: attended_at,
                    AttendeeRelationship.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )

    def increment(self, db: Session, *, host_id: str, attendee_id: str, **deltas) -> int:
        """Add deltas to an existing row. A missing row is left missing."""
        values = {
            getattr(AttendeeRelationship, column): getattr(AttendeeRelationship, column) + delta
            for column, delta in deltas.items()
            if delta
        }
        if not values:
            return 0
        values[AttendeeRelationship.updated_at] = utcnow()
        return (
            db.query(AttendeeRelationship)
            .filter(
                AttendeeRelationship.host_id == host_id,
                AttendeeRelationship.attendee_id == attendee_id,
            )
            .update(values, synchronize_session=False)
        )

    def upsert(
        self, db: Session, *, host_id: str, attendee_id: str, values: dict
    ) -> AttendeeRelationship:
        relationship = self.get(db, host_id=host_id, attendee_id=attendee_id)
        if not relationship:
            relationship = AttendeeRelationship(host_id=host_id, attendee_id=attendee_id)
            db.add(relationship)
        for column, value in values.items():
            setattr(relationship, column, value)
        db.flush()
        return relationship

    def get_multi_by_host(self, db: Session, *, host_id: str) -> List[AttendeeRelationship]:
        return (
            db.query(AttendeeRelationship)
            .filter(AttendeeRelationship.host_id == host_id)
            .all()
        )

    def get_recent_by_host(
        self, db: Session, *, host_id: str, limit: int = 10
    ) -> List[AttendeeRelationship]:
        return (
            db.query(AttendeeRelationship)
            .filter(
                AttendeeRelationship.host_id == host_id,
                AttendeeRelationship.total_events_attended > 0,
            )
            .order_by(AttendeeRelationship.last_attended_at.desc())
            .limit(limit)
            .all()
        )

    def get_top_repeat_by_host(
        self, db: Session, *, host_id: str, limit: int = 5
    ) -> List[AttendeeRelationship]:
        return (
            db.query(AttendeeRelationship)
            .filter(
                AttendeeRelationship.host_id == host_id,
                AttendeeRelationship.total_events_attended >= 2,
            )
            .order_by(AttendeeRelationship.total_events_attended.desc())
            .limit(limit)
            .all()
        )


# Singleton instance
attendee_relationship_crud = CRUDAttendeeRelationship()
