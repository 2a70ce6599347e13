# activity_stats/models/booking.py
import uuid
from sqlalchemy import Column, String, DateTime, Numeric, ForeignKey, text
from sqlalchemy.orm import relationship
from activity_stats.db.base_class import Base
from activity_stats.utils.dates import utcnow


class Booking(Base):
    """
    An attendee's place on an activity, including its payment state.
    Written by the booking/payment system.
    """
    __tablename__ = "bookings"

    id = Column(
        String, primary_key=True, default=lambda: f"bkg_{uuid.uuid4().hex[:12]}"
    )
    activity_id = Column(String, ForeignKey("activities.id"), nullable=False, index=True)
    attendee_id = Column(String, nullable=False, index=True)

    status = Column(String, nullable=False, default="confirmed", server_default=text("'confirmed'"))
    payment_status = Column(String, nullable=False, default="pending", server_default=text("'pending'"))
    # Smallest currency unit
    amount_paid = Column(Numeric(12, 2), nullable=True)
    paid_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    cancelled_at = Column(DateTime, nullable=True)
    deleted_at = Column(DateTime, nullable=True)

    activity = relationship("Activity", back_populates="bookings")
