# activity_stats/constants/ledger.py
"""
Status values used by the source ledger tables.

The booking/payment system owns these values; the stats engine only reads them.
"""


class BookingStatus:
    """Booking (attendee joined an activity) status values."""
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.CONFIRMED, cls.CANCELLED]


class PaymentStatus:
    """Payment status values for a booking."""
    PENDING = "pending"
    PAID = "paid"
    REFUNDED = "refunded"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.PENDING, cls.PAID, cls.REFUNDED]


class ActivityStatus:
    """Lifecycle status values for an activity."""
    PUBLISHED = "published"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @classmethod
    def all_values(cls) -> list[str]:
        return [cls.PUBLISHED, cls.CANCELLED, cls.COMPLETED]
