# activity_stats/utils/rates.py
"""
Decimal helpers for rollup math.

Currency values never pass through float. Rates are percentages rounded to two
places; averages are rounded to two places without the x100.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal(100)


def to_decimal(value) -> Decimal:
    """Coerce a DB/API amount (None, int, str, float, Decimal) to Decimal."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    # str() first so floats keep their printed value instead of binary noise
    return Decimal(str(value))


def percentage(numerator, denominator) -> Decimal:
    """numerator / denominator * 100, two places. 0 when the denominator is 0."""
    denominator = to_decimal(denominator)
    if denominator == 0:
        return ZERO
    return (to_decimal(numerator) * HUNDRED / denominator).quantize(
        TWO_PLACES, rounding=ROUND_HALF_UP
    )


def average(numerator, denominator) -> Decimal:
    """numerator / denominator, two places. 0 when the denominator is 0."""
    denominator = to_decimal(denominator)
    if denominator == 0:
        return ZERO
    return (to_decimal(numerator) / denominator).quantize(
        TWO_PLACES, rounding=ROUND_HALF_UP
    )


def money_sum(values: Iterable[Optional[object]]) -> Decimal:
    total = ZERO
    for value in values:
        total += to_decimal(value)
    return total


def host_rates(
    *,
    total_events: int,
    total_spots_offered: int,
    total_spots_filled: int,
    total_unique_attendees: int,
    repeat_attendees: int,
    total_revenue,
    total_bookings: int,
    total_activity_views: int,
) -> dict:
    """Every derived HostMetrics column, computed from its counts."""
    return {
        "average_attendance_rate": percentage(total_spots_filled, total_spots_offered),
        "average_attendees_per_event": average(total_spots_filled, total_events),
        "repeat_attendee_rate": percentage(repeat_attendees, total_unique_attendees),
        "average_revenue_per_event": average(total_revenue, total_events),
        "booking_conversion_rate": percentage(total_bookings, total_activity_views),
    }


def activity_rates(
    *,
    total_spots: int,
    spots_filled: int,
    confirmed_bookings: int,
    view_count: int,
) -> dict:
    """Every derived ActivityMetrics column, computed from its counts."""
    return {
        "fill_rate": percentage(spots_filled, total_spots),
        "view_to_booking_rate": percentage(confirmed_bookings, view_count),
    }
