# activity_stats/__init__.py
"""
Statistics aggregation and real-time metrics engine for the activity marketplace.

Maintains host and activity rollups incrementally as bookings, payments and
views happen, and recomputes them from the ledger on a schedule.
"""

__version__ = "1.0.0"
