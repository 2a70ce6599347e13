# activity_stats/models/__init__.py
# Import all models so Base.metadata knows every table.

from activity_stats.db.base_class import Base

# Source ledger (owned by the booking, listing and view-tracking systems)
from activity_stats.models.activity import Activity
from activity_stats.models.booking import Booking
from activity_stats.models.activity_view import ActivityView

# Rollups and snapshots
from activity_stats.models.host_metrics import HostMetrics
from activity_stats.models.activity_metrics import ActivityMetrics
from activity_stats.models.attendee_relationship import AttendeeRelationship
from activity_stats.models.host_snapshot import HostDailySnapshot, HostMonthlySnapshot
