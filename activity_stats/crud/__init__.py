# activity_stats/crud/__init__.py

from .crud_activity_metrics import activity_metrics_crud
from .crud_attendee_relationship import attendee_relationship_crud
from .crud_host_metrics import host_metrics_crud
from .crud_host_snapshot import host_daily_snapshot_crud, host_monthly_snapshot_crud
from .crud_stats_ledger import stats_ledger
