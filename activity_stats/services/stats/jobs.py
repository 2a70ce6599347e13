# activity_stats/services/stats/jobs.py
"""
Named batch jobs, shared by the scheduler and the internal jobs endpoint.

- host-stats:        recompute every host rollup
- activity-stats:    recompute every activity rollup
- attendee-history:  rebuild every host's attendee relationships
- daily-snapshot:    snapshot yesterday
- monthly-snapshot:  snapshot the previous month
- full:              hosts, activities and today's daily snapshot
"""

import logging
from datetime import timedelta
from typing import Any, Callable, Dict

from sqlalchemy.orm import Session

from activity_stats.services.stats.aggregation import (
    recompute_activity,
    recompute_all_hosts,
    recompute_attendee_history,
)
from activity_stats.services.stats.snapshots import (
    build_daily_snapshot,
    build_monthly_snapshot,
)
from activity_stats.utils.dates import previous_month, start_of_day, utcnow

logger = logging.getLogger(__name__)


def _host_stats(db: Session) -> Dict[str, Any]:
    return recompute_all_hosts(db).to_dict()


def _activity_stats(db: Session) -> Dict[str, Any]:
    return {"activities": recompute_activity(db)}


def _attendee_history(db: Session) -> Dict[str, Any]:
    return {"hosts": recompute_attendee_history(db)}


def _daily_snapshot(db: Session) -> Dict[str, Any]:
    yesterday = start_of_day() - timedelta(days=1)
    return {"date": yesterday.date().isoformat(), "hosts": build_daily_snapshot(db, yesterday)}


def _monthly_snapshot(db: Session) -> Dict[str, Any]:
    year, month = previous_month()
    return {"year": year, "month": month, "hosts": build_monthly_snapshot(db, year, month)}


def _full(db: Session) -> Dict[str, Any]:
    today = start_of_day()
    return {
        "hosts": recompute_all_hosts(db).to_dict(),
        "activities": recompute_activity(db),
        "daily_snapshot": {
            "date": today.date().isoformat(),
            "hosts": build_daily_snapshot(db, today),
        },
    }


STATS_JOBS: Dict[str, Callable[[Session], Dict[str, Any]]] = {
    "host-stats": _host_stats,
    "activity-stats": _activity_stats,
    "attendee-history": _attendee_history,
    "daily-snapshot": _daily_snapshot,
    "monthly-snapshot": _monthly_snapshot,
    "full": _full,
}


def run_stats_job(db: Session, job: str) -> Dict[str, Any]:
    """
    Run one named job and return its result summary.

    Raises ValueError for an unknown job name; errors from the job itself
    propagate unchanged.
    """
    runner = STATS_JOBS.get(job)
    if runner is None:
        raise ValueError(
            f"Unknown stats job '{job}'. Expected one of: {', '.join(STATS_JOBS)}"
        )

    started = utcnow()
    logger.info(f"Running stats job '{job}'")
    result = runner(db)
    logger.info(
        f"Stats job '{job}' finished in {(utcnow() - started).total_seconds():.2f}s: {result}"
    )
    return result
