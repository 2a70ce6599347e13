# activity_stats/background_tasks/stats_tasks.py
"""
Scheduled entry points for the stats jobs.

Each task opens its own session, runs one named job and closes the session.
Failures are logged and re-raised so the scheduler's error listener sees them.
"""

import logging
from activity_stats.db.session import SessionLocal
from activity_stats.services.stats.jobs import run_stats_job

logger = logging.getLogger(__name__)


def _run(job: str):
    db = SessionLocal()

    try:
        return run_stats_job(db, job)
    except Exception as e:
        logger.error(f"Error in scheduled stats job '{job}': {e}")
        db.rollback()
        raise
    finally:
        db.close()


def aggregate_host_stats():
    """Recompute every host rollup from the ledger."""
    return _run("host-stats")


def aggregate_activity_stats():
    """Recompute every activity rollup from the ledger."""
    return _run("activity-stats")


def rebuild_attendee_history():
    return _run("attendee-history")


def build_yesterday_snapshot():
    return _run("daily-snapshot")


def build_previous_month_snapshot():
    return _run("monthly-snapshot")
