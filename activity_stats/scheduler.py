# activity_stats/scheduler.py
"""
Background scheduler for the periodic stats jobs.

Uses APScheduler to run:
- Host rollup recompute (interval)
- Activity rollup recompute (interval)
- Attendee history rebuild, daily snapshot (nightly)
- Monthly snapshot (once a month)
"""

import logging
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger
from apscheduler.triggers.cron import CronTrigger
from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MISSED

from activity_stats.core.config import settings
from activity_stats.background_tasks.stats_tasks import (
    aggregate_activity_stats,
    aggregate_host_stats,
    build_previous_month_snapshot,
    build_yesterday_snapshot,
    rebuild_attendee_history,
)

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = None


def _on_job_error(event):
    """Log scheduler job errors with full context."""
    exc = event.exception
    logger.error(
        "Scheduled job FAILED: job_id=%s error=%s",
        event.job_id, exc,
        exc_info=(type(exc), exc, None) if exc else None,
    )
    if event.traceback:
        logger.error("Traceback for job %s:\n%s", event.job_id, event.traceback)


def _on_job_missed(event):
    logger.warning(
        "Scheduled job MISSED: job_id=%s scheduled_run_time=%s",
        event.job_id,
        event.scheduled_run_time,
    )


def init_scheduler():
    """
    Initialize the background scheduler with the stats jobs and start it.

    Called once from the application lifespan.
    """
    global scheduler

    if scheduler is not None:
        logger.warning("Scheduler already initialized")
        return scheduler

    scheduler = BackgroundScheduler(
        timezone="UTC",
        job_defaults={
            'coalesce': True,  # Combine missed executions
            'max_instances': 1,  # Never overlap two runs of the same job
            'misfire_grace_time': 300
        }
    )

    # Job 1: Host rollups
    scheduler.add_job(
        func=aggregate_host_stats,
        trigger=IntervalTrigger(minutes=settings.STATS_HOST_JOB_INTERVAL_MINUTES),
        id='aggregate_host_stats',
        name='Aggregate Host Stats',
        replace_existing=True
    )
    logger.info(
        f"Scheduled job: aggregate_host_stats (every {settings.STATS_HOST_JOB_INTERVAL_MINUTES} minutes)"
    )

    # Job 2: Activity rollups
    scheduler.add_job(
        func=aggregate_activity_stats,
        trigger=IntervalTrigger(minutes=settings.STATS_ACTIVITY_JOB_INTERVAL_MINUTES),
        id='aggregate_activity_stats',
        name='Aggregate Activity Stats',
        replace_existing=True
    )
    logger.info(
        f"Scheduled job: aggregate_activity_stats (every {settings.STATS_ACTIVITY_JOB_INTERVAL_MINUTES} minutes)"
    )

    # Job 3: Yesterday's daily snapshot
    scheduler.add_job(
        func=build_yesterday_snapshot,
        trigger=CronTrigger(hour=settings.STATS_DAILY_SNAPSHOT_HOUR, minute=0),
        id='build_daily_snapshot',
        name='Build Daily Host Snapshot',
        replace_existing=True
    )
    logger.info(
        f"Scheduled job: build_daily_snapshot (daily at {settings.STATS_DAILY_SNAPSHOT_HOUR:02d}:00 UTC)"
    )

    # Job 4: Attendee history, after the snapshot
    scheduler.add_job(
        func=rebuild_attendee_history,
        trigger=CronTrigger(hour=settings.STATS_DAILY_SNAPSHOT_HOUR, minute=30),
        id='rebuild_attendee_history',
        name='Rebuild Attendee History',
        replace_existing=True
    )
    logger.info(
        f"Scheduled job: rebuild_attendee_history (daily at {settings.STATS_DAILY_SNAPSHOT_HOUR:02d}:30 UTC)"
    )

    # Job 5: Previous month's snapshot
    scheduler.add_job(
        func=build_previous_month_snapshot,
        trigger=CronTrigger(
            day=settings.STATS_MONTHLY_SNAPSHOT_DAY,
            hour=settings.STATS_DAILY_SNAPSHOT_HOUR,
            minute=15,
        ),
        id='build_monthly_snapshot',
        name='Build Monthly Host Snapshot',
        replace_existing=True
    )
    logger.info(
        f"Scheduled job: build_monthly_snapshot (day {settings.STATS_MONTHLY_SNAPSHOT_DAY} of each month)"
    )

    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    scheduler.add_listener(_on_job_missed, EVENT_JOB_MISSED)

    scheduler.start()
    logger.info("Background scheduler started successfully")

    return scheduler


def shutdown_scheduler():
    """Gracefully shut the scheduler down. Called when the application stops."""
    global scheduler

    if scheduler is not None:
        scheduler.shutdown(wait=True)
        logger.info("Background scheduler shutdown complete")
        scheduler = None


def get_scheduler_status():
    """
    Get the current status of all scheduled jobs.

    Returns:
        Dict with the scheduler state and each job's next run time.
    """
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
            "trigger": str(job.trigger)
        })

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": jobs
    }
