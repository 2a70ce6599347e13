# activity_stats/services/stats/snapshots.py
"""
Daily and monthly host snapshots.

Each build reads a bounded ledger window with a handful of grouped queries
(grouped by activity, the many side), folds the per-activity results into
per-host totals through an activity -> host lookup, and upserts one snapshot
row per host in the cohort. Re-running a period overwrites its rows.

Snapshots never touch HostMetrics or ActivityMetrics.
"""

import logging
from collections import defaultdict
from datetime import date as date_type, datetime
from typing import Dict, Iterable, Optional, Set, Union

from sqlalchemy.orm import Session

from activity_stats.crud import (
    host_daily_snapshot_crud,
    host_monthly_snapshot_crud,
    stats_ledger,
)
from activity_stats.utils.dates import day_window, month_window, utcnow
from activity_stats.utils.rates import ZERO, average, percentage

logger = logging.getLogger(__name__)


def fold_by_host(
    per_activity: Dict[str, object],
    activity_hosts: Dict[str, str],
    cohort: Set[str],
    zero=0,
) -> Dict[str, object]:
    """
    Sum per-activity values into per-host totals.
    Activities whose host is outside the cohort are dropped.
    """
    totals = defaultdict(lambda: zero)
    for activity_id, value in per_activity.items():
        host_id = activity_hosts.get(activity_id)
        if host_id in cohort:
            totals[host_id] += value
    return totals


def _activity_host_lookup(db: Session, *groups: Iterable[str]) -> Dict[str, str]:
    activity_ids = set()
    for group in groups:
        activity_ids.update(group)
    return stats_ledger.get_activity_host_map(db, activity_ids)


def build_daily_snapshot(
    db: Session, date: Optional[Union[date_type, datetime]] = None
) -> int:
    """
    Snapshot one calendar day (default today) for every host that had an
    activity starting or a booking made that day. Returns the cohort size.
    """
    start, end = day_window(date or utcnow())
    try:
        cohort = stats_ledger.get_hosts_with_activity_starting(
            db, start=start, end=end
        ) | stats_ledger.get_hosts_with_bookings_created(db, start=start, end=end)

        if cohort:
            window = {"host_ids": cohort, "start": start, "end": end}
            events = stats_ledger.get_activities_starting_by_host(db, **window)
            new_bookings = stats_ledger.count_new_bookings_by_activity(db, **window)
            cancellations = stats_ledger.count_cancellations_by_activity(db, **window)
            revenue = stats_ledger.sum_revenue_by_activity(db, **window)
            views = stats_ledger.count_views_by_activity(db, **window)

            activity_hosts = _activity_host_lookup(
                db, new_bookings, cancellations, revenue, views
            )
            bookings_by_host = fold_by_host(new_bookings, activity_hosts, cohort)
            cancellations_by_host = fold_by_host(cancellations, activity_hosts, cohort)
            revenue_by_host = fold_by_host(revenue, activity_hosts, cohort, zero=ZERO)
            views_by_host = fold_by_host(views, activity_hosts, cohort)

            for host_id in cohort:
                events_hosted, _ = events.get(host_id, (0, 0))
                host_daily_snapshot_crud.upsert(
                    db,
                    host_id=host_id,
                    date=start,
                    values={
                        "events_hosted": events_hosted,
                        "new_bookings": bookings_by_host[host_id],
                        "cancellations": cancellations_by_host[host_id],
                        "revenue": revenue_by_host[host_id],
                        "activity_views": views_by_host[host_id],
                        "updated_at": utcnow(),
                    },
                )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to build daily snapshot for {start.date()}: {e}", exc_info=True)
        raise

    logger.info(f"Built daily snapshot for {start.date()}: {len(cohort)} hosts")
    return len(cohort)


def build_monthly_snapshot(
    db: Session, year: Optional[int] = None, month: Optional[int] = None
) -> int:
    """
    Snapshot one calendar month (default the current one) for every host with
    an activity starting in it. Returns the cohort size.
    """
    now = utcnow()
    year = year or now.year
    month = month or now.month
    start, end = month_window(year, month)

    try:
        cohort = stats_ledger.get_hosts_with_activity_starting(db, start=start, end=end)

        if cohort:
            window = {"host_ids": cohort, "start": start, "end": end}
            events = stats_ledger.get_activities_starting_by_host(db, **window)
            filled = stats_ledger.count_confirmed_by_activity_starting(db, **window)
            attendees = stats_ledger.count_unique_attendees_by_host_starting(db, **window)
            cancellations = stats_ledger.count_cancellations_by_activity(db, **window)
            revenue = stats_ledger.sum_revenue_by_activity(db, **window)
            views = stats_ledger.count_views_by_activity(db, **window)

            activity_hosts = _activity_host_lookup(
                db, filled, cancellations, revenue, views
            )
            filled_by_host = fold_by_host(filled, activity_hosts, cohort)
            cancellations_by_host = fold_by_host(cancellations, activity_hosts, cohort)
            revenue_by_host = fold_by_host(revenue, activity_hosts, cohort, zero=ZERO)
            views_by_host = fold_by_host(views, activity_hosts, cohort)

            for host_id in cohort:
                events_hosted, spots_offered = events.get(host_id, (0, 0))
                spots_filled = filled_by_host[host_id]
                host_revenue = revenue_by_host[host_id]
                host_monthly_snapshot_crud.upsert(
                    db,
                    host_id=host_id,
                    year=year,
                    month=month,
                    values={
                        "events_hosted": events_hosted,
                        "total_bookings": spots_filled,
                        "unique_attendees": attendees.get(host_id, 0),
                        "cancellations": cancellations_by_host[host_id],
                        "total_spots_offered": spots_offered,
                        "total_spots_filled": spots_filled,
                        "average_fill_rate": percentage(spots_filled, spots_offered),
                        "total_revenue": host_revenue,
                        "average_revenue_per_event": average(host_revenue, events_hosted),
                        "activity_views": views_by_host[host_id],
                        "updated_at": utcnow(),
                    },
                )
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to build monthly snapshot for {year}-{month:02d}: {e}", exc_info=True)
        raise

    logger.info(f"Built monthly snapshot for {year}-{month:02d}: {len(cohort)} hosts")
    return len(cohort)
