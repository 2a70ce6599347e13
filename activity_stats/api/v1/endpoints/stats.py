# activity_stats/api/v1/endpoints/stats.py
"""
Internal stats endpoints.

Other services call these after committing a ledger write (event ingestion),
and operators use them to run batch jobs on demand. Every route requires the
internal API key.
"""
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from activity_stats.api import deps
from activity_stats.db.session import get_db
from activity_stats.schemas.stats import (
    ActivityLifecycleEvent,
    AggregationResponse,
    BookingCancelledEvent,
    BookingConfirmedEvent,
    BookingPaidEvent,
    HostDashboard,
    SnapshotRequest,
    StatsJobResponse,
    StatsUpdateResponse,
    ViewEvent,
)
from activity_stats.services.stats import realtime
from activity_stats.services.stats.aggregation import recompute_host
from activity_stats.services.stats.dashboard import get_host_dashboard
from activity_stats.services.stats.jobs import STATS_JOBS, run_stats_job
from activity_stats.services.stats.snapshots import (
    build_daily_snapshot,
    build_monthly_snapshot,
)
from activity_stats.utils.dates import utcnow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/stats", tags=["Internal Stats"])


def _job_failed(job: str, error: Exception) -> JSONResponse:
    body = StatsJobResponse(
        success=False, job=job, error=str(error), timestamp=utcnow()
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=body.model_dump(mode="json"),
    )


# ==================== Batch jobs ====================

@router.post("/jobs/{job}", response_model=StatsJobResponse)
def trigger_stats_job(
    job: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """
    Run a named stats job now (host-stats, activity-stats, attendee-history,
    daily-snapshot, monthly-snapshot, full).
    """
    if job not in STATS_JOBS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown job '{job}'. Expected one of: {', '.join(STATS_JOBS)}",
        )

    try:
        result = run_stats_job(db, job)
    except Exception as e:
        logger.error(f"Stats job '{job}' failed: {e}", exc_info=True)
        return _job_failed(job, e)

    return StatsJobResponse(success=True, job=job, result=result, timestamp=utcnow())


@router.post("/snapshots/daily", response_model=StatsJobResponse)
def trigger_daily_snapshot(
    request: Optional[SnapshotRequest] = None,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """Build (or rebuild) the daily snapshot for a given day, today by default."""
    snapshot_date = (request.snapshot_date if request else None) or utcnow().date()
    try:
        hosts = build_daily_snapshot(db, snapshot_date)
    except Exception as e:
        return _job_failed("daily-snapshot", e)

    return StatsJobResponse(
        success=True,
        job="daily-snapshot",
        result={"date": snapshot_date.isoformat(), "hosts": hosts},
        timestamp=utcnow(),
    )


@router.post("/snapshots/monthly", response_model=StatsJobResponse)
def trigger_monthly_snapshot(
    request: Optional[SnapshotRequest] = None,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """Build (or rebuild) the monthly snapshot, the current month by default."""
    now = utcnow()
    year = (request.year if request else None) or now.year
    month = (request.month if request else None) or now.month
    try:
        hosts = build_monthly_snapshot(db, year, month)
    except Exception as e:
        return _job_failed("monthly-snapshot", e)

    return StatsJobResponse(
        success=True,
        job="monthly-snapshot",
        result={"year": year, "month": month, "hosts": hosts},
        timestamp=utcnow(),
    )


# ==================== Hosts ====================

@router.post("/hosts/{host_id}/recompute", response_model=AggregationResponse)
def recompute_host_stats(
    host_id: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    """Recompute one host's rollup from the ledger."""
    try:
        result = recompute_host(db, host_id)
    except Exception as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to recompute host {host_id}: {e}",
        )
    return AggregationResponse(**result.to_dict())


@router.get("/hosts/{host_id}/dashboard", response_model=HostDashboard)
def read_host_dashboard(
    host_id: str,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    return get_host_dashboard(db, host_id)


# ==================== Event ingestion ====================

@router.post(
    "/events/booking-confirmed",
    response_model=StatsUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def booking_confirmed(
    event: BookingConfirmedEvent,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    result = realtime.apply_booking_confirmed(db, event.booking, event.activity)
    return StatsUpdateResponse(**result.to_dict())


@router.post(
    "/events/booking-paid",
    response_model=StatsUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def booking_paid(
    event: BookingPaidEvent,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    result = realtime.apply_booking_paid(db, event.booking, event.activity, event.amount)
    return StatsUpdateResponse(**result.to_dict())


@router.post(
    "/events/booking-cancelled",
    response_model=StatsUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def booking_cancelled(
    event: BookingCancelledEvent,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    result = realtime.apply_booking_cancelled(
        db, event.booking, event.activity, event.refund_amount
    )
    return StatsUpdateResponse(**result.to_dict())


@router.post(
    "/events/activity-created",
    response_model=StatsUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def activity_created(
    event: ActivityLifecycleEvent,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    result = realtime.apply_activity_created(db, event.activity)
    return StatsUpdateResponse(**result.to_dict())


@router.post(
    "/events/activity-cancelled",
    response_model=StatsUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def activity_cancelled(
    event: ActivityLifecycleEvent,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    result = realtime.apply_activity_cancelled(db, event.activity)
    return StatsUpdateResponse(**result.to_dict())


@router.post(
    "/events/activity-completed",
    response_model=StatsUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def activity_completed(
    event: ActivityLifecycleEvent,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    result = realtime.apply_activity_completed(db, event.activity)
    return StatsUpdateResponse(**result.to_dict())


@router.post(
    "/events/views",
    response_model=StatsUpdateResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def activity_viewed(
    event: ViewEvent,
    db: Session = Depends(get_db),
    api_key: str = Depends(deps.get_internal_api_key),
):
    result = realtime.record_view(
        db,
        event.activity_id,
        viewer_id=event.viewer_id,
        source=event.source,
        device_type=event.device_type,
    )
    return StatsUpdateResponse(**result.to_dict())
