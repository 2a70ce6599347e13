# activity_stats/schemas/stats.py
from typing import Any, Dict, List, Optional
from datetime import date, datetime, timezone
from decimal import Decimal
from pydantic import BaseModel, ConfigDict, Field, field_validator

from activity_stats.constants.ledger import ActivityStatus


# ==================== Ledger references ====================

class BookingRef(BaseModel):
    """The part of a ledger booking the stats engine needs."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    attendee_id: str
    activity_id: str
    amount_paid: Optional[Decimal] = None


class ActivityRef(BaseModel):
    """The part of a ledger activity the stats engine needs."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    host_id: str
    capacity: Optional[int] = None
    start_time: Optional[datetime] = None
    status: str = ActivityStatus.PUBLISHED

    @field_validator("start_time")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Ledger and rollup timestamps are naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


# ==================== Incoming lifecycle events ====================

class BookingConfirmedEvent(BaseModel):
    booking: BookingRef
    activity: ActivityRef


class BookingPaidEvent(BaseModel):
    booking: BookingRef
    activity: ActivityRef
    amount: Decimal = Field(..., gt=0, description="Captured amount, smallest currency unit")


class BookingCancelledEvent(BaseModel):
    booking: BookingRef
    activity: ActivityRef
    refund_amount: Optional[Decimal] = Field(None, ge=0, description="Refunded amount, smallest currency unit")


class ActivityLifecycleEvent(BaseModel):
    activity: ActivityRef


class ViewEvent(BaseModel):
    activity_id: str
    viewer_id: Optional[str] = None
    source: Optional[str] = Field(None, max_length=50)
    device_type: Optional[str] = Field(None, max_length=20)


# ==================== Responses ====================

class StatsUpdateResponse(BaseModel):
    operation: str
    applied: bool
    error: Optional[str] = None


class AggregationResponse(BaseModel):
    processed: int
    duration_ms: int
    failed: List[str] = []


class StatsJobResponse(BaseModel):
    success: bool
    job: str
    result: Any = None
    error: Optional[str] = None
    timestamp: datetime


class SnapshotRequest(BaseModel):
    """Optional period overrides for the snapshot jobs."""
    snapshot_date: Optional[date] = None
    year: Optional[int] = Field(None, ge=2000, le=2100)
    month: Optional[int] = Field(None, ge=1, le=12)


class HostDashboard(BaseModel):
    host_id: str
    stats: Dict[str, Any]
    trends: Dict[str, List[Dict[str, Any]]]
    top_activities: List[Dict[str, Any]]
    recent_attendees: List[Dict[str, Any]]
    top_attendees: List[Dict[str, Any]]
