# activity_stats/crud/crud_host_snapshot.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy.orm import Session

from activity_stats.models.host_snapshot import HostDailySnapshot, HostMonthlySnapshot


class CRUDHostDailySnapshot:
    def get(self, db: Session, *, host_id: str, date: datetime) -> Optional[HostDailySnapshot]:
        return (
            db.query(HostDailySnapshot)
            .filter(HostDailySnapshot.host_id == host_id, HostDailySnapshot.date == date)
            .first()
        )

    def upsert(
        self, db: Session, *, host_id: str, date: datetime, values: dict
    ) -> HostDailySnapshot:
        """Insert or overwrite the snapshot for (host, date)."""
        snapshot = self.get(db, host_id=host_id, date=date)
        if not snapshot:
            snapshot = HostDailySnapshot(host_id=host_id, date=date)
            db.add(snapshot)
        for column, value in values.items():
            setattr(snapshot, column, value)
        db.flush()
        return snapshot

    def get_multi_by_host(
        self, db: Session, *, host_id: str, limit: int = 30
    ) -> List[HostDailySnapshot]:
        return (
            db.query(HostDailySnapshot)
            .filter(HostDailySnapshot.host_id == host_id)
            .order_by(HostDailySnapshot.date.desc())
            .limit(limit)
            .all()
        )


class CRUDHostMonthlySnapshot:
    def get(
        self, db: Session, *, host_id: str, year: int, month: int
    ) -> Optional[HostMonthlySnapshot]:
        return (
            db.query(HostMonthlySnapshot)
            .filter(
                HostMonthlySnapshot.host_id == host_id,
                HostMonthlySnapshot.year == year,
                HostMonthlySnapshot.month == month,
            )
            .first()
        )

    def upsert(
        self, db: Session, *, host_id: str, year: int, month: int, values: dict
    ) -> HostMonthlySnapshot:
        """Insert or overwrite the snapshot for (host, year, month)."""
        snapshot = self.get(db, host_id=host_id, year=year, month=month)
        if not snapshot:
            snapshot = HostMonthlySnapshot(host_id=host_id, year=year, month=month)
            db.add(snapshot)
        for column, value in values.items():
            setattr(snapshot, column, value)
        db.flush()
        return snapshot

    def get_recent_by_host(
        self, db: Session, *, host_id: str, limit: int = 6
    ) -> List[HostMonthlySnapshot]:
        """Latest `limit` months, newest first."""
        return (
            db.query(HostMonthlySnapshot)
            .filter(HostMonthlySnapshot.host_id == host_id)
            .order_by(HostMonthlySnapshot.year.desc(), HostMonthlySnapshot.month.desc())
            .limit(limit)
            .all()
        )


# Singleton instances
host_daily_snapshot_crud = CRUDHostDailySnapshot()
host_monthly_snapshot_crud = CRUDHostMonthlySnapshot()
