# activity_stats/services/stats/results.py
"""
Result types for the two calling conventions of the stats engine.

- Incremental updates are best-effort: they return a StatsUpdateResult and
  never raise, so a statistics failure can't fail a booking, payment or view.
- Batch and snapshot runs must succeed: they return an AggregationResult (or a
  count) and let exceptions propagate to the operator.
"""

import functools
import logging
from dataclasses import asdict, dataclass, field
from typing import Callable, Optional

from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@dataclass
class StatsUpdateResult:
    operation: str
    applied: bool
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AggregationResult:
    processed: int
    duration_ms: int
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


def best_effort(operation: str) -> Callable:
    """
    Run an incremental update inside a SAVEPOINT and report instead of raise.

    The wrapped function receives the session first and applies its deltas
    without committing. On success the session is committed; on any error only
    the savepoint is rolled back, so work the caller already has in the session
    is left untouched, and the failure is logged and reported as not applied.
    A wrapped function may return False to signal "nothing to apply".
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(db: Session, *args, **kwargs) -> StatsUpdateResult:
            try:
                with db.begin_nested():
                    applied = func(db, *args, **kwargs)
            except Exception as e:
                logger.error(f"Stats update '{operation}' failed: {e}", exc_info=True)
                return StatsUpdateResult(operation=operation, applied=False, error=str(e))

            try:
                db.commit()
            except Exception as e:
                logger.error(f"Commit of stats update '{operation}' failed: {e}", exc_info=True)
                db.rollback()
                return StatsUpdateResult(operation=operation, applied=False, error=str(e))

            return StatsUpdateResult(operation=operation, applied=applied is not False)

        return wrapper

    return decorator
