# activity_stats/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from activity_stats import __version__
from activity_stats.api.v1.api import api_router
from activity_stats.core.config import settings
from activity_stats.scheduler import init_scheduler, shutdown_scheduler

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Activity stats service starting up (env={settings.ENV})")
    if settings.STATS_SCHEDULER_ENABLED:
        init_scheduler()
    else:
        logger.info("Stats scheduler disabled by configuration")
    yield
    shutdown_scheduler()
    logger.info("Activity stats service shutting down")


app = FastAPI(
    title="Activity Stats Service",
    version=__version__,
    description="""
        Host and activity statistics for the activity marketplace.

        ## Features

        * **Real-time rollups**: booking, payment, cancellation and view events update counters immediately
        * **Batch aggregation**: scheduled recompute from the booking ledger corrects any drift
        * **Snapshots**: daily and monthly per-host history
        * **Host dashboard**: current stats, monthly trend, top activities and attendees

        ## Authentication

        Every `/internal/` endpoint requires the `X-Internal-Api-Key` header.
        """,
    lifespan=lifespan,
)

app.include_router(api_router, prefix="/api/v1")


@app.get("/")
def read_root():
    return {"status": "Activity Stats Service is running"}
