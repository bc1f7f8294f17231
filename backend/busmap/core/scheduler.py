"""APScheduler setup for periodic tasks."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)


def create_scheduler(store) -> AsyncIOScheduler:
    """Create and configure the scheduler with all jobs."""
    from busmap.config import settings

    scheduler = AsyncIOScheduler()

    # Rebuild the route graph from approved data every N minutes
    scheduler.add_job(
        store.refresh,
        "interval",
        minutes=settings.graph_refresh_minutes,
        id="refresh_graph",
        name="Rebuild route graph from approved stops and routes",
        max_instances=1,
        coalesce=True,
    )

    return scheduler
