"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from busmap.api import diagnostics, routes, search, stops
from busmap.config import settings
from busmap.core.feed import ApprovedDataFeed
from busmap.core.graph_store import GraphStore
from busmap.core.invalidation import ApprovalListener
from busmap.core.scheduler import create_scheduler
from busmap.core.trip_logger import TripLogger
from busmap.db.session import async_session, engine
from busmap.models.base import Base
from busmap.models import tables  # noqa: F401

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    # Create tables if they don't exist
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    # Initialize services
    store = GraphStore(ApprovedDataFeed(async_session))
    trip_logger = TripLogger(async_session)
    listener = ApprovalListener(store)

    # Wire up API modules
    search.store = store
    search.trip_logger = trip_logger
    stops.store = store
    routes.store = store
    diagnostics.store = store

    # Initial graph; searches answer DATA_UNAVAILABLE until one succeeds
    await store.refresh()

    try:
        await listener.connect()
        listener.start()
    except Exception:
        logger.exception("Failed to start approval listener - relying on periodic refresh")

    scheduler = create_scheduler(store)
    scheduler.start()
    logger.info("Route engine started - graph refresh every %d min", settings.graph_refresh_minutes)

    yield

    # Shutdown
    scheduler.shutdown(wait=False)
    await listener.close()
    await trip_logger.drain()
    await engine.dispose()
    logger.info("Route engine shut down")


app = FastAPI(
    title="Crowdsourced Bus Route Engine",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(RequestValidationError, search.validation_error_handler)

app.include_router(search.router)
app.include_router(stops.router)
app.include_router(routes.router)
app.include_router(diagnostics.router)


@app.get("/api/health")
async def health():
    graph = search.store.current if search.store is not None else None
    return {"status": "ok", "graph_loaded": graph is not None}
