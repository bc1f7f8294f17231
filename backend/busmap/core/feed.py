"""Read-only feed of approved stops and routes from the database."""

import datetime
import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from busmap.core.errors import DataUnavailable
from busmap.models.tables import STATUS_APPROVED, Route, Stop

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StopRecord:
    id: int
    name: str
    lat: float
    lon: float
    type: str = "stop"  # stop | landmark
    status: str = STATUS_APPROVED


@dataclass(frozen=True)
class RouteRecord:
    id: int
    name: str
    stop_list: Any = None  # raw stored JSON, validated by the graph builder
    bidirectional: bool = False
    status: str = STATUS_APPROVED


@dataclass(frozen=True)
class FeedSnapshot:
    stops: tuple[StopRecord, ...] = ()
    routes: tuple[RouteRecord, ...] = ()
    loaded_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )


class ApprovedDataFeed:
    """Loads the approved corpus in one read-only session."""

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory

    async def load(self) -> FeedSnapshot:
        try:
            async with self.session_factory() as session:
                stop_rows = (await session.execute(
                    select(Stop).where(Stop.status == STATUS_APPROVED).order_by(Stop.id)
                )).scalars().all()
                route_rows = (await session.execute(
                    select(Route).where(Route.status == STATUS_APPROVED).order_by(Route.id)
                )).scalars().all()
        except (SQLAlchemyError, OSError) as e:
            logger.exception("Failed to read approved stops/routes")
            raise DataUnavailable("approved data feed unavailable") from e

        stops = tuple(
            StopRecord(
                id=s.id, name=s.name, lat=s.lat, lon=s.lon,
                type=s.type or "stop", status=s.status,
            )
            for s in stop_rows
        )
        routes = tuple(
            RouteRecord(
                id=r.id, name=r.name or "", stop_list=r.stop_list,
                bidirectional=bool(r.bidirectional), status=r.status,
            )
            for r in route_rows
        )
        logger.info("Loaded %d approved stops and %d approved routes", len(stops), len(routes))
        return FeedSnapshot(stops=stops, routes=routes)
