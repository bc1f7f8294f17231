"""Fire-and-forget trip analytics after successful searches."""

import asyncio
import datetime
import logging

from sqlalchemy import text

from busmap.models.tables import Trip
from busmap.schemas.search import SearchRequest, SearchResponse

logger = logging.getLogger(__name__)


class TripLogger:
    """Writes a trip row and bumps stop popularity counters in the background.

    Failures are logged and dropped; they never reach the search response.
    """

    def __init__(self, session_factory) -> None:
        self.session_factory = session_factory
        self._pending: set[asyncio.Task] = set()

    def submit(self, request: SearchRequest, response: SearchResponse) -> asyncio.Task | None:
        if not response.success or not response.legs:
            return None
        task = asyncio.get_running_loop().create_task(self._write(request, response))
        # Keep a reference until done so the task is not garbage collected
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def drain(self) -> None:
        """Wait for in-flight writes (used on shutdown)."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    async def _write(self, request: SearchRequest, response: SearchResponse) -> None:
        legs = response.legs
        origin_id = legs[0].board_stop_id
        destination_id = legs[-1].alight_stop_id
        routes_used = list(dict.fromkeys(leg.route_id for leg in legs))
        try:
            async with self.session_factory() as session:
                session.add(Trip(
                    origin_stop_id=origin_id,
                    destination_stop_id=destination_id,
                    routes_used=routes_used,
                    passenger_class=request.passenger_class.value,
                    transfer_count=response.transfer_count or 0,
                    total_fare=response.total_fare or 0.0,
                    queried_at=datetime.datetime.now(datetime.timezone.utc),
                ))
                await session.execute(
                    text("UPDATE stops SET departure_count = departure_count + 1 WHERE id = :id"),
                    {"id": origin_id},
                )
                await session.execute(
                    text("UPDATE stops SET destination_count = destination_count + 1 WHERE id = :id"),
                    {"id": destination_id},
                )
                await session.commit()
        except Exception:
            logger.exception("Failed to log trip %d -> %d", origin_id, destination_id)
