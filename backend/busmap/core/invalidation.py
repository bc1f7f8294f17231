"""Redis pub/sub listener that rebuilds the graph on approval events."""

import asyncio
import logging

import orjson
import redis.asyncio as aioredis

from busmap.config import settings

logger = logging.getLogger(__name__)

# Status transitions that change what the graph may contain
REBUILD_STATUSES = {"approved", "rejected", "deleted"}
ENTITIES = {"stop", "route"}
# Coalesce bursts of approvals into one rebuild
DEBOUNCE_SECONDS = 2.0


class ApprovalListener:
    """Subscribes to approval events and schedules graph rebuilds."""

    def __init__(self, store, channel: str | None = None, debounce: float = DEBOUNCE_SECONDS) -> None:
        self.store = store
        self.channel = channel or settings.approval_channel
        self.debounce = debounce
        self._redis: aioredis.Redis | None = None
        self._task: asyncio.Task | None = None
        self._rebuild_task: asyncio.Task | None = None
        self._dirty = False

    async def connect(self) -> None:
        self._redis = aioredis.from_url(settings.redis_url, decode_responses=False)

    async def close(self) -> None:
        for task in (self._task, self._rebuild_task):
            if task is not None:
                task.cancel()
        if self._redis:
            await self._redis.aclose()

    def start(self) -> None:
        self._task = asyncio.get_running_loop().create_task(self._listen())

    async def _listen(self) -> None:
        if self._redis is None:
            return
        try:
            pubsub = self._redis.pubsub()
            await pubsub.subscribe(self.channel)
            logger.info("Listening for approval events on %s", self.channel)
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                self.handle_message(message.get("data"))
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Approval listener stopped; graph refresh falls back to the scheduler")

    def handle_message(self, data: bytes | str | None) -> bool:
        """Parse one event; returns True if it scheduled a rebuild."""
        try:
            event = orjson.loads(data or b"")
        except orjson.JSONDecodeError:
            logger.warning("Ignoring malformed approval event: %r", data)
            return False
        if not isinstance(event, dict):
            return False
        if event.get("entity") not in ENTITIES or event.get("status") not in REBUILD_STATUSES:
            return False
        logger.info("Approval event: %s %s -> %s", event.get("entity"), event.get("id"), event.get("status"))
        self._schedule_rebuild()
        return True

    def _schedule_rebuild(self) -> None:
        if self._rebuild_task is not None and not self._rebuild_task.done():
            self._dirty = True
            return
        self._rebuild_task = asyncio.get_running_loop().create_task(self._debounced_rebuild())

    async def _debounced_rebuild(self) -> None:
        while True:
            self._dirty = False
            await asyncio.sleep(self.debounce)
            try:
                await self.store.refresh()
            except Exception:
                logger.exception("Graph rebuild after approval event failed")
            # Events that arrived mid-rebuild need another pass
            if not self._dirty:
                break
