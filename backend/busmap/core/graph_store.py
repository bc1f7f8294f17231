"""Holds the live RouteGraph and swaps in rebuilt snapshots."""

import asyncio
import logging

from busmap.core.errors import DataUnavailable
from busmap.core.feed import ApprovedDataFeed
from busmap.core.graph import RouteGraph, build_graph

logger = logging.getLogger(__name__)


class GraphStore:
    """Single shared reference to the current graph snapshot.

    Rebuilds happen off to the side and are published with one attribute
    assignment, so a reader sees either the old or the new graph in full.
    """

    def __init__(self, feed: ApprovedDataFeed | None = None, graph: RouteGraph | None = None) -> None:
        self.feed = feed
        self._graph = graph
        self._rebuild_lock = asyncio.Lock()
        self.rebuild_count = 0
        self.last_error: str | None = None

    @property
    def current(self) -> RouteGraph | None:
        return self._graph

    def require(self) -> RouteGraph:
        graph = self._graph
        if graph is None:
            raise DataUnavailable("route graph not loaded yet")
        return graph

    def publish(self, graph: RouteGraph) -> None:
        self._graph = graph

    async def rebuild(self) -> RouteGraph:
        """Load the feed and build a new graph. Raises DataUnavailable on feed failure."""
        if self.feed is None:
            raise DataUnavailable("no approved data feed configured")
        async with self._rebuild_lock:
            snapshot = await self.feed.load()
            graph = await asyncio.to_thread(build_graph, snapshot)
            self.publish(graph)
            self.rebuild_count += 1
            self.last_error = None
            return graph

    async def refresh(self) -> RouteGraph | None:
        """Rebuild, keeping the previous snapshot if the feed is unreadable."""
        try:
            return await self.rebuild()
        except DataUnavailable as e:
            self.last_error = str(e)
            if self._graph is None:
                logger.error("Route graph unavailable: %s", e)
            else:
                logger.warning("Graph rebuild failed, keeping snapshot from %s: %s",
                               self._graph.built_at.isoformat(), e)
            return None
