"""Nearest-stop lookup from raw coordinates.

Stops are indexed in a Shapely STRtree keyed on (lon, lat). A query first
pulls candidates whose point falls inside the bounding box of the search
circle, then applies the exact haversine distance to the survivors only.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from shapely.geometry import Point, box
from shapely.strtree import STRtree

from busmap.core import geo
from busmap.core.feed import StopRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NearbyStop:
    stop: StopRecord
    distance_km: float


class StopLocator:
    """Spatial index over one immutable set of stops."""

    def __init__(self, stops: Iterable[StopRecord]) -> None:
        self._stops: tuple[StopRecord, ...] = tuple(stops)
        self._tree: STRtree | None = None
        if self._stops:
            self._tree = STRtree([Point(s.lon, s.lat) for s in self._stops])

    def __len__(self) -> int:
        return len(self._stops)

    def nearest_stops(
        self,
        lat: float,
        lon: float,
        radius_km: float,
        limit: int,
        include: Callable[[StopRecord], bool] | None = None,
    ) -> list[NearbyStop]:
        """Stops within radius_km, nearest first, at most `limit` of them.

        Equal distances are ordered by stop id. An empty list means nothing is
        in range; deciding whether that is a failure is up to the caller.
        """
        if self._tree is None or limit <= 0 or radius_km < 0:
            return []

        found: list[NearbyStop] = []
        for idx in self._candidates(lat, lon, radius_km):
            stop = self._stops[idx]
            if include is not None and not include(stop):
                continue
            d = geo.distance_km(lat, lon, stop.lat, stop.lon)
            if d <= radius_km:
                found.append(NearbyStop(stop=stop, distance_km=d))

        found.sort(key=lambda n: (n.distance_km, n.stop.id))
        return found[:limit]

    def _candidates(self, lat: float, lon: float, radius_km: float) -> set[int]:
        min_lat, min_lon, max_lat, max_lon = geo.bounding_box(lat, lon, radius_km)

        # Split boxes that wrap past the antimeridian
        boxes = [(max(min_lon, -180.0), min(max_lon, 180.0))]
        if min_lon < -180.0:
            boxes.append((min_lon + 360.0, 180.0))
        if max_lon > 180.0:
            boxes.append((-180.0, max_lon - 360.0))

        result: set[int] = set()
        for lo, hi in boxes:
            hits = self._tree.query(box(lo, min_lat, hi, max_lat))
            result.update(int(i) for i in hits)
        return result
