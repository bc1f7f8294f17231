"""In-memory route graph built from the approved stop/route corpus.

Nodes are stop ids. Each approved route contributes edges between its
consecutive stops, weighted by haversine distance, and a board/alight
relation from every stop to each (route, position) passing through it.

A built graph is never mutated. Readers may share one instance across
threads without locking; a rebuild produces a new instance.
"""

import datetime
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from pydantic import AliasChoices, BaseModel, Field, TypeAdapter, ValidationError

from busmap.core import geo
from busmap.core.feed import FeedSnapshot, RouteRecord, StopRecord
from busmap.core.stop_locator import NearbyStop, StopLocator
from busmap.models.tables import STATUS_APPROVED

logger = logging.getLogger(__name__)


class RouteStopEntry(BaseModel):
    """One element of a route's stored stop list."""

    index: int
    stop_id: int = Field(validation_alias=AliasChoices("stop_id", "location_id"))


_stop_list_adapter = TypeAdapter(list[RouteStopEntry])


@dataclass(frozen=True)
class RouteLine:
    id: int
    name: str
    stop_ids: tuple[int, ...]
    # cumulative_km[i] = distance along the route from stop 0 to stop i
    cumulative_km: tuple[float, ...]
    bidirectional: bool = False

    @property
    def length_km(self) -> float:
        return self.cumulative_km[-1] if self.cumulative_km else 0.0

    def segment_km(self, from_pos: int, to_pos: int) -> float:
        return abs(self.cumulative_km[to_pos] - self.cumulative_km[from_pos])

    @property
    def is_loop(self) -> bool:
        """Circular route: the last listed stop is the first one again."""
        return len(self.stop_ids) > 2 and self.stop_ids[0] == self.stop_ids[-1]

    def can_travel(self, from_pos: int, to_pos: int) -> bool:
        if from_pos == to_pos:
            return False
        return to_pos > from_pos or self.bidirectional

    def wrap_ride(self, from_pos: int, to_pos: int) -> "Ride | None":
        """Ride on a loop route that passes through its first/last stop.

        Forward rides go from_pos -> end, then 0 -> to_pos. Bidirectional
        loops can also be ridden backwards across the same seam.
        """
        if not self.is_loop:
            return None
        last = len(self.stop_ids) - 1
        if 0 < to_pos < from_pos < last:
            return join_rides(self.ride(from_pos, last), self.ride(0, to_pos))
        if self.bidirectional and 0 < from_pos < to_pos < last:
            return join_rides(self.ride(from_pos, 0), self.ride(last, to_pos))
        return None

    def ride(self, from_pos: int, to_pos: int) -> "Ride":
        step = 1 if to_pos > from_pos else -1
        return Ride(
            route_id=self.id,
            from_pos=from_pos,
            to_pos=to_pos,
            stop_ids=tuple(self.stop_ids[i] for i in range(from_pos, to_pos + step, step)),
            distance_km=self.segment_km(from_pos, to_pos),
        )


@dataclass(frozen=True)
class Ride:
    """One uninterrupted ride on a route between two positions."""

    route_id: int
    from_pos: int
    to_pos: int
    stop_ids: tuple[int, ...]  # board stop .. alight stop, inclusive
    distance_km: float

    @property
    def board_stop_id(self) -> int:
        return self.stop_ids[0]

    @property
    def alight_stop_id(self) -> int:
        return self.stop_ids[-1]


def join_rides(first: Ride, second: Ride) -> Ride:
    """Continue one ride on the same route from the stop where it left off."""
    if first.route_id != second.route_id or first.alight_stop_id != second.board_stop_id:
        raise ValueError(
            f"cannot join ride ending at stop {first.alight_stop_id} on route {first.route_id} "
            f"with ride starting at stop {second.board_stop_id} on route {second.route_id}"
        )
    return Ride(
        route_id=first.route_id,
        from_pos=first.from_pos,
        to_pos=second.to_pos,
        stop_ids=first.stop_ids + second.stop_ids[1:],
        distance_km=first.distance_km + second.distance_km,
    )


@dataclass(frozen=True)
class SkippedRoute:
    route_id: int
    name: str
    reason: str


@dataclass(frozen=True)
class RouteGraph:
    stops: Mapping[int, StopRecord]
    routes: Mapping[int, RouteLine]
    # stop_id -> {(route_id, position_in_route)}
    stop_routes: Mapping[int, frozenset[tuple[int, int]]]
    # route_id -> ordered stop ids
    route_stops: Mapping[int, tuple[int, ...]]
    locator: StopLocator
    skipped: tuple[SkippedRoute, ...] = ()
    built_at: datetime.datetime = field(
        default_factory=lambda: datetime.datetime.now(datetime.timezone.utc)
    )

    def routes_at(self, stop_id: int) -> frozenset[tuple[int, int]]:
        return self.stop_routes.get(stop_id, frozenset())

    def is_served(self, stop_id: int) -> bool:
        return stop_id in self.stop_routes

    def nearest_served_stops(
        self, lat: float, lon: float, radius_km: float, limit: int,
        exclude: int | None = None,
    ) -> list[NearbyStop]:
        """Nearest stops that at least one route passes through."""
        return self.locator.nearest_stops(
            lat, lon, radius_km, limit,
            include=lambda s: s.id != exclude and s.id in self.stop_routes,
        )

    @property
    def membership_count(self) -> int:
        return sum(len(r.stop_ids) for r in self.routes.values())


def _parse_stop_list(raw) -> list[RouteStopEntry]:
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        return _stop_list_adapter.validate_json(raw)
    return _stop_list_adapter.validate_python(raw)


def _build_line(
    route: RouteRecord, stops: Mapping[int, StopRecord],
) -> tuple[RouteLine | None, str | None]:
    """Validate one route. Returns (line, None) or (None, reason)."""
    try:
        entries = _parse_stop_list(route.stop_list)
    except ValidationError as e:
        return None, f"malformed stop list ({e.error_count()} errors)"

    if len(entries) < 2:
        return None, f"only {len(entries)} stop(s) listed"

    indexes = [e.index for e in entries]
    if len(set(indexes)) != len(indexes):
        return None, "duplicate stop indexes"

    # Stored order is not trusted: the index field decides
    entries.sort(key=lambda e: e.index)
    stop_ids = tuple(e.stop_id for e in entries)

    missing = sorted({sid for sid in stop_ids if sid not in stops})
    if missing:
        return None, f"references unknown or unapproved stops {missing[:10]}"

    cum = [0.0]
    for prev_id, cur_id in zip(stop_ids, stop_ids[1:]):
        a, b = stops[prev_id], stops[cur_id]
        cum.append(cum[-1] + geo.distance_km(a.lat, a.lon, b.lat, b.lon))

    return RouteLine(
        id=route.id,
        name=route.name,
        stop_ids=stop_ids,
        cumulative_km=tuple(cum),
        bidirectional=route.bidirectional,
    ), None


def build_graph(snapshot: FeedSnapshot) -> RouteGraph:
    """Build a graph snapshot. Bad routes are skipped and logged, never fatal."""
    stops: dict[int, StopRecord] = {}
    for s in snapshot.stops:
        if s.status != STATUS_APPROVED:
            continue
        if not geo.is_valid_coordinate(s.lat, s.lon):
            logger.warning("Stop %d (%s): invalid coordinates (%s, %s), ignored", s.id, s.name, s.lat, s.lon)
            continue
        stops[s.id] = s

    routes: dict[int, RouteLine] = {}
    memberships: dict[int, set[tuple[int, int]]] = {}
    skipped: list[SkippedRoute] = []

    for route in sorted(snapshot.routes, key=lambda r: r.id):
        if route.status != STATUS_APPROVED:
            continue
        if route.id in routes:
            skipped.append(SkippedRoute(route.id, route.name, "duplicate route id"))
            logger.warning("Route %d (%s): duplicate route id, skipped", route.id, route.name)
            continue

        line, reason = _build_line(route, stops)
        if line is None:
            skipped.append(SkippedRoute(route.id, route.name, reason))
            logger.warning("Route %d (%s): %s, skipped", route.id, route.name, reason)
            continue

        routes[route.id] = line
        for pos, sid in enumerate(line.stop_ids):
            memberships.setdefault(sid, set()).add((route.id, pos))

    graph = RouteGraph(
        stops=MappingProxyType(stops),
        routes=MappingProxyType(routes),
        stop_routes=MappingProxyType({sid: frozenset(m) for sid, m in memberships.items()}),
        route_stops=MappingProxyType({rid: line.stop_ids for rid, line in routes.items()}),
        locator=StopLocator(stops.values()),
        skipped=tuple(skipped),
    )
    logger.info(
        "Route graph built: %d stops, %d routes, %d memberships, %d routes skipped",
        len(stops), len(routes), graph.membership_count, len(skipped),
    )
    return graph
