"""Route resolution pipeline: endpoints -> direct match -> transfer search -> itinerary."""

import logging
from dataclasses import dataclass

from busmap.config import Settings
from busmap.core import geo
from busmap.core.direct_matcher import Access, match_direct
from busmap.core.errors import (
    DataUnavailable,
    InvalidInput,
    NoNearbyStop,
    RoutingError,
)
from busmap.core.graph import RouteGraph
from busmap.core.itinerary import ItineraryAssembler
from busmap.core.transfer_search import search_transfers
from busmap.core.walking import WalkingComposer
from busmap.schemas.search import Coordinate, SearchRequest, SearchResponse

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    candidates: tuple[Access, ...]
    # Where the trip starts or ends on the map
    location: tuple[float, float]
    # Where the rider actually is (or wants to be), for the walking leg
    walk_point: tuple[float, float] | None = None


def _point(coord: Coordinate | None, label: str) -> tuple[float, float] | None:
    if coord is None:
        return None
    if not geo.is_valid_coordinate(coord.lat, coord.lon):
        raise InvalidInput(f"{label} coordinates out of range")
    return (coord.lat, coord.lon)


class RoutePlanner:
    """Stateless planner. Every call reads one graph snapshot and nothing else."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.assembler = ItineraryAssembler(settings)
        self.walker = WalkingComposer(settings)

    def plan(self, graph: RouteGraph | None, request: SearchRequest) -> SearchResponse:
        try:
            return self._plan(graph, request)
        except RoutingError as e:
            logger.info("Search %s -> %s: %s %s", _describe(request.origin),
                        _describe(request.destination), e.reason, e.message)
            return self.assembler.failure(e)

    def _plan(self, graph: RouteGraph | None, request: SearchRequest) -> SearchResponse:
        if graph is None:
            raise DataUnavailable("route graph not loaded")
        if (isinstance(request.origin, int) and isinstance(request.destination, int)
                and request.origin == request.destination):
            raise InvalidInput("origin and destination are the same stop")

        origin = self._resolve(graph, request.origin, request.user_origin, "origin")
        destination = self._resolve(graph, request.destination, request.user_destination, "destination")
        gap = geo.distance_km(*origin.location, *destination.location)
        if gap < self.settings.walk_min_distance_km:
            raise InvalidInput(f"origin and destination are the same place ({gap * 1000:.0f} m apart)")

        direct = match_direct(graph, origin.candidates, destination.candidates)
        if direct is not None:
            rides = (direct[2],)
        else:
            result = search_transfers(graph, origin.candidates, destination.candidates, self.settings)
            rides = result.rides
            logger.debug("Transfer search: %d legs, cost %.1f min, %d expansions",
                         len(rides), result.cost_minutes, result.expansions)

        walk_before = self.walker.compose(origin.walk_point, graph.stops[rides[0].board_stop_id])
        walk_after = self.walker.compose(destination.walk_point, graph.stops[rides[-1].alight_stop_id])
        return self.assembler.assemble(graph, rides, walk_before, walk_after, request.passenger_class)

    def _resolve(
        self,
        graph: RouteGraph,
        ref: int | Coordinate,
        user_coord: Coordinate | None,
        label: str,
    ) -> Endpoint:
        user_point = _point(user_coord, f"user {label}")
        radius = self.settings.nearest_stop_radius_km
        limit = self.settings.nearest_stop_limit

        if isinstance(ref, Coordinate):
            lat, lon = _point(ref, label)
            nearby = graph.nearest_served_stops(lat, lon, radius, limit)
            if not nearby:
                raise NoNearbyStop(f"no served stop within {radius} km of {label}")
            return Endpoint(
                candidates=tuple(Access(n.stop.id, n.distance_km) for n in nearby),
                location=user_point or (lat, lon),
                walk_point=user_point or (lat, lon),
            )

        stop = graph.stops.get(ref)
        if stop is None:
            raise InvalidInput(f"unknown or unapproved {label} stop {ref}")
        if graph.is_served(stop.id):
            return Endpoint(
                candidates=(Access(stop.id, 0.0),),
                location=user_point or (stop.lat, stop.lon),
                walk_point=user_point,
            )

        # Landmark with no route through it: walk to the nearest served stops
        nearby = graph.nearest_served_stops(stop.lat, stop.lon, radius, limit, exclude=stop.id)
        if not nearby:
            raise NoNearbyStop(f"no served stop within {radius} km of {label} {stop.name}")
        return Endpoint(
            candidates=tuple(Access(n.stop.id, n.distance_km) for n in nearby),
            location=user_point or (stop.lat, stop.lon),
            walk_point=user_point or (stop.lat, stop.lon),
        )


def _describe(ref: int | Coordinate) -> str:
    if isinstance(ref, Coordinate):
        return f"({ref.lat:.5f},{ref.lon:.5f})"
    return f"stop {ref}"
