"""Single-route matching between origin and destination stops."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from busmap.core.graph import Ride, RouteGraph

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Access:
    """A candidate boarding/alighting stop and the walk needed to reach it."""

    stop_id: int
    walk_km: float = 0.0


def find_direct_route(graph: RouteGraph, origin_id: int, destination_id: int) -> Ride | None:
    """Best route serving both stops in an allowed direction, or None.

    Picks the fewest intermediate stops, then the lowest route id.
    """
    if origin_id == destination_id:
        return None

    dest_positions: dict[int, list[int]] = {}
    for route_id, pos in graph.routes_at(destination_id):
        dest_positions.setdefault(route_id, []).append(pos)

    best: tuple[tuple[int, int, int, int, int], Ride] | None = None
    for route_id, origin_pos in graph.routes_at(origin_id):
        line = graph.routes[route_id]
        for dest_pos in dest_positions.get(route_id, ()):
            candidates = []
            if line.can_travel(origin_pos, dest_pos):
                candidates.append((0, line.ride(origin_pos, dest_pos)))
            # Loop routes can also be ridden through their first/last stop
            wrapped = line.wrap_ride(origin_pos, dest_pos)
            if wrapped is not None:
                candidates.append((1, wrapped))
            for wraps, ride in candidates:
                key = (len(ride.stop_ids) - 2, route_id, wraps, origin_pos, dest_pos)
                if best is None or key < best[0]:
                    best = (key, ride)

    return best[1] if best is not None else None


def match_direct(
    graph: RouteGraph,
    origins: Sequence[Access],
    destinations: Sequence[Access],
) -> tuple[Access, Access, Ride] | None:
    """Try candidate pairs by combined walking distance; first direct hit wins."""
    pairs = sorted(
        ((o, d) for o in origins for d in destinations if o.stop_id != d.stop_id),
        key=lambda p: (p[0].walk_km + p[1].walk_km, p[0].stop_id, p[1].stop_id),
    )
    for origin, destination in pairs:
        ride = find_direct_route(graph, origin.stop_id, destination.stop_id)
        if ride is not None:
            logger.debug(
                "Direct route %d: %d -> %d (%d stops)",
                ride.route_id, origin.stop_id, destination.stop_id, len(ride.stop_ids),
            )
            return origin, destination, ride
    return None
