"""Bounded-transfer shortest path over the route graph.

The search state is (stop, route, position, direction, transfers). Riding to
the next stop on the current route costs the travel time at the average bus
speed. Switching to a different route at the same stop adds a fixed transfer
penalty and counts against the transfer budget; states over the budget are
never created. Where a route lists the current stop twice (a loop), the rider
stays aboard and carries on from the other position at no cost. Costs are
minutes throughout, including the walk to the first stop and from the last one.

With the A* heuristic, the estimate for a stop is the straight-line ride
time to the nearest destination candidate plus that candidate's walk.
Route edges are never shorter than the straight line between their ends,
so the estimate never overshoots.
"""

import heapq
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import NamedTuple

from busmap.config import Settings
from busmap.core import geo
from busmap.core.direct_matcher import Access
from busmap.core.errors import RouteNotFound
from busmap.core.graph import Ride, RouteGraph, join_rides

logger = logging.getLogger(__name__)

# Pseudo route ids
NOT_BOARDED = -1
GOAL = -2


class _State(NamedTuple):
    stop_id: int
    route_id: int
    position: int
    direction: int
    transfers: int


_GOAL_STATE = _State(stop_id=-1, route_id=GOAL, position=-1, direction=0, transfers=0)


@dataclass(frozen=True)
class TransferResult:
    origin: Access
    destination: Access
    rides: tuple[Ride, ...]
    cost_minutes: float
    expansions: int

    @property
    def transfer_count(self) -> int:
        return max(0, len(self.rides) - 1)


def _minutes(km: float, speed_kmh: float) -> float:
    return km / speed_kmh * 60.0


def _directions(bidirectional: bool) -> tuple[int, ...]:
    return (1, -1) if bidirectional else (1,)


def _make_heuristic(
    graph: RouteGraph,
    targets: dict[int, Access],
    settings: Settings,
) -> Callable[[int], float]:
    if settings.search_heuristic != "astar":
        return lambda stop_id: 0.0

    points = []
    for t in targets.values():
        stop = graph.stops[t.stop_id]
        points.append((stop.lat, stop.lon, _minutes(t.walk_km, settings.walk_speed_kmh)))

    cache: dict[int, float] = {}

    def estimate(stop_id: int) -> float:
        h = cache.get(stop_id)
        if h is None:
            s = graph.stops[stop_id]
            h = min(
                _minutes(geo.distance_km(s.lat, s.lon, lat, lon), settings.avg_bus_speed_kmh) + egress
                for lat, lon, egress in points
            )
            cache[stop_id] = h
        return h

    return estimate


def search_transfers(
    graph: RouteGraph,
    origins: Sequence[Access],
    destinations: Sequence[Access],
    settings: Settings,
) -> TransferResult:
    """Cheapest path from any origin candidate to any destination candidate.

    Raises RouteNotFound when the frontier runs out (or the expansion budget
    is spent) before a destination is reached.
    """
    targets: dict[int, Access] = {}
    for d in destinations:
        if d.stop_id in graph.stop_routes:
            if d.stop_id not in targets or d.walk_km < targets[d.stop_id].walk_km:
                targets[d.stop_id] = d
    seeds: dict[int, Access] = {}
    for o in origins:
        if o.stop_id in graph.stop_routes:
            if o.stop_id not in seeds or o.walk_km < seeds[o.stop_id].walk_km:
                seeds[o.stop_id] = o
    if not targets or not seeds:
        raise RouteNotFound("origin or destination not served by any route")

    bus_speed = settings.avg_bus_speed_kmh
    walk_speed = settings.walk_speed_kmh
    penalty = _minutes(settings.transfer_penalty_km, bus_speed)
    heuristic = _make_heuristic(graph, targets, settings)

    best: dict[_State, tuple[float, int]] = {}  # state -> (cost, stops ridden)
    prev: dict[_State, _State | None] = {}
    closed: set[_State] = set()
    # (f, stops ridden, route id, stop id, state, cost); the ordering of the
    # leading fields is the tie-break order
    frontier: list[tuple[float, int, int, int, _State, float]] = []

    def relax(state: _State, cost: float, hops: int, parent: _State | None) -> None:
        if state in closed:
            return
        known = best.get(state)
        if known is not None and (cost, hops) >= known:
            return
        best[state] = (cost, hops)
        prev[state] = parent
        h = 0.0 if state.route_id == GOAL else heuristic(state.stop_id)
        heapq.heappush(frontier, (cost + h, hops, state.route_id, state.stop_id, state, cost))

    def ride_on(parent: _State, route_id: int, pos: int, direction: int,
                transfers: int, base: float, hops: int) -> None:
        line = graph.routes[route_id]
        nxt = pos + direction
        if nxt < 0 or nxt >= len(line.stop_ids):
            return
        state = _State(line.stop_ids[nxt], route_id, nxt, direction, transfers)
        relax(state, base + _minutes(line.segment_km(pos, nxt), bus_speed), hops + 1, parent)

    for stop_id in sorted(seeds):
        relax(_State(stop_id, NOT_BOARDED, -1, 0, 0),
              _minutes(seeds[stop_id].walk_km, walk_speed), 0, None)

    expansions = 0
    while frontier:
        _, hops, _, _, state, cost = heapq.heappop(frontier)
        if state in closed:
            continue
        closed.add(state)

        if state.route_id == GOAL:
            return _reconstruct(graph, prev, seeds, targets, cost, expansions)

        expansions += 1
        if expansions > settings.max_expansions:
            logger.warning("Transfer search gave up after %d expansions", settings.max_expansions)
            raise RouteNotFound("search budget exhausted")

        here = graph.routes_at(state.stop_id)

        if state.route_id == NOT_BOARDED:
            # First boarding carries no penalty
            for route_id, pos in sorted(here):
                for direction in _directions(graph.routes[route_id].bidirectional):
                    ride_on(state, route_id, pos, direction, 0, cost, hops)
            continue

        if state.stop_id in targets:
            egress = _minutes(targets[state.stop_id].walk_km, walk_speed)
            relax(_GOAL_STATE, cost + egress, hops, state)

        ride_on(state, state.route_id, state.position, state.direction, state.transfers, cost, hops)
        # Staying aboard where the current route lists this stop again (loop seam)
        for route_id, pos in sorted(here):
            if route_id == state.route_id and pos != state.position:
                ride_on(state, route_id, pos, state.direction, state.transfers, cost, hops)

        if state.transfers >= settings.max_transfers:
            continue
        for route_id, pos in sorted(here):
            if route_id == state.route_id:
                continue
            for direction in _directions(graph.routes[route_id].bidirectional):
                ride_on(state, route_id, pos, direction, state.transfers + 1, cost + penalty, hops)

    logger.debug("Transfer search exhausted frontier after %d expansions", expansions)
    raise RouteNotFound("no path within transfer limit")


def _reconstruct(
    graph: RouteGraph,
    prev: dict[_State, _State | None],
    seeds: dict[int, Access],
    targets: dict[int, Access],
    cost: float,
    expansions: int,
) -> TransferResult:
    chain: list[_State] = []
    state = prev[_GOAL_STATE]
    while state is not None:
        chain.append(state)
        state = prev[state]
    chain.reverse()

    start, riding = chain[0], chain[1:]
    rides: list[Ride] = []
    group: list[_State] = []
    for s in riding:
        if group and (s.route_id, s.direction, s.transfers) != (
            group[0].route_id, group[0].direction, group[0].transfers
        ):
            rides.append(_ride_from_group(graph, group))
            group = []
        group.append(s)
    if group:
        rides.append(_ride_from_group(graph, group))

    return TransferResult(
        origin=seeds[start.stop_id],
        destination=targets[riding[-1].stop_id],
        rides=tuple(rides),
        cost_minutes=cost,
        expansions=expansions,
    )


def _ride_from_group(graph: RouteGraph, group: list[_State]) -> Ride:
    line = graph.routes[group[0].route_id]
    # A jump in position means the bus passed a stop listed twice on the route
    runs: list[list[_State]] = [[group[0]]]
    for s in group[1:]:
        if s.position != runs[-1][-1].position + s.direction:
            runs.append([])
        runs[-1].append(s)

    ride = None
    for run in runs:
        first, last = run[0], run[-1]
        part = line.ride(first.position - first.direction, last.position)
        ride = part if ride is None else join_rides(ride, part)
    return ride
