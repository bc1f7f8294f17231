"""Turns matched rides and walking legs into the search response."""

import logging
from collections.abc import Sequence

from busmap.config import Settings
from busmap.core.errors import RoutingError
from busmap.core.fare import FareCalculator, PassengerClass
from busmap.core.graph import Ride, RouteGraph
from busmap.core.walking import WalkingLeg
from busmap.schemas.search import (
    LegInfo,
    SearchResponse,
    WalkingInfo,
    WalkingLegInfo,
)

logger = logging.getLogger(__name__)


class ItineraryAssembler:
    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.fares = FareCalculator(settings)

    def assemble(
        self,
        graph: RouteGraph,
        rides: Sequence[Ride],
        walk_before: WalkingLeg | None,
        walk_after: WalkingLeg | None,
        passenger_class: PassengerClass,
    ) -> SearchResponse:
        legs: list[LegInfo] = []
        ride_km = 0.0
        ride_min = 0.0
        total_fare = 0.0

        for ride in rides:
            route = graph.routes[ride.route_id]
            board = graph.stops[ride.board_stop_id]
            alight = graph.stops[ride.alight_stop_id]
            eta = ride.distance_km / self.settings.avg_bus_speed_kmh * 60.0
            fare = self.fares.fare(ride.distance_km, passenger_class)

            ride_km += ride.distance_km
            ride_min += eta
            total_fare += fare
            legs.append(LegInfo(
                route_id=route.id,
                route_name=route.name,
                board_stop_id=board.id,
                board_stop_name=board.name,
                alight_stop_id=alight.id,
                alight_stop_name=alight.name,
                stop_ids=list(ride.stop_ids),
                distance_km=round(ride.distance_km, 3),
                eta_minutes=round(eta, 1),
                fare=round(fare, 2),
            ))

        transfers = max(0, len(rides) - 1)
        total_km = ride_km
        total_min = ride_min + transfers * self.settings.transfer_wait_minutes
        walking = WalkingInfo()
        if walk_before is not None:
            walking.before = self._walking_info(graph, walk_before)
            total_km += walk_before.distance_km
            total_min += walk_before.eta_minutes
        if walk_after is not None:
            walking.after = self._walking_info(graph, walk_after)
            total_km += walk_after.distance_km
            total_min += walk_after.eta_minutes

        return SearchResponse(
            success=True,
            legs=legs,
            walking=walking,
            total_fare=round(total_fare, 2),
            total_distance_km=round(total_km, 3),
            total_eta_minutes=round(total_min, 1),
            carbon_saved_kg=round(self.fares.carbon_saved_kg(ride_km), 3),
            transfer_count=transfers,
        )

    @staticmethod
    def _walking_info(graph: RouteGraph, leg: WalkingLeg) -> WalkingLegInfo:
        return WalkingLegInfo(
            stop_id=leg.stop_id,
            stop_name=graph.stops[leg.stop_id].name,
            distance_km=round(leg.distance_km, 3),
            eta_minutes=round(leg.eta_minutes, 1),
        )

    @staticmethod
    def failure(error: RoutingError) -> SearchResponse:
        return SearchResponse(success=False, reason=error.reason, message=error.message or None)
