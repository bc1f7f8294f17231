"""End-to-end tests for RoutePlanner on the shared network."""

import orjson
import pytest

from busmap.config import Settings
from busmap.core import geo
from busmap.core.fare import FareCalculator, PassengerClass
from busmap.core.feed import FeedSnapshot
from busmap.core.graph import build_graph
from busmap.core.planner import RoutePlanner
from busmap.schemas.search import Coordinate, SearchRequest

from conftest import NETWORK_STOPS, route


def plan(graph, settings=None, **request):
    return RoutePlanner(settings or Settings()).plan(graph, SearchRequest(**request))


def test_direct_route(network):
    """A shared route gives a single-leg itinerary with fare, ETA and carbon."""
    result = plan(network, origin=1, destination=3)

    assert result.success
    assert result.transfer_count == 0
    assert len(result.legs) == 1
    leg = result.legs[0]
    assert (leg.route_id, leg.board_stop_id, leg.alight_stop_id) == (1, 1, 3)
    assert leg.stop_ids == [1, 2, 3]

    km = geo.distance_km(27.700, 85.300, 27.720, 85.300)
    assert result.total_distance_km == pytest.approx(km, abs=0.001)
    # 15 + 1.8 * 2.22 = 19.0 -> 20
    assert result.total_fare == 20.0
    assert result.total_eta_minutes == pytest.approx(km / 15 * 60, abs=0.05)
    assert result.carbon_saved_kg == pytest.approx(km * 0.103, abs=0.001)
    assert result.walking.before is None
    assert result.walking.after is None


def test_direct_route_skips_transfer_search(network, monkeypatch):
    """The transfer search is not run when a direct route exists."""
    def fail(*args, **kwargs):
        raise AssertionError("transfer search should not run")

    monkeypatch.setattr("busmap.core.planner.search_transfers", fail)
    assert plan(network, origin=1, destination=2).success


def test_one_transfer(network):
    """A trip through a shared stop is two legs, each fared separately."""
    settings = Settings()
    result = plan(network, settings, origin=1, destination=6)

    assert result.success
    assert result.transfer_count == 1
    assert [leg.route_id for leg in result.legs] == [1, 2]
    assert result.legs[0].alight_stop_id == result.legs[1].board_stop_id == 3

    # Fare is charged per leg
    calc = FareCalculator(settings)
    leg_km = [geo.distance_km(27.700, 85.300, 27.720, 85.300),
              geo.distance_km(27.720, 85.300, 27.720, 85.320)]
    assert result.total_fare == sum(calc.fare(km) for km in leg_km)
    assert [leg.fare for leg in result.legs] == [calc.fare(km) for km in leg_km]

    # Ride time plus one transfer wait
    ride_min = sum(leg_km) / settings.avg_bus_speed_kmh * 60
    assert result.total_eta_minutes == pytest.approx(ride_min + settings.transfer_wait_minutes, abs=0.05)


def test_no_route_between_components(network):
    """Disconnected stops give ROUTE_NOT_FOUND, not an exception."""
    result = plan(network, origin=1, destination=7)
    assert not result.success
    assert result.reason == "ROUTE_NOT_FOUND"
    assert result.legs is None


def test_one_way_route_not_reversed(network):
    result = plan(network, origin=3, destination=1)
    assert result.reason == "ROUTE_NOT_FOUND"


def test_bidirectional_route_reversed(network):
    """A bidirectional route is ridden backwards when needed."""
    result = plan(network, origin=8, destination=7)
    assert result.success
    assert result.legs[0].stop_ids == [8, 7]


def test_coordinates_get_walking_legs(network):
    """A raw coordinate 80 m from the stop adds a walking leg."""
    # ~80 m north of A
    result = plan(network, origin=Coordinate(lat=27.70072, lon=85.300), destination=6)

    assert result.success
    assert result.legs[0].board_stop_id == 1
    before = result.walking.before
    assert before.stop_id == 1
    assert before.stop_name == "A"
    assert before.distance_km == pytest.approx(0.080, abs=0.001)
    assert result.walking.after is None
    ride_km = sum(leg.distance_km for leg in result.legs)
    assert result.total_distance_km == pytest.approx(ride_km + before.distance_km, abs=0.002)


def test_negligible_walk_is_omitted(network):
    """A 10 m walk is dropped."""
    result = plan(network, origin=Coordinate(lat=27.70009, lon=85.300), destination=3)
    assert result.success
    assert result.walking.before is None


def test_user_location_with_stop_ids(network):
    """User coordinates add walking legs to stop-id searches."""
    result = plan(
        network, origin=1, destination=3,
        user_origin=Coordinate(lat=27.6991, lon=85.300),
        user_destination=Coordinate(lat=27.7215, lon=85.300),
    )
    assert result.walking.before.stop_id == 1
    assert result.walking.after.stop_id == 3
    assert result.walking.before.eta_minutes > 0


def test_landmark_walks_to_nearest_served_stop(network):
    """A landmark with no route walks to the nearest served stop."""
    result = plan(network, origin=9, destination=3)
    assert result.success
    assert result.legs[0].board_stop_id == 1
    assert result.walking.before.stop_id == 1
    assert result.walking.before.distance_km == pytest.approx(
        geo.distance_km(27.7005, 85.2995, 27.700, 85.300), abs=0.001,
    )


@pytest.mark.parametrize("origin,destination", [
    (99, 3),      # unknown
    (10, 3),      # pending approval
    (1, 1),       # same stop
    (Coordinate(lat=27.72, lon=85.3), Coordinate(lat=27.72, lon=85.3)),
    (Coordinate(lat=27.7201, lon=85.300), 3),    # ~11 m from C
    (3, Coordinate(lat=27.72005, lon=85.30005)),
])
def test_invalid_input(network, origin, destination):
    """Unknown, unapproved and coincident endpoints are rejected."""
    result = plan(network, origin=origin, destination=destination)
    assert not result.success
    assert result.reason == "INVALID_INPUT"


def test_no_nearby_stop(network):
    """A coordinate far from every stop gives NO_NEARBY_STOP."""
    result = plan(network, origin=Coordinate(lat=0.0, lon=0.0), destination=3)
    assert result.reason == "NO_NEARBY_STOP"


def test_graph_not_loaded():
    """Without a graph the planner reports DATA_UNAVAILABLE."""
    result = plan(None, origin=1, destination=3)
    assert result.reason == "DATA_UNAVAILABLE"


def test_passenger_class_discount(network):
    """Discounts change the fare, not the route."""
    regular = plan(network, origin=1, destination=6)
    elderly = plan(network, origin=1, destination=6, passenger_class=PassengerClass.ELDERLY)
    assert elderly.total_fare == regular.total_fare * 0.5
    assert elderly.legs[0].route_id == regular.legs[0].route_id


def test_heuristics_agree(network):
    """A* and Dijkstra give the same itinerary."""
    a = plan(network, Settings(search_heuristic="astar"), origin=Coordinate(lat=27.70072, lon=85.300), destination=6)
    d = plan(network, Settings(search_heuristic="dijkstra"), origin=Coordinate(lat=27.70072, lon=85.300), destination=6)
    assert a == d


def test_same_request_same_bytes(network):
    """Repeating a search gives byte-identical JSON."""
    planner = RoutePlanner(Settings())
    request = SearchRequest(origin=1, destination=6)
    first = planner.plan(network, request).model_dump(mode="json", by_alias=True, exclude_none=True)
    second = planner.plan(network, request).model_dump(mode="json", by_alias=True, exclude_none=True)
    assert orjson.dumps(first) == orjson.dumps(second)
    assert "totalFare" in first


def test_same_stop_by_user_location(network):
    """Two different stop ids from the same spot on the map is not a trip."""
    here = Coordinate(lat=27.705, lon=85.300)
    result = plan(network, origin=1, destination=3, user_origin=here, user_destination=here)
    assert result.reason == "INVALID_INPUT"


def test_loop_route_plans_single_leg():
    """Riding through the start of a circular route needs no transfer."""
    graph = build_graph(FeedSnapshot(stops=NETWORK_STOPS, routes=(route(1, [1, 2, 3, 5, 1]),)))
    result = plan(graph, origin=5, destination=2)
    assert result.success
    assert result.transfer_count == 0
    assert result.legs[0].stop_ids == [5, 1, 2]
    assert result.legs[0].board_stop_name == "E"
    assert result.legs[0].alight_stop_name == "B"
