"""Shared fixtures: a small network in Kathmandu (~27.7N, 85.3E).

Each 0.01 deg of latitude is ~1.11 km.

    Route 1 (one-way):        A(1) -> B(2) -> C(3)
    Route 2 (one-way):        C(3) -> E(5) -> F(6)
    Route 3 (bidirectional):  G(7) <-> H(8)        separate component
    L(9) is a landmark with no route; P(10) is pending approval.
"""

import pytest

from busmap.config import Settings
from busmap.core.feed import FeedSnapshot, RouteRecord, StopRecord
from busmap.core.graph import build_graph


def stop(stop_id, name, lat, lon, **kw) -> StopRecord:
    return StopRecord(id=stop_id, name=name, lat=lat, lon=lon, **kw)


def route(route_id, stop_ids, name=None, **kw) -> RouteRecord:
    stop_list = [{"index": i, "stop_id": sid} for i, sid in enumerate(stop_ids)]
    return RouteRecord(id=route_id, name=name or f"Route {route_id}", stop_list=stop_list, **kw)


NETWORK_STOPS = (
    stop(1, "A", 27.700, 85.300),
    stop(2, "B", 27.710, 85.300),
    stop(3, "C", 27.720, 85.300),
    stop(5, "E", 27.720, 85.310),
    stop(6, "F", 27.720, 85.320),
    stop(7, "G", 27.800, 85.500),
    stop(8, "H", 27.810, 85.500),
    stop(9, "L", 27.7005, 85.2995, type="landmark"),
    stop(10, "P", 27.705, 85.300, status="pending"),
)

NETWORK_ROUTES = (
    route(1, [1, 2, 3]),
    route(2, [3, 5, 6]),
    route(3, [7, 8], bidirectional=True),
)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def snapshot() -> FeedSnapshot:
    return FeedSnapshot(stops=NETWORK_STOPS, routes=NETWORK_ROUTES)


@pytest.fixture
def network(snapshot):
    return build_graph(snapshot)
