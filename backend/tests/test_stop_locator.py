"""Tests for StopLocator (bounding-box prefilter + haversine)."""

from busmap.core import geo
from busmap.core.feed import StopRecord
from busmap.core.stop_locator import StopLocator


def make_stops() -> list[StopRecord]:
    return [
        StopRecord(id=1, name="Ratnapark", lat=27.7040, lon=85.3150),
        StopRecord(id=2, name="Bagbazar", lat=27.7055, lon=85.3190),
        StopRecord(id=3, name="Putalisadak", lat=27.7080, lon=85.3220),
        StopRecord(id=4, name="Koteshwor", lat=27.6780, lon=85.3490),
        StopRecord(id=5, name="Pashupati", lat=27.7105, lon=85.3487, type="landmark"),
    ]


def test_nearest_first_within_radius():
    """Results are within the radius and nearest first."""
    locator = StopLocator(make_stops())
    found = locator.nearest_stops(27.7040, 85.3150, radius_km=1.0, limit=10)
    assert [n.stop.id for n in found] == [1, 2, 3]
    assert found[0].distance_km == 0.0
    assert all(found[i].distance_km <= found[i + 1].distance_km for i in range(len(found) - 1))
    assert all(n.distance_km <= 1.0 for n in found)


def test_limit_caps_results():
    """No more than `limit` stops come back."""
    locator = StopLocator(make_stops())
    found = locator.nearest_stops(27.7040, 85.3150, radius_km=10.0, limit=2)
    assert [n.stop.id for n in found] == [1, 2]


def test_nothing_in_range_is_empty_not_error():
    """Nothing in range is an empty list."""
    locator = StopLocator(make_stops())
    assert locator.nearest_stops(28.2096, 83.9856, radius_km=2.0, limit=5) == []


def test_empty_locator():
    locator = StopLocator([])
    assert len(locator) == 0
    assert locator.nearest_stops(27.7, 85.3, radius_km=5.0, limit=5) == []


def test_include_predicate_filters():
    """The include predicate drops stops before ranking."""
    locator = StopLocator(make_stops())
    found = locator.nearest_stops(
        27.7105, 85.3487, radius_km=5.0, limit=10,
        include=lambda s: s.type != "landmark",
    )
    assert 5 not in [n.stop.id for n in found]


def test_matches_brute_force():
    """The indexed lookup agrees with a full scan."""
    stops = make_stops()
    locator = StopLocator(stops)
    lat, lon, r = 27.700, 85.330, 2.5
    in_range = [s for s in stops if geo.distance_km(lat, lon, s.lat, s.lon) <= r]
    in_range.sort(key=lambda s: geo.distance_km(lat, lon, s.lat, s.lon))
    expected = [s.id for s in in_range]
    found = locator.nearest_stops(lat, lon, radius_km=r, limit=10)
    assert [n.stop.id for n in found] == expected


def test_search_across_antimeridian():
    """Stops either side of 180 degrees are both found."""
    stops = [
        StopRecord(id=1, name="East", lat=-16.5, lon=179.995),
        StopRecord(id=2, name="West", lat=-16.5, lon=-179.995),
    ]
    locator = StopLocator(stops)
    found = locator.nearest_stops(-16.5, 179.999, radius_km=2.0, limit=5)
    assert {n.stop.id for n in found} == {1, 2}
