"""Tests for great-circle helpers."""

import pytest

from busmap.core import geo


def test_distance_to_self_is_zero():
    """Distance from a point to itself is zero."""
    for lat, lon in [(27.7172, 85.3240), (0.0, 0.0), (-89.9, 179.9), (56.84, 60.6)]:
        assert geo.distance_km(lat, lon, lat, lon) == 0.0


def test_distance_is_symmetric():
    """Distance does not depend on argument order."""
    a = (27.7172, 85.3240)
    b = (27.6710, 85.4298)
    assert geo.distance_km(*a, *b) == geo.distance_km(*b, *a)


def test_one_degree_of_latitude():
    # 2 * pi * 6371 / 360
    assert geo.distance_km(27.0, 85.0, 28.0, 85.0) == pytest.approx(111.195, abs=0.01)


def test_short_urban_distance():
    """Metre-level offsets come out accurately."""
    # ~80 m north
    d = geo.distance_km(27.7000, 85.3000, 27.7000 + 0.00072, 85.3000)
    assert d == pytest.approx(0.080, abs=0.001)


def test_coordinate_validation():
    assert geo.is_valid_coordinate(27.7, 85.3)
    assert geo.is_valid_coordinate(-90, 180)
    assert not geo.is_valid_coordinate(91, 0)
    assert not geo.is_valid_coordinate(0, -180.5)
    assert not geo.is_valid_coordinate(float("nan"), 0)


def test_bounding_box_encloses_circle():
    """The prefilter box never cuts into the search circle."""
    lat, lon, r = 27.7, 85.3, 2.0
    min_lat, min_lon, max_lat, max_lon = geo.bounding_box(lat, lon, r)
    assert min_lat < lat < max_lat
    assert min_lon < lon < max_lon
    # Box edges are at least r km from the center
    assert geo.distance_km(lat, lon, max_lat, lon) == pytest.approx(r, rel=1e-6)
    assert geo.distance_km(lat, lon, lat, max_lon) >= r
    assert geo.distance_km(lat, lon, lat, min_lon) >= r


def test_bounding_box_near_pole_spans_all_longitudes():
    """Near a pole the box covers every longitude."""
    _, min_lon, max_lat, max_lon = geo.bounding_box(89.999, 0.0, 5.0)
    assert max_lat == 90.0
    assert (min_lon, max_lon) == (-180.0, 180.0)
