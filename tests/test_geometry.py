from __future__ import annotations

import math

import pytest

from fleetgps.geometry import bearing_degrees, haversine_km, interpolate, to_degrees, to_radians

BRISBANE = (-27.4698, 153.0251)
SYDNEY = (-33.8688, 151.2093)


def test_haversine_zero_for_identical_points():
    assert haversine_km(BRISBANE, BRISBANE) == 0.0


def test_haversine_is_symmetric():
    assert haversine_km(BRISBANE, SYDNEY) == pytest.approx(haversine_km(SYDNEY, BRISBANE))


def test_haversine_brisbane_to_sydney_distance():
    assert haversine_km(BRISBANE, SYDNEY) == pytest.approx(732.0, abs=5.0)


def test_haversine_one_degree_of_latitude():
    assert haversine_km((0.0, 0.0), (1.0, 0.0)) == pytest.approx(111.19, abs=0.01)


def test_haversine_is_additive_along_a_meridian():
    a, b, c = (10.0, 20.0), (11.0, 20.0), (12.5, 20.0)
    assert haversine_km(a, c) == pytest.approx(haversine_km(a, b) + haversine_km(b, c))


def test_haversine_antipodal_points_do_not_raise():
    distance = haversine_km((0.0, 0.0), (0.0, 180.0))
    assert distance == pytest.approx(math.pi * 6371.0)


@pytest.mark.parametrize(
    "target, expected",
    [
        ((1.0, 0.0), 0.0),
        ((0.0, 1.0), 90.0),
        ((-1.0, 0.0), 180.0),
        ((0.0, -1.0), 270.0),
    ],
)
def test_bearing_cardinal_directions(target, expected):
    assert bearing_degrees((0.0, 0.0), target) == pytest.approx(expected)


def test_bearing_stays_in_range():
    bearing = bearing_degrees(BRISBANE, SYDNEY)
    assert 0.0 <= bearing < 360.0
    assert 180.0 < bearing < 270.0


def test_radian_round_trip():
    assert to_degrees(to_radians(123.4)) == pytest.approx(123.4)


def test_interpolate_clamps_fraction():
    assert interpolate((0.0, 0.0), (2.0, 4.0), 0.5) == (1.0, 2.0)
    assert interpolate((0.0, 0.0), (2.0, 4.0), 3.0) == (2.0, 4.0)
