"""Tests for load_hunter/logic/geo.py

Run with:  pytest tests/test_geo.py -v
"""

import math

import pytest

from load_hunter.logic.geo import Coordinates, distance_miles, valid_coordinates, within_radius

COLUMBUS = (39.9612, -82.9988)
DAYTON = (39.7589, -84.1916)


class TestDistance:
    def test_symmetric(self):
        forward = distance_miles(*COLUMBUS, *DAYTON)
        backward = distance_miles(*DAYTON, *COLUMBUS)
        assert forward == pytest.approx(backward)

    def test_known_pair(self):
        # Columbus → Dayton is roughly 64 miles as the crow flies.
        assert distance_miles(*COLUMBUS, *DAYTON) == pytest.approx(64, abs=3)

    def test_same_point_is_zero(self):
        assert distance_miles(*COLUMBUS, *COLUMBUS) == 0

    def test_one_degree_of_latitude(self):
        assert distance_miles(0, 0, 1, 0) == pytest.approx(3958.8 * math.pi / 180, rel=1e-9)


class TestWithinRadius:
    def test_inclusive_boundary(self):
        exact = distance_miles(*COLUMBUS, *DAYTON)
        result = within_radius(COLUMBUS, DAYTON, exact)
        assert result.matched is True
        assert result.distance_miles == pytest.approx(exact)

    def test_outside(self):
        result = within_radius(COLUMBUS, DAYTON, 10)
        assert result.matched is False
        assert result.distance_miles == pytest.approx(distance_miles(*COLUMBUS, *DAYTON))

    def test_accepts_mappings(self):
        result = within_radius({"lat": COLUMBUS[0], "lng": COLUMBUS[1]}, {"lat": DAYTON[0], "lng": DAYTON[1]}, 100)
        assert result.matched is True

    @pytest.mark.parametrize(
        "origin, target, radius",
        [
            (None, DAYTON, 100),
            (COLUMBUS, None, 100),
            ((91.0, 0.0), DAYTON, 100),
            (COLUMBUS, (0.0, 181.0), 100),
            ((float("nan"), 0.0), DAYTON, 100),
            (COLUMBUS, DAYTON, -1),
            (COLUMBUS, DAYTON, float("nan")),
            (COLUMBUS, DAYTON, "far"),
            (COLUMBUS, DAYTON, None),
            ({"lat": "x", "lng": 1}, DAYTON, 100),
        ],
    )
    def test_invalid_inputs_never_match(self, origin, target, radius):
        result = within_radius(origin, target, radius)
        assert result.matched is False
        assert result.distance_miles is None


class TestCoordinates:
    @pytest.mark.parametrize(
        "lat, lng, expected",
        [(0, 0, True), (90, 180, True), (-90, -180, True), (90.1, 0, False), (0, -180.5, False), (None, 0, False)],
    )
    def test_valid_coordinates(self, lat, lng, expected):
        assert valid_coordinates(lat, lng) is expected

    def test_from_value_numeric_strings(self):
        assert Coordinates.from_value({"lat": "39.96", "lng": "-82.99"}) == Coordinates(39.96, -82.99)

    def test_from_value_rejects_bools(self):
        assert Coordinates.from_value((True, False)) is None
