import math

import pytest

from trailfinder.common.geo import haversine_km, is_valid_coordinate, route_length_km, safe_float
from trailfinder.common.models import GeoPoint

LONDON = GeoPoint(lat=51.5074, lon=-0.1278)
MANCHESTER = GeoPoint(lat=53.4808, lon=-2.2426)


def test_distance_london_to_manchester():
    assert haversine_km(LONDON, MANCHESTER) == pytest.approx(262, abs=5)


def test_distance_is_symmetric():
    assert abs(haversine_km(LONDON, MANCHESTER) - haversine_km(MANCHESTER, LONDON)) < 1e-9


def test_distance_to_self_is_zero():
    assert haversine_km(LONDON, LONDON) == 0.0


def test_distance_along_meridian_matches_arc_length():
    a = GeoPoint(lat=53.0, lon=-1.0)
    b = GeoPoint(lat=54.0, lon=-1.0)
    assert haversine_km(a, b) == pytest.approx(6371 * math.pi / 180, rel=1e-9)


def test_distance_propagates_nan():
    assert math.isnan(haversine_km(GeoPoint(lat=math.nan, lon=0.0), LONDON))


def test_antipodal_distance_is_half_circumference():
    assert haversine_km(GeoPoint(0.0, 0.0), GeoPoint(0.0, 180.0)) == pytest.approx(math.pi * 6371)


@pytest.mark.parametrize(
    ("lat", "lon", "expected"),
    [
        (0, 0, True),
        (-90, 180, True),
        (90.01, 0, False),
        (0, -180.5, False),
        (None, 0, False),
        ("53.1", -1.0, False),
        (True, 0, False),
        (math.nan, 0, False),
        (math.inf, 0, False),
    ],
)
def test_is_valid_coordinate(lat, lon, expected):
    assert is_valid_coordinate(lat, lon) is expected


def test_safe_float():
    assert safe_float(" 1.5 ") == 1.5
    assert safe_float("") is None
    assert safe_float("n/a") is None
    assert safe_float(None) is None
    assert safe_float(False) is None


def test_route_length_rounds_to_tenth_of_km():
    coords = [[-1.0, 53.0], [-1.0, 53.05], [-1.0, 53.1]]
    assert route_length_km(coords) == 11.1
    assert route_length_km([[-1.0, 53.0]]) == 0.0
