from dataclasses import dataclass

import pytest

from trailfinder.common.errors import InvalidSearchInput, NoCandidateData
from trailfinder.common.models import GeoPoint
from trailfinder.search.proximity import search

ORIGIN = GeoPoint(lat=53.481, lon=-1.135)
KM_PER_DEGREE_LAT = 111.19492664455873


@dataclass(frozen=True)
class Spot:
    candidate_id: str
    point: GeoPoint | None


def north_of_origin(name: str, km: float) -> Spot:
    return Spot(name, GeoPoint(lat=ORIGIN.lat + km / KM_PER_DEGREE_LAT, lon=ORIGIN.lon))


def test_filters_by_radius_and_orders_closest_first():
    corpus = [north_of_origin("far", 120), north_of_origin("near", 5), north_of_origin("mid", 40)]

    result = search(ORIGIN, corpus, 50, 10)

    assert [m.candidate.candidate_id for m in result.matches] == ["near", "mid"]
    assert [m.distance_km for m in result.matches] == [5.0, 40.0]


def test_never_exceeds_radius_and_is_sorted():
    corpus = [north_of_origin(f"s{i}", km) for i, km in enumerate([33, 2, 49.9, 50.1, 17, 80, 0.4, 25])]

    result = search(ORIGIN, corpus, 30, 100)

    distances = [m.distance_km for m in result.matches]
    assert distances == sorted(distances)
    assert all(d <= 30 for d in distances)
    assert len(distances) == 4


def test_truncates_to_limit():
    corpus = [north_of_origin(f"s{i}", i + 1) for i in range(10)]

    result = search(ORIGIN, corpus, 100, 3)

    assert [m.candidate.candidate_id for m in result.matches] == ["s0", "s1", "s2"]


def test_ties_keep_corpus_order():
    corpus = [north_of_origin("b", 10), north_of_origin("a", 10), north_of_origin("c", 10)]

    result = search(ORIGIN, corpus, 50, 10)

    assert [m.candidate.candidate_id for m in result.matches] == ["b", "a", "c"]


def test_exclude_id_matches_identity_not_position():
    twin_a = Spot("anchor", ORIGIN)
    twin_b = Spot("twin", ORIGIN)

    result = search(ORIGIN, [twin_a, twin_b], 5, 10, exclude_id="anchor")

    assert [m.candidate.candidate_id for m in result.matches] == ["twin"]
    assert result.matches[0].distance_km == 0.0
    assert result.excluded == 1


def test_malformed_candidates_are_skipped_and_counted():
    corpus = [
        Spot("none", None),
        Spot("lat-out-of-range", GeoPoint(lat=123.0, lon=0.0)),
        Spot("string-lat", GeoPoint(lat="53.4", lon=-1.1)),
        object(),
        north_of_origin("ok", 1),
    ]

    result = search(ORIGIN, corpus, 10, 10)

    assert [m.candidate.candidate_id for m in result.matches] == ["ok"]
    assert result.skipped_malformed == 4


def test_custom_accessors():
    corpus = [{"code": "A", "lat": 53.5, "lon": -1.135}]

    result = search(ORIGIN, corpus, 10, 1, point_of=lambda c: GeoPoint(c["lat"], c["lon"]), id_of=lambda c: c["code"])

    assert result.matches[0].candidate["code"] == "A"


def test_distance_rounded_to_two_decimals():
    result = search(ORIGIN, [north_of_origin("x", 3.14159)], 10, 1)
    assert result.matches[0].distance_km == 3.14


@pytest.mark.parametrize("radius", [0, -5, float("nan"), float("inf"), "10", None, True])
def test_rejects_bad_radius(radius):
    with pytest.raises(InvalidSearchInput):
        search(ORIGIN, [north_of_origin("x", 1)], radius, 10)


@pytest.mark.parametrize("limit", [0, -1, 2.5, float("nan"), None])
def test_rejects_bad_limit(limit):
    with pytest.raises(InvalidSearchInput):
        search(ORIGIN, [north_of_origin("x", 1)], 10, limit)


def test_rejects_invalid_reference():
    with pytest.raises(InvalidSearchInput):
        search(GeoPoint(lat=200.0, lon=0.0), [north_of_origin("x", 1)], 10, 10)


def test_empty_corpus_is_no_data_not_empty_result():
    with pytest.raises(NoCandidateData):
        search(ORIGIN, [], 10, 10)


def test_nothing_in_range_is_an_empty_result():
    result = search(ORIGIN, [north_of_origin("far", 500)], 10, 10)
    assert result.matches == []
