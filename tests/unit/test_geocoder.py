from pathlib import Path

from trailfinder.common.fs import write_json
from trailfinder.search.geocoder import PostcodeGeocoder


def _record(code: str, **overrides) -> dict:
    payload = {
        "postcode": code,
        "area": "S",
        "district": code.split(" ")[0],
        "sector": code[:-2],
        "latitude": 53.481,
        "longitude": -1.135,
        "in_use": True,
    }
    payload.update(overrides)
    return payload


def _geocoder(tmp_path: Path) -> PostcodeGeocoder:
    by_code = tmp_path / "by-code"
    write_json(by_code / "S66-7RR.json", _record("S66 7RR", easting=456000, country="England"))
    write_json(by_code / "S66-7RS.json", _record("S66 7RS", in_use=False))
    write_json(by_code / "S66-7RT.json", {k: v for k, v in _record("S66 7RT").items() if k != "in_use"})
    write_json(by_code / "S66-7RU.json", _record("S66 7RU", latitude="north"))
    (by_code / "S66-7RV.json").write_text("{not json", encoding="utf-8")
    return PostcodeGeocoder(by_code, tmp_path / "by-district")


def test_resolve_normalises_input(tmp_path: Path):
    record = _geocoder(tmp_path).resolve("  s667rr ")

    assert record is not None
    assert record.code == "S66 7RR"
    assert record.point.lat == 53.481
    assert record.easting == 456000.0
    assert record.country == "England"


def test_resolve_treats_missing_in_use_as_in_use(tmp_path: Path):
    assert _geocoder(tmp_path).resolve("S66 7RT") is not None


def test_not_in_use_absent_and_corrupt_share_one_outcome(tmp_path: Path):
    geocoder = _geocoder(tmp_path)

    outcomes = [
        geocoder.resolve("S66 7RS"),
        geocoder.resolve("ZZ9 9ZZ"),
        geocoder.resolve("S66 7RU"),
        geocoder.resolve("S66 7RV"),
        geocoder.resolve(""),
        geocoder.resolve(None),
    ]

    assert outcomes == [None] * 6


def test_resolve_without_store_directory(tmp_path: Path):
    assert PostcodeGeocoder(tmp_path / "missing").resolve("S66 7RR") is None


def test_load_district_and_iterate(tmp_path: Path):
    by_district = tmp_path / "by-district"
    write_json(
        by_district / "S66.json",
        {"district": "S66", "count": 1, "postcodes": [{"postcode": "S66 7RR", "latitude": 53.481, "longitude": -1.135}]},
    )
    write_json(by_district / "EH1.json", {"district": "EH1", "count": 1, "postcodes": [{"postcode": "EH1 1YZ", "latitude": 55.95, "longitude": -3.19}]})
    (by_district / "BAD.json").write_text("[]", encoding="utf-8")
    geocoder = PostcodeGeocoder(tmp_path / "by-code", by_district)

    assert [entry.code for entry in geocoder.load_district("s66")] == ["S66 7RR"]
    assert geocoder.load_district("XX1") == []
    assert geocoder.load_district("BAD") == []
    assert [entry.code for entry in geocoder.iter_district_entries()] == ["EH1 1YZ", "S66 7RR"]


def test_resolve_does_not_leave_the_store(tmp_path: Path):
    geocoder = _geocoder(tmp_path)
    write_json(tmp_path / "SECRET-1AA.json", _record("SECRET 1AA"))

    assert geocoder.resolve("../SECRET1AA") is None
    assert geocoder.resolve("..\\SECRET1AA") is None


def test_load_district_does_not_leave_the_store(tmp_path: Path):
    geocoder = _geocoder(tmp_path)
    write_json(tmp_path / "S66.json", {"postcodes": [{"postcode": "S66 7RR", "latitude": 53.4, "longitude": -1.1}]})

    assert geocoder.load_district("../S66") == []
