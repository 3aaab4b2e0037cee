from pathlib import Path

import pytest

from trailfinder.common.errors import StageError
from trailfinder.common.fs import read_json
from trailfinder.pipeline.preprocess_postcodes import parse_in_use, run_preprocess_postcodes

FIXTURE = Path("tests/fixtures/postcodes_sample.csv")


def _run(tmp_path: Path, csv_path: Path = FIXTURE, **kwargs) -> dict:
    return run_preprocess_postcodes(csv_path, tmp_path / "by-code", tmp_path / "by-district", **kwargs)


def test_summary_counts_add_up(tmp_path: Path):
    summary = _run(tmp_path)

    assert summary["total_rows"] == 8
    assert summary["written"] == 5
    assert summary["skipped_no_postcode"] == 1
    assert summary["skipped_no_coords"] == 2
    assert summary["total_rows"] == summary["written"] + summary["skipped_no_postcode"] + summary["skipped_no_coords"]
    assert summary["districts"] == 3


def test_writes_one_file_per_postcode_with_derived_parts(tmp_path: Path):
    _run(tmp_path)

    record = read_json(tmp_path / "by-code" / "S66-7RR.json")
    assert record["postcode"] == "S66 7RR"
    assert (record["area"], record["district"], record["sector"]) == ("S", "S66", "S66 7")
    assert record["latitude"] == 53.481
    assert record["easting"] == 456000.0
    assert record["gridref"] == "SK560920"
    assert record["itl_level_3"] == "TLE31"
    assert record["in_use"] is True


def test_in_use_flag_policy_applied(tmp_path: Path):
    _run(tmp_path)

    assert read_json(tmp_path / "by-code" / "S66-7RS.json")["in_use"] is False
    missing_flag = read_json(tmp_path / "by-code" / "S66-7RT.json")
    assert missing_flag["in_use"] is True
    assert missing_flag["easting"] is None
    assert missing_flag["ward_code"] is None


def test_district_index_aggregates_postcodes(tmp_path: Path):
    _run(tmp_path)

    district = read_json(tmp_path / "by-district" / "S66.json")
    assert district["district"] == "S66"
    assert district["count"] == 3
    assert [item["postcode"] for item in district["postcodes"]] == ["S66 7RR", "S66 7RS", "S66 7RT"]
    assert sorted(p.name for p in (tmp_path / "by-district").iterdir()) == ["EH1.json", "S60.json", "S66.json"]


def test_column_order_and_case_do_not_matter(tmp_path: Path):
    csv_path = tmp_path / "reordered.csv"
    csv_path.write_text(
        "LONGITUDE,postcode,latitude\n"
        "-1.135,S66 7RR,53.481\n"
        "-2.0,M1 1AA,99.999999\n",
        encoding="utf-8",
    )

    summary = _run(tmp_path, csv_path)

    assert summary["written"] == 1
    assert summary["skipped_no_coords"] == 1
    assert read_json(tmp_path / "by-code" / "S66-7RR.json")["longitude"] == -1.135


def test_configured_column_names(tmp_path: Path):
    csv_path = tmp_path / "custom.csv"
    csv_path.write_text("pcd,lat,long,usertype\nS667RR,53.481,-1.135,0\n", encoding="utf-8")

    summary = _run(
        tmp_path,
        csv_path,
        columns={"postcode": "pcd", "latitude": "lat", "longitude": "long", "in_use": "usertype"},
    )

    assert summary["written"] == 1
    assert read_json(tmp_path / "by-code" / "S66-7RR.json")["in_use"] is False


def test_header_only_file(tmp_path: Path):
    csv_path = tmp_path / "empty.csv"
    csv_path.write_text("Postcode,Latitude,Longitude\n", encoding="utf-8")

    summary = _run(tmp_path, csv_path)

    assert summary["total_rows"] == 0
    assert summary["written"] == 0


def test_missing_csv_raises_stage_error(tmp_path: Path):
    with pytest.raises(StageError):
        _run(tmp_path, tmp_path / "nope.csv")


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, True),
        ("", True),
        ("  ", True),
        ("Yes", True),
        ("t", True),
        ("1", True),
        ("No", False),
        ("F", False),
        ("0", False),
        ("maybe", False),
    ],
)
def test_parse_in_use(value, expected):
    assert parse_in_use(value) is expected
