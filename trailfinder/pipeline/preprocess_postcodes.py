"""Split the national postcode table into per-postcode and per-district JSON files."""

from __future__ import annotations

import csv
import logging
import math
from collections import defaultdict
from pathlib import Path
from typing import Mapping

from trailfinder.common.constants import FALSE_FLAGS, TRUE_FLAGS
from trailfinder.common.errors import StageError
from trailfinder.common.fs import ensure_dir, write_json
from trailfinder.common.geo import is_valid_coordinate, safe_float
from trailfinder.common.logging import get_logger, log_event
from trailfinder.common.models import DistrictIndexEntry, PostcodeRecord
from trailfinder.common.postcode import (
    derive_area_district_sector,
    is_valid_uk_unit_postcode,
    normalise_postcode,
    postcode_key,
)

DEFAULT_COLUMNS = {
    "postcode": "Postcode",
    "latitude": "Latitude",
    "longitude": "Longitude",
    "in_use": "In Use?",
    "easting": "Easting",
    "northing": "Northing",
    "gridref": "Grid Reference",
    "district_code": "District Code",
    "ward_code": "Ward Code",
    "lsoa_code": "LSOA Code",
    "msoa_code": "MSOA Code",
    "itl_level_2": "ITL level 2",
    "itl_level_3": "ITL level 3",
    "country": "Country",
}

_TEXT_FIELDS = (
    "gridref",
    "district_code",
    "ward_code",
    "lsoa_code",
    "msoa_code",
    "itl_level_2",
    "itl_level_3",
    "country",
)


def build_header_map(headers: list[str]) -> dict[str, int]:
    return {header.strip().lower(): idx for idx, header in enumerate(headers)}


class RowReader:
    """Field access by configured column name, independent of column order."""

    def __init__(self, header_map: dict[str, int], columns: Mapping[str, str]) -> None:
        self.indexes = {
            field: header_map.get(name.strip().lower()) for field, name in columns.items()
        }

    def get(self, row: list[str], field: str) -> str | None:
        idx = self.indexes.get(field)
        if idx is None or idx >= len(row):
            return None
        value = row[idx].strip()
        return value or None


def parse_in_use(value: str | None) -> bool:
    # No information keeps the postcode; only explicit values decide otherwise.
    if value is None or not value.strip():
        return True
    flag = value.strip().lower()
    if flag in TRUE_FLAGS:
        return True
    if flag in FALSE_FLAGS:
        return False
    return False


def _parse_coordinate(value: str | None) -> float | None:
    number = safe_float(value)
    if number is None or not math.isfinite(number):
        return None
    return number


def build_record(code: str, lat: float, lon: float, reader: RowReader, row: list[str]) -> PostcodeRecord:
    area, district, sector = derive_area_district_sector(code)
    return PostcodeRecord(
        code=code,
        area=area,
        district=district,
        sector=sector,
        latitude=lat,
        longitude=lon,
        easting=safe_float(reader.get(row, "easting")),
        northing=safe_float(reader.get(row, "northing")),
        in_use=parse_in_use(reader.get(row, "in_use")),
        **{name: reader.get(row, name) for name in _TEXT_FIELDS},
    )


def run_preprocess_postcodes(
    csv_path: Path,
    by_code_dir: Path,
    by_district_dir: Path,
    *,
    columns: Mapping[str, str] | None = None,
    progress_every: int = 5000,
    logger: logging.Logger | None = None,
) -> dict:
    """Stream ``csv_path`` row by row and write the lookup store.

    Returns the run counts; ``total_rows`` always equals
    ``written + skipped_no_postcode + skipped_no_coords``.
    """
    logger = get_logger(logger)
    if not csv_path.is_file():
        raise StageError(f"Postcode CSV not found: {csv_path}")

    ensure_dir(by_code_dir)
    ensure_dir(by_district_dir)

    district_index: dict[str, list[DistrictIndexEntry]] = defaultdict(list)
    reader: RowReader | None = None
    total_rows = 0
    written = 0
    skipped_no_postcode = 0
    skipped_no_coords = 0
    nonstandard = 0

    with csv_path.open("r", encoding="utf-8-sig", newline="") as f:
        for row in csv.reader(f):
            if not any(cell.strip() for cell in row):
                continue

            if reader is None:
                header_map = build_header_map(row)
                reader = RowReader(header_map, columns or DEFAULT_COLUMNS)
                log_event(logger, f"detected {len(row)} CSV columns", event="HEADER", status="ok")
                continue

            total_rows += 1

            code = normalise_postcode(reader.get(row, "postcode"))
            if not code:
                skipped_no_postcode += 1
                continue

            lat = _parse_coordinate(reader.get(row, "latitude"))
            lon = _parse_coordinate(reader.get(row, "longitude"))
            if not is_valid_coordinate(lat, lon):
                skipped_no_coords += 1
                continue

            if not is_valid_uk_unit_postcode(code):
                nonstandard += 1

            record = build_record(code, lat, lon, reader, row)
            write_json(by_code_dir / f"{postcode_key(code)}.json", record.to_dict(), compact=True)
            written += 1
            district_index[record.district].append(DistrictIndexEntry(code=code, latitude=lat, longitude=lon))

            if progress_every and written % progress_every == 0:
                log_event(logger, f"processed {written} postcodes", event="PROGRESS", status="ok", rows_out=written)

    for district, entries in sorted(district_index.items()):
        write_json(
            by_district_dir / f"{district}.json",
            {
                "district": district,
                "count": len(entries),
                "postcodes": [entry.to_dict() for entry in entries],
            },
            compact=True,
        )

    summary = {
        "csv_path": str(csv_path),
        "total_rows": total_rows,
        "written": written,
        "skipped_no_postcode": skipped_no_postcode,
        "skipped_no_coords": skipped_no_coords,
        "districts": len(district_index),
        "nonstandard_postcodes": nonstandard,
    }
    log_event(
        logger,
        (
            f"postcodes done: {total_rows} rows, {written} written, "
            f"{skipped_no_postcode} without postcode, {skipped_no_coords} without coordinates"
        ),
        event="SUMMARY",
        status="ok",
        rows_in=total_rows,
        rows_out=written,
    )
    return summary
