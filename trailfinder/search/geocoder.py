"""Postcode lookup against the preprocessed one-file-per-postcode store."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterator

from trailfinder.common.fs import is_safe_file_key, iter_json_files, read_json
from trailfinder.common.logging import get_logger, log_event
from trailfinder.common.models import DistrictIndexEntry, PostcodeRecord
from trailfinder.common.postcode import normalise_postcode, postcode_key


class PostcodeGeocoder:
    def __init__(self, by_code_dir: Path, by_district_dir: Path | None = None, logger: logging.Logger | None = None) -> None:
        self.by_code_dir = by_code_dir
        self.by_district_dir = by_district_dir
        self.logger = get_logger(logger)

    def path_for(self, code: str) -> Path:
        return self.by_code_dir / f"{postcode_key(code)}.json"

    def resolve(self, raw_code: str | None) -> PostcodeRecord | None:
        """Record for ``raw_code``, or None if absent, unreadable or not in use."""
        code = normalise_postcode(raw_code)
        if not code or not is_safe_file_key(postcode_key(code)):
            return None
        path = self.path_for(code)
        try:
            record = PostcodeRecord.from_dict(read_json(path))
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, ValueError, TypeError) as exc:
            log_event(
                self.logger,
                f"unreadable postcode record {path.name}: {exc}",
                level=logging.DEBUG,
                event="POSTCODE_UNREADABLE",
                status="skipped",
                postcode=code,
            )
            return None
        if not record.in_use:
            return None
        return record

    def load_district(self, district: str) -> list[DistrictIndexEntry]:
        district = district.strip().upper()
        if self.by_district_dir is None or not is_safe_file_key(district):
            return []
        path = self.by_district_dir / f"{district}.json"
        try:
            payload = read_json(path)
            return [DistrictIndexEntry.from_dict(item) for item in payload.get("postcodes", [])]
        except FileNotFoundError:
            return []
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
            log_event(
                self.logger,
                f"unreadable district index {path.name}: {exc}",
                level=logging.WARNING,
                event="DISTRICT_UNREADABLE",
                status="skipped",
            )
            return []

    def iter_district_entries(self) -> Iterator[DistrictIndexEntry]:
        if self.by_district_dir is None:
            return
        for path in iter_json_files(self.by_district_dir):
            yield from self.load_district(path.stem)
