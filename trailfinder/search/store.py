"""One-file-per-slug trail store."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from trailfinder.common.fs import ensure_dir, is_safe_file_key, iter_json_files, read_json, write_json
from trailfinder.common.logging import get_logger, log_event
from trailfinder.common.models import TrailRecord

_PARSE_ERRORS = (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError)


@dataclass(frozen=True)
class LoadedCorpus:
    trails: list[TrailRecord]
    malformed: int

    def __len__(self) -> int:
        return len(self.trails)


class TrailStore:
    def __init__(self, trails_dir: Path, logger: logging.Logger | None = None) -> None:
        self.trails_dir = trails_dir
        self.logger = get_logger(logger)

    def path_for(self, slug: str) -> Path:
        return self.trails_dir / f"{slug}.json"

    def _read(self, path: Path) -> TrailRecord | None:
        try:
            return TrailRecord.from_dict(read_json(path))
        except _PARSE_ERRORS as exc:
            log_event(
                self.logger,
                f"skipping malformed trail file {path.name}: {exc}",
                level=logging.WARNING,
                event="TRAIL_MALFORMED",
                status="skipped",
                slug=path.stem,
            )
            return None

    def get(self, slug: str) -> TrailRecord | None:
        if not is_safe_file_key(slug):
            return None
        path = self.path_for(slug)
        if not path.is_file():
            return None
        return self._read(path)

    def load_all(self) -> LoadedCorpus:
        """Every readable trail, in filename order."""
        trails: list[TrailRecord] = []
        malformed = 0
        for path in iter_json_files(self.trails_dir):
            trail = self._read(path)
            if trail is None:
                malformed += 1
                continue
            trails.append(trail)
        return LoadedCorpus(trails=trails, malformed=malformed)

    def save(self, trail: TrailRecord) -> Path:
        ensure_dir(self.trails_dir)
        path = self.path_for(trail.slug)
        write_json(path, trail.to_dict())
        return path
