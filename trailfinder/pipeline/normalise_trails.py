"""Turn raw route geometry into trail records."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Sequence

from trailfinder.common.config_loader import NormaliseConfig
from trailfinder.common.constants import THEMES
from trailfinder.common.fs import iter_json_files, read_json
from trailfinder.common.geo import is_valid_coordinate, is_valid_point, route_length_km
from trailfinder.common.logging import get_logger, log_event
from trailfinder.common.models import DistrictIndexEntry, RawRoute, TrailRecord, TrailSource, TrailStart
from trailfinder.search.proximity import search
from trailfinder.search.store import TrailStore


def guess_difficulty(distance_km: float, cfg: NormaliseConfig) -> str:
    if distance_km < cfg.easy_below_km:
        return "easy"
    if distance_km < cfg.moderate_below_km:
        return "moderate"
    return "hard"


def guess_themes(tags: dict[str, str], cfg: NormaliseConfig) -> tuple[str, ...]:
    text = f"{tags.get('name', '')} {tags.get('description', '')}".lower()
    return tuple(
        theme
        for theme in THEMES
        if any(keyword in text for keyword in cfg.theme_keywords.get(theme, ()))
    )


def guess_region(tags: dict[str, str], cfg: NormaliseConfig) -> str:
    for tag in cfg.region_tags:
        if tags.get(tag):
            return tags[tag]
    return cfg.default_region


def normalise_route(raw: RawRoute, cfg: NormaliseConfig) -> TrailRecord:
    start_lon, start_lat = raw.coordinates[0]
    if not is_valid_coordinate(start_lat, start_lon):
        raise ValueError(f"route start [{start_lon}, {start_lat}] is not a valid coordinate")
    distance_km = route_length_km(raw.coordinates)
    return TrailRecord(
        slug=raw.slug,
        name=raw.name,
        region=guess_region(raw.tags, cfg),
        country="UK",
        distance_km=distance_km,
        difficulty=guess_difficulty(distance_km, cfg),
        themes=guess_themes(raw.tags, cfg),
        start=TrailStart(lat=start_lat, lon=start_lon),
        source=TrailSource(type="osm", osm_id=raw.osm_id),
        record_id=f"osm-{raw.osm_id}",
    )


def nearest_postcode(trail: TrailRecord, postcodes: Sequence[DistrictIndexEntry], max_distance_km: float) -> str | None:
    if not postcodes or not is_valid_point(trail.point):
        return None
    result = search(trail.point, postcodes, max_distance_km, 1)
    if not result.matches:
        return None
    return result.matches[0].candidate.code


def run_normalise_trails(
    raw_dir: Path,
    store: TrailStore,
    cfg: NormaliseConfig,
    *,
    postcodes: Sequence[DistrictIndexEntry] | None = None,
    logger: logging.Logger | None = None,
) -> dict:
    """Normalise every raw route file into the trail store.

    Enrichment already attached to an existing trail is carried over.
    With ``postcodes`` each trail start is annotated with its nearest postcode.
    """
    logger = get_logger(logger)
    written = 0
    malformed = 0
    annotated = 0
    kept_enrichment = 0

    for path in iter_json_files(raw_dir):
        try:
            trail = normalise_route(RawRoute.from_dict(read_json(path)), cfg)
        except (OSError, json.JSONDecodeError, AttributeError, KeyError, TypeError, ValueError) as exc:
            malformed += 1
            log_event(
                logger,
                f"skipping malformed raw route {path.name}: {exc}",
                level=logging.WARNING,
                stage="normalise",
                event="RAW_MALFORMED",
                status="skipped",
                slug=path.stem,
            )
            continue

        existing = store.get(trail.slug)
        if existing is not None and existing.ai is not None:
            trail = trail.with_enrichment(existing.ai)
            kept_enrichment += 1
        if postcodes:
            code = nearest_postcode(trail, postcodes, cfg.nearest_postcode_max_km)
            if code:
                trail = trail.with_nearest_postcode(code)
                annotated += 1

        store.save(trail)
        written += 1

    return {
        "written": written,
        "malformed": malformed,
        "annotated": annotated,
        "kept_enrichment": kept_enrichment,
    }
