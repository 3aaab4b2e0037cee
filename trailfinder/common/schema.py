"""Minimal strict schema for the YAML config."""

from __future__ import annotations

from trailfinder.common.constants import THEMES
from trailfinder.common.errors import ConfigError

SECTIONS = {
    "paths": {
        "postcodes_csv",
        "postcodes_by_code",
        "postcodes_by_district",
        "raw_routes",
        "trails",
        "indexes",
        "stats_file",
        "reports",
        "enrichment_usage",
    },
    "search": {
        "default_max_distance_km",
        "default_limit",
        "nearby_max_distance_km",
        "nearby_limit",
    },
    "postcodes": {"progress_every", "columns"},
    "harvest": {"endpoint", "timeout_seconds", "area_strategy", "route_types"},
    "normalise": {"difficulty_thresholds_km", "theme_keywords", "region_tags", "default_region"},
    "enrich": {"endpoint", "model", "api_key_env", "max_per_run", "delay_ms"},
}

OPTIONAL_KEYS = {
    "harvest": {"country_iso", "bbox", "max_relations", "skip_existing"},
    "normalise": {"nearest_postcode_max_km"},
    "enrich": {"cost_input_per_m", "cost_output_per_m"},
}

REQUIRED_COLUMNS = {"postcode", "latitude", "longitude"}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive(value, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive number, got {value!r}")


def validate_app_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, set(SECTIONS), "config")
    _assert_no_unknown_keys(cfg, set(SECTIONS), "config", allow_unknown)

    for section, required in SECTIONS.items():
        _assert_required_keys(cfg[section], required, section)
        known = required | OPTIONAL_KEYS.get(section, set())
        _assert_no_unknown_keys(cfg[section], known, section, allow_unknown)

    for key in SECTIONS["search"]:
        _assert_positive(cfg["search"][key], f"search.{key}")

    _assert_required_keys(cfg["postcodes"]["columns"], REQUIRED_COLUMNS, "postcodes.columns")

    harvest = cfg["harvest"]
    strategy = harvest["area_strategy"]
    if strategy == "country":
        _assert_required_keys(harvest, {"country_iso"}, "harvest")
    elif strategy == "bbox":
        _assert_required_keys(harvest, {"bbox"}, "harvest")
        if not isinstance(harvest["bbox"], list) or len(harvest["bbox"]) != 4:
            raise ConfigError("harvest.bbox must be [min_lat, min_lon, max_lat, max_lon]")
    else:
        raise ConfigError(f"Unsupported harvest.area_strategy: {strategy}")

    normalise = cfg["normalise"]
    _assert_required_keys(
        normalise["difficulty_thresholds_km"],
        {"easy_below", "moderate_below"},
        "normalise.difficulty_thresholds_km",
    )
    unknown_themes = set(normalise["theme_keywords"]) - set(THEMES)
    if unknown_themes:
        raise ConfigError(f"Unknown themes in normalise.theme_keywords: {', '.join(sorted(unknown_themes))}")

    return cfg
