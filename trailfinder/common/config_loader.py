"""Configuration loading into explicit, immutable config objects."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from trailfinder.common.errors import ConfigError
from trailfinder.common.fs import read_yaml
from trailfinder.common.schema import validate_app_config

CONFIG_FILENAME = "trailfinder.yml"


@dataclass(frozen=True)
class DataLayout:
    postcodes_csv: Path
    postcodes_by_code: Path
    postcodes_by_district: Path
    raw_routes: Path
    trails: Path
    indexes: Path
    stats_file: Path
    reports: Path
    enrichment_usage: Path


@dataclass(frozen=True)
class PathsConfig:
    postcodes_csv: str
    postcodes_by_code: str
    postcodes_by_district: str
    raw_routes: str
    trails: str
    indexes: str
    stats_file: str
    reports: str
    enrichment_usage: str

    def resolve(self, data_dir: Path) -> DataLayout:
        return DataLayout(**{name: data_dir / value for name, value in vars(self).items()})


@dataclass(frozen=True)
class SearchConfig:
    default_max_distance_km: float = 50.0
    default_limit: int = 20
    nearby_max_distance_km: float = 30.0
    nearby_limit: int = 4


@dataclass(frozen=True)
class PostcodesConfig:
    columns: dict[str, str]
    progress_every: int = 5000


@dataclass(frozen=True)
class HarvestConfig:
    endpoint: str
    timeout_seconds: int
    area_strategy: str
    route_types: tuple[str, ...]
    country_iso: str | None = None
    bbox: tuple[float, float, float, float] | None = None
    max_relations: int | None = None
    skip_existing: bool = False


@dataclass(frozen=True)
class NormaliseConfig:
    easy_below_km: float
    moderate_below_km: float
    theme_keywords: dict[str, tuple[str, ...]]
    region_tags: tuple[str, ...]
    default_region: str
    nearest_postcode_max_km: float = 5.0


@dataclass(frozen=True)
class EnrichConfig:
    endpoint: str
    model: str
    api_key_env: str
    max_per_run: int
    delay_ms: int
    cost_input_per_m: float = 0.0
    cost_output_per_m: float = 0.0


@dataclass(frozen=True)
class AppConfig:
    paths: PathsConfig
    search: SearchConfig
    postcodes: PostcodesConfig
    harvest: HarvestConfig
    normalise: NormaliseConfig
    enrich: EnrichConfig
    raw: dict = field(default_factory=dict, compare=False, repr=False)


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must be a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def build_app_config(cfg: dict) -> AppConfig:
    harvest = cfg["harvest"]
    normalise = cfg["normalise"]
    enrich = cfg["enrich"]
    search = cfg["search"]
    thresholds = normalise["difficulty_thresholds_km"]
    bbox = harvest.get("bbox")
    max_relations = harvest.get("max_relations")

    return AppConfig(
        paths=PathsConfig(**{key: str(value) for key, value in cfg["paths"].items()}),
        search=SearchConfig(
            default_max_distance_km=float(search["default_max_distance_km"]),
            default_limit=int(search["default_limit"]),
            nearby_max_distance_km=float(search["nearby_max_distance_km"]),
            nearby_limit=int(search["nearby_limit"]),
        ),
        postcodes=PostcodesConfig(
            columns={key: str(value) for key, value in cfg["postcodes"]["columns"].items()},
            progress_every=int(cfg["postcodes"]["progress_every"]),
        ),
        harvest=HarvestConfig(
            endpoint=str(harvest["endpoint"]),
            timeout_seconds=int(harvest["timeout_seconds"]),
            area_strategy=str(harvest["area_strategy"]),
            route_types=tuple(str(value) for value in harvest["route_types"]),
            country_iso=harvest.get("country_iso"),
            bbox=tuple(float(value) for value in bbox) if bbox else None,
            max_relations=int(max_relations) if max_relations else None,
            skip_existing=bool(harvest.get("skip_existing", False)),
        ),
        normalise=NormaliseConfig(
            easy_below_km=float(thresholds["easy_below"]),
            moderate_below_km=float(thresholds["moderate_below"]),
            theme_keywords={
                theme: tuple(str(word).lower() for word in words)
                for theme, words in normalise["theme_keywords"].items()
            },
            region_tags=tuple(normalise["region_tags"]),
            default_region=str(normalise["default_region"]),
            nearest_postcode_max_km=float(normalise.get("nearest_postcode_max_km", 5.0)),
        ),
        enrich=EnrichConfig(
            endpoint=str(enrich["endpoint"]),
            model=str(enrich["model"]),
            api_key_env=str(enrich["api_key_env"]),
            max_per_run=int(enrich["max_per_run"]),
            delay_ms=int(enrich["delay_ms"]),
            cost_input_per_m=float(enrich.get("cost_input_per_m", 0.0)),
            cost_output_per_m=float(enrich.get("cost_output_per_m", 0.0)),
        ),
        raw=cfg,
    )


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> AppConfig:
    overlay_path = overlay_config_dir / CONFIG_FILENAME if overlay_config_dir is not None else None
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    return build_app_config(validate_app_config(cfg, allow_unknown=allow_unknown))
