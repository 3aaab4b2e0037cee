import shutil
from pathlib import Path

import pytest

from trailfinder.common.config_loader import CONFIG_FILENAME, load_config
from trailfinder.common.errors import ConfigError


def _base_dir(tmp_path: Path) -> Path:
    base = tmp_path / "base"
    base.mkdir()
    shutil.copy(Path("config") / CONFIG_FILENAME, base / CONFIG_FILENAME)
    return base


def test_load_config_from_repo_config_dir():
    config = load_config(Path("config"))

    assert config.search.default_max_distance_km == 50.0
    assert config.search.nearby_limit == 4
    assert config.postcodes.columns["in_use"] == "In Use?"
    assert config.harvest.route_types == ("hiking", "foot")
    assert config.normalise.theme_keywords["lakes"] == ("lake", "mere", "tarn")


def test_paths_resolve_under_data_dir():
    layout = load_config(Path("config")).paths.resolve(Path("/data"))

    assert layout.postcodes_by_code == Path("/data/postcodes/by-code")
    assert layout.trails == Path("/data/hikes")


def test_load_config_applies_overlay_values(tmp_path: Path):
    base = _base_dir(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / CONFIG_FILENAME).write_text(
        """search:
  default_limit: 5
harvest:
  area_strategy: bbox
  bbox: [54.0, -3.5, 54.8, -2.5]
""",
        encoding="utf-8",
    )

    config = load_config(base, overlay_config_dir=overlay)

    assert config.search.default_limit == 5
    assert config.search.default_max_distance_km == 50.0
    assert config.harvest.bbox == (54.0, -3.5, 54.8, -2.5)


def test_load_config_ignores_empty_overlay_file(tmp_path: Path):
    base = _base_dir(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / CONFIG_FILENAME).write_text("", encoding="utf-8")

    assert load_config(base, overlay_config_dir=overlay).search.default_limit == 20


def test_load_config_rejects_non_mapping_overlay(tmp_path: Path):
    base = _base_dir(tmp_path)
    overlay = tmp_path / "overlay"
    overlay.mkdir()
    (overlay / CONFIG_FILENAME).write_text("- not\n- a\n- mapping\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(base, overlay_config_dir=overlay)


def test_load_config_missing_file(tmp_path: Path):
    with pytest.raises(ConfigError):
        load_config(tmp_path)
