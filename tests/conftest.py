from __future__ import annotations

from pathlib import Path

import pytest

from trailfinder.common.config_loader import AppConfig, load_config


@pytest.fixture
def app_config() -> AppConfig:
    return load_config(Path("config"))
