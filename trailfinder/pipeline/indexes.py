"""Difficulty and theme indexes over the trail corpus."""

from __future__ import annotations

from collections import defaultdict
from pathlib import Path
from typing import Iterable

from trailfinder.common.fs import write_json
from trailfinder.common.models import TrailRecord


def group_by_difficulty(trails: Iterable[TrailRecord]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = defaultdict(list)
    for trail in trails:
        if trail.difficulty:
            groups[trail.difficulty].append(trail.slug)
    return {key: sorted(slugs) for key, slugs in sorted(groups.items())}


def group_by_theme(trails: Iterable[TrailRecord]) -> dict[str, list[str]]:
    groups: dict[str, list[str]] = defaultdict(list)
    for trail in trails:
        for theme in trail.themes:
            groups[theme].append(trail.slug)
    return {key: sorted(slugs) for key, slugs in sorted(groups.items())}


def write_indexes(trails: list[TrailRecord], indexes_dir: Path) -> dict:
    by_difficulty = group_by_difficulty(trails)
    by_theme = group_by_theme(trails)

    for difficulty, slugs in by_difficulty.items():
        write_json(indexes_dir / "difficulty" / f"{difficulty}.json", {"difficulty": difficulty, "hikes": slugs})
    for theme, slugs in by_theme.items():
        write_json(indexes_dir / "themes" / f"{theme}.json", {"theme": theme, "hikes": slugs})

    return {
        "trails": len(trails),
        "difficulty_files": len(by_difficulty),
        "theme_files": len(by_theme),
    }
