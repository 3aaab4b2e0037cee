"""Corpus statistics for the enrichment dashboard."""

from __future__ import annotations

from collections import Counter
from pathlib import Path

from trailfinder.common.constants import DIFFICULTIES
from trailfinder.common.fs import write_json
from trailfinder.common.models import TrailRecord


def compute_stats(trails: list[TrailRecord]) -> dict:
    total = len(trails)
    enriched = sum(1 for trail in trails if trail.ai is not None)
    difficulties = Counter({difficulty: 0 for difficulty in DIFFICULTIES})
    themes: Counter = Counter()
    for trail in trails:
        if trail.difficulty:
            difficulties[trail.difficulty] += 1
        themes.update(trail.themes)

    return {
        "total": total,
        "enriched": enriched,
        "remaining": total - enriched,
        "percent": 0.0 if total == 0 else round(enriched / total * 100, 1),
        "difficulties": dict(difficulties),
        "themes": dict(sorted(themes.items())),
    }


def write_stats(trails: list[TrailRecord], stats_path: Path) -> dict:
    stats = compute_stats(trails)
    write_json(stats_path, stats)
    return stats
