"""Filesystem helpers."""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Iterator


def ensure_dir(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def is_safe_file_key(key: str) -> bool:
    """True when ``key`` names a file directly inside its store directory."""
    return bool(key) and "/" not in key and "\\" not in key and ".." not in key


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def write_json(path: Path, payload, *, compact: bool = False) -> None:
    ensure_dir(path.parent)
    with path.open("w", encoding="utf-8") as f:
        if compact:
            json.dump(payload, f, ensure_ascii=False, separators=(",", ":"))
        else:
            json.dump(payload, f, ensure_ascii=False, indent=2, sort_keys=True)
            f.write("\n")


def read_json(path: Path):
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def iter_json_files(directory: Path) -> Iterator[Path]:
    """Yield ``*.json`` files in filename order; nothing if the directory is absent."""
    if not directory.is_dir():
        return
    yield from sorted(p for p in directory.iterdir() if p.suffix == ".json" and p.is_file())


def append_csv_row(path: Path, headers: list[str], row: dict) -> None:
    ensure_dir(path.parent)
    write_header = not path.exists()
    with path.open("a", encoding="utf-8", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=headers, extrasaction="ignore")
        if write_header:
            writer.writeheader()
        writer.writerow(row)
