from __future__ import annotations

from pathlib import Path

from trailfinder.common.fs import write_json

KM_PER_DEGREE_LAT = 111.19492664455873


def trail_payload(slug: str, lat, lon, **overrides) -> dict:
    payload = {
        "id": f"osm-{slug}",
        "slug": slug,
        "name": slug.replace("-", " ").title(),
        "region": "South Yorkshire",
        "country": "UK",
        "distanceKm": 8.0,
        "difficulty": "moderate",
        "themes": [],
        "transport": {"access_tags": []},
        "start": {"lat": lat, "lon": lon},
        "source": {"type": "osm", "osmId": 1},
    }
    payload.update(overrides)
    return payload


def write_trail(trails_dir: Path, slug: str, lat, lon, **overrides) -> None:
    write_json(trails_dir / f"{slug}.json", trail_payload(slug, lat, lon, **overrides))


def write_postcode(by_code_dir: Path, code: str, lat: float, lon: float, in_use: bool = True) -> None:
    outward = code.split(" ")[0]
    write_json(
        by_code_dir / f"{code.replace(' ', '-')}.json",
        {
            "postcode": code,
            "area": outward.rstrip("0123456789"),
            "district": outward,
            "sector": code[:-2],
            "latitude": lat,
            "longitude": lon,
            "in_use": in_use,
        },
    )
