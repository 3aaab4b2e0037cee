"""Overpass harvest of hiking route relations into raw route files."""

from __future__ import annotations

import logging
import re
import unicodedata
from pathlib import Path

from trailfinder.common.config_loader import HarvestConfig
from trailfinder.common.fs import ensure_dir, write_json
from trailfinder.common.http import HttpClient, TimeoutConfig
from trailfinder.common.logging import get_logger, log_event
from trailfinder.common.models import RawRoute

_NON_SLUG_RE = re.compile(r"[^a-z0-9]+")
MIN_ROUTE_POINTS = 2


def slugify(name: str, osm_id: int) -> str:
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    base = _NON_SLUG_RE.sub("-", ascii_name.lower()).strip("-")
    return f"{base}-{osm_id}" if base else f"osm-hike-{osm_id}"


def _relation_filters(route_types: tuple[str, ...], area_clause: str) -> str:
    return "".join(f'  relation["route"="{route}"]({area_clause});\n' for route in route_types)


def build_overpass_query(harvest_config: HarvestConfig) -> str:
    strategy = harvest_config.area_strategy
    timeout = int(harvest_config.timeout_seconds)
    routes = harvest_config.route_types

    if strategy == "country":
        return (
            f"[out:json][timeout:{timeout}];\n"
            f'area["ISO3166-1"="{harvest_config.country_iso}"][admin_level=2]->.searchArea;\n'
            "(\n"
            f"{_relation_filters(routes, 'area.searchArea')}"
            ");\n"
            "out body;\n"
            ">;\n"
            "out skel qt;"
        )

    if strategy == "bbox":
        if not harvest_config.bbox:
            raise ValueError("harvest.bbox is required for area_strategy=bbox")
        min_lat, min_lon, max_lat, max_lon = harvest_config.bbox
        area_clause = f"{min_lat},{min_lon},{max_lat},{max_lon}"
        return (
            f"[out:json][timeout:{timeout}];\n"
            "(\n"
            f"{_relation_filters(routes, area_clause)}"
            ");\n"
            "out body;\n"
            ">;\n"
            "out skel qt;"
        )

    raise ValueError(f"Unsupported harvest area strategy: {strategy}")


def index_elements(elements: list[dict]) -> tuple[dict[int, dict], dict[int, dict], list[dict]]:
    nodes: dict[int, dict] = {}
    ways: dict[int, dict] = {}
    relations: list[dict] = []
    for element in elements:
        kind = element.get("type")
        if kind == "node":
            nodes[element["id"]] = element
        elif kind == "way":
            ways[element["id"]] = element
        elif kind == "relation":
            relations.append(element)
    return nodes, ways, relations


def relation_coordinates(relation: dict, ways: dict[int, dict], nodes: dict[int, dict]) -> list[list[float]]:
    """``[lon, lat]`` pairs for the relation's way members, in member order."""
    coords: list[list[float]] = []
    for member in relation.get("members") or []:
        if member.get("type") != "way":
            continue
        way = ways.get(member.get("ref"))
        if not way:
            continue
        for node_id in way.get("nodes") or []:
            node = nodes.get(node_id)
            if node is None or node.get("lat") is None or node.get("lon") is None:
                continue
            pair = [float(node["lon"]), float(node["lat"])]
            # Consecutive ways share their joining node.
            if coords and coords[-1] == pair:
                continue
            coords.append(pair)
    return coords


def run_overpass_harvest(
    harvest_config: HarvestConfig,
    raw_dir: Path,
    run_id: str,
    http_client: HttpClient | None = None,
    logger: logging.Logger | None = None,
) -> dict:
    logger = get_logger(logger)
    ensure_dir(raw_dir)
    query = build_overpass_query(harvest_config)

    owns_client = http_client is None
    client = http_client or HttpClient(logger=logger)
    try:
        payload = client.post_form_json(
            harvest_config.endpoint,
            source_type="overpass",
            data={"data": query},
            timeout=TimeoutConfig(connect=20, read=float(harvest_config.timeout_seconds)),
        )
    finally:
        if owns_client:
            client.close()

    nodes, ways, relations = index_elements(payload.get("elements", []))
    log_event(
        logger,
        f"indexed {len(nodes)} nodes, {len(ways)} ways, {len(relations)} relations",
        stage="harvest",
        event="INDEXED",
        status="ok",
        rows_in=len(relations),
    )

    if harvest_config.max_relations:
        relations = relations[: harvest_config.max_relations]

    saved = 0
    skipped_no_name = 0
    skipped_no_coords = 0
    skipped_existing = 0

    for relation in relations:
        tags = relation.get("tags") or {}
        name = tags.get("name")
        if not name:
            skipped_no_name += 1
            continue

        slug = slugify(name, relation["id"])
        out_path = raw_dir / f"{slug}.json"
        if harvest_config.skip_existing and out_path.exists():
            skipped_existing += 1
            continue

        coords = relation_coordinates(relation, ways, nodes)
        if len(coords) < MIN_ROUTE_POINTS:
            skipped_no_coords += 1
            continue

        route = RawRoute(
            osm_id=int(relation["id"]),
            slug=slug,
            name=name,
            tags=tags,
            coordinates=coords,
            network=tags.get("network"),
        )
        write_json(out_path, route.to_dict())
        saved += 1

    return {
        "run_id": run_id,
        "relations": len(relations),
        "saved": saved,
        "skipped_no_name": skipped_no_name,
        "skipped_no_coords": skipped_no_coords,
        "skipped_existing": skipped_existing,
    }
