"""Postcode-anchored and trail-anchored trail queries.

These are the operations an HTTP layer calls. Each failure comes back as a
typed ``SearchError`` subclass carrying the status to answer with:

* ``InvalidSearchInput`` (400) - missing postcode, bad radius or limit.
* ``PostcodeNotFound`` / ``TrailNotFound`` (404) - the anchor cannot be resolved.
* ``NoCandidateData`` (500) - no trail data has been provisioned.

Zero trails inside the radius is a normal, successful, empty result.
"""

from __future__ import annotations

import logging
import math
from typing import Any

from trailfinder.common.errors import InvalidSearchInput, NoCandidateData, PostcodeNotFound, TrailNotFound
from trailfinder.common.geo import is_valid_point
from trailfinder.common.logging import get_logger, log_event
from trailfinder.common.postcode import normalise_postcode
from trailfinder.search.geocoder import PostcodeGeocoder
from trailfinder.search.proximity import ProximityResult, search, validate_limit, validate_radius
from trailfinder.search.store import LoadedCorpus, TrailStore


def _parse_number(raw: Any, name: str) -> float:
    if isinstance(raw, bool):
        raise InvalidSearchInput(f"{name} must be a number")
    if isinstance(raw, (int, float)):
        value = float(raw)
    else:
        try:
            value = float(str(raw).strip())
        except ValueError as exc:
            raise InvalidSearchInput(f"{name} must be a number, got {raw!r}") from exc
    if math.isnan(value):
        raise InvalidSearchInput(f"{name} must be a number, got {raw!r}")
    return value


def parse_search_params(
    raw_distance: Any,
    raw_limit: Any,
    *,
    default_distance_km: float,
    default_limit: int,
) -> tuple[float, int]:
    """Radius and limit from query-string style values; None means use the default."""
    distance = default_distance_km if raw_distance in (None, "") else _parse_number(raw_distance, "distance")
    limit = default_limit if raw_limit in (None, "") else _parse_number(raw_limit, "limit")
    return validate_radius(distance), validate_limit(limit)


def _load_corpus(store: TrailStore, logger: logging.Logger) -> LoadedCorpus:
    corpus = store.load_all()
    if corpus.malformed:
        log_event(
            logger,
            f"{corpus.malformed} trail files could not be read",
            level=logging.WARNING,
            event="CORPUS_MALFORMED",
            status="partial",
            rows_in=len(corpus) + corpus.malformed,
            rows_out=len(corpus),
        )
    if not corpus.trails:
        raise NoCandidateData("No hikes data available yet")
    return corpus


def _log_search(logger: logging.Logger, result: ProximityResult, **fields: Any) -> None:
    log_event(
        logger,
        f"search returned {len(result)} trails",
        level=logging.DEBUG,
        event="SEARCH",
        status="ok",
        rows_out=len(result),
        **fields,
    )


def find_trails_near_postcode(
    geocoder: PostcodeGeocoder,
    store: TrailStore,
    raw_postcode: str | None,
    max_distance_km: float,
    limit: int,
    *,
    logger: logging.Logger | None = None,
) -> dict[str, Any]:
    logger = get_logger(logger)
    postcode = normalise_postcode(raw_postcode)
    if not postcode:
        raise InvalidSearchInput("Missing required query parameter: postcode")
    radius = validate_radius(max_distance_km)
    cap = validate_limit(limit)

    record = geocoder.resolve(postcode)
    if record is None:
        raise PostcodeNotFound(f"Postcode not found or not in use: {postcode}")

    corpus = _load_corpus(store, logger)
    result = search(record.point, corpus.trails, radius, cap)
    _log_search(logger, result, postcode=postcode)

    results = []
    for match in result.matches:
        payload = match.candidate.to_dict()
        payload["distanceFromPostcodeKm"] = match.distance_km
        results.append(payload)

    return {
        "postcode": record.code,
        "normalisedPostcode": postcode,
        "maxDistanceKm": radius,
        "limit": cap,
        "resultCount": len(results),
        "results": results,
    }


def find_nearby_trails(
    store: TrailStore,
    slug: str,
    max_distance_km: float = 30,
    limit: int = 4,
    *,
    logger: logging.Logger | None = None,
) -> list[dict[str, Any]]:
    """Trails whose start lies near the start of ``slug``, never including ``slug`` itself."""
    logger = get_logger(logger)
    radius = validate_radius(max_distance_km)
    cap = validate_limit(limit)

    anchor = store.get(slug)
    if anchor is None or not is_valid_point(anchor.point):
        raise TrailNotFound(f"Hike not found for slug {slug!r}")

    corpus = _load_corpus(store, logger)
    result = search(anchor.point, corpus.trails, radius, cap, exclude_id=anchor.slug)
    _log_search(logger, result, slug=slug)

    nearby = []
    for match in result.matches:
        payload = match.candidate.to_dict()
        payload["distance_from_start_km"] = match.distance_km
        nearby.append(payload)
    return nearby
