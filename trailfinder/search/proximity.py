"""Radius-bounded nearest-neighbour ranking over point candidates.

Everything here is pure: callers load the corpus, this module only filters,
measures, orders and truncates it. Output order depends on distance alone,
with ties kept in corpus order, so it does not matter how the corpus was
loaded.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Generic, Sequence, TypeVar

from trailfinder.common.errors import InvalidSearchInput, NoCandidateData
from trailfinder.common.geo import haversine_km, is_valid_point
from trailfinder.common.models import GeoPoint

C = TypeVar("C")

DISTANCE_DECIMALS = 2


def _default_point(candidate: Any) -> GeoPoint | None:
    return getattr(candidate, "point", None)


def _default_id(candidate: Any) -> str | None:
    return getattr(candidate, "candidate_id", None)


@dataclass(frozen=True)
class ProximityMatch(Generic[C]):
    distance_km: float
    candidate: C


@dataclass(frozen=True)
class ProximityResult(Generic[C]):
    matches: list[ProximityMatch[C]]
    skipped_malformed: int
    excluded: int

    def __len__(self) -> int:
        return len(self.matches)


def validate_radius(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise InvalidSearchInput(f"max distance must be a positive number (km), got {value!r}")
    return float(value)


def validate_limit(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise InvalidSearchInput(f"limit must be a positive number, got {value!r}")
    if int(value) != value:
        raise InvalidSearchInput(f"limit must be a whole number, got {value!r}")
    return int(value)


def search(
    reference: GeoPoint,
    candidates: Sequence[C],
    max_distance_km: float,
    limit: int,
    exclude_id: str | None = None,
    *,
    point_of: Callable[[C], GeoPoint | None] = _default_point,
    id_of: Callable[[C], str | None] = _default_id,
) -> ProximityResult[C]:
    """Candidates within ``max_distance_km`` of ``reference``, closest first, at most ``limit``.

    Candidates without a usable point are skipped and counted. ``exclude_id``
    drops the candidate with that identity (the anchor of a "nearby" search)
    regardless of where it sits.
    """
    radius = validate_radius(max_distance_km)
    cap = validate_limit(limit)
    if not is_valid_point(reference):
        raise InvalidSearchInput(f"reference point is not a valid coordinate: {reference!r}")
    if not candidates:
        raise NoCandidateData("no candidates available to search")

    skipped = 0
    excluded = 0
    in_range: list[tuple[float, int, C]] = []
    for position, candidate in enumerate(candidates):
        if exclude_id is not None and id_of(candidate) == exclude_id:
            excluded += 1
            continue
        try:
            point = point_of(candidate)
        except (AttributeError, KeyError, TypeError, ValueError):
            point = None
        if not is_valid_point(point):
            skipped += 1
            continue
        distance = haversine_km(reference, point)
        if distance <= radius:
            in_range.append((distance, position, candidate))

    in_range.sort(key=lambda item: (item[0], item[1]))
    matches = [
        ProximityMatch(distance_km=round(distance, DISTANCE_DECIMALS), candidate=candidate)
        for distance, _position, candidate in in_range[:cap]
    ]
    return ProximityResult(matches=matches, skipped_malformed=skipped, excluded=excluded)
