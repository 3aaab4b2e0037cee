"""Data models used across the pipeline and the search layer."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from typing import Any

from trailfinder.common.constants import DIFFICULTIES, THEMES, TRANSPORT_TAGS
from trailfinder.common.fs import is_safe_file_key


@dataclass(frozen=True)
class GeoPoint:
    lat: float
    lon: float

    def to_dict(self) -> dict[str, float]:
        return {"lat": self.lat, "lon": self.lon}


def _require_number(payload: dict, key: str) -> float:
    value = payload.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{key} must be a number, got {value!r}")
    return float(value)


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text or None


def _optional_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


@dataclass(frozen=True)
class PostcodeRecord:
    code: str
    area: str
    district: str
    sector: str
    latitude: float
    longitude: float
    easting: float | None = None
    northing: float | None = None
    gridref: str | None = None
    district_code: str | None = None
    ward_code: str | None = None
    lsoa_code: str | None = None
    msoa_code: str | None = None
    itl_level_2: str | None = None
    itl_level_3: str | None = None
    country: str | None = None
    in_use: bool = True

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lon=self.longitude)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["postcode"] = payload.pop("code")
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "PostcodeRecord":
        if not isinstance(payload, dict):
            raise ValueError("postcode record must be a JSON object")
        code = payload.get("postcode")
        if not isinstance(code, str) or not code:
            raise ValueError("postcode record has no postcode")
        return cls(
            code=code,
            area=str(payload.get("area") or ""),
            district=str(payload.get("district") or ""),
            sector=str(payload.get("sector") or ""),
            latitude=_require_number(payload, "latitude"),
            longitude=_require_number(payload, "longitude"),
            easting=_optional_number(payload.get("easting")),
            northing=_optional_number(payload.get("northing")),
            gridref=_optional_str(payload.get("gridref")),
            district_code=_optional_str(payload.get("district_code")),
            ward_code=_optional_str(payload.get("ward_code")),
            lsoa_code=_optional_str(payload.get("lsoa_code")),
            msoa_code=_optional_str(payload.get("msoa_code")),
            itl_level_2=_optional_str(payload.get("itl_level_2")),
            itl_level_3=_optional_str(payload.get("itl_level_3")),
            country=_optional_str(payload.get("country")),
            # Only an explicit false takes a postcode out of use.
            in_use=payload.get("in_use") is not False,
        )


@dataclass(frozen=True)
class DistrictIndexEntry:
    code: str
    latitude: float
    longitude: float

    @property
    def candidate_id(self) -> str:
        return self.code

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lon=self.longitude)

    def to_dict(self) -> dict[str, Any]:
        return {"postcode": self.code, "latitude": self.latitude, "longitude": self.longitude}

    @classmethod
    def from_dict(cls, payload: dict) -> "DistrictIndexEntry":
        return cls(
            code=str(payload["postcode"]),
            latitude=_require_number(payload, "latitude"),
            longitude=_require_number(payload, "longitude"),
        )


@dataclass(frozen=True)
class TrailStart:
    # Kept as read so that bad values are excluded from search, not coerced.
    lat: Any
    lon: Any
    nearest_postcode: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"lat": self.lat, "lon": self.lon}
        if self.nearest_postcode:
            payload["nearest_postcode"] = self.nearest_postcode
        return payload


@dataclass(frozen=True)
class TrailSource:
    type: str
    osm_id: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "osmId": self.osm_id}


@dataclass(frozen=True)
class SeoFields:
    title: str = ""
    meta_description: str = ""
    h1: str = ""


@dataclass(frozen=True)
class AiEnrichment:
    summary: str
    terrain_summary: str
    safety_notes: str
    recommended_gear: tuple[str, ...]
    best_seasons: str
    seo: SeoFields = field(default_factory=SeoFields)

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["recommended_gear"] = list(self.recommended_gear)
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "AiEnrichment":
        if not isinstance(payload, dict):
            raise ValueError("enrichment payload must be a JSON object")
        gear = payload.get("recommended_gear") or []
        if isinstance(gear, str):
            gear = [gear]
        seo = payload.get("seo")
        if not isinstance(seo, dict):
            seo = {}
        return cls(
            summary=str(payload.get("summary") or ""),
            terrain_summary=str(payload.get("terrain_summary") or ""),
            safety_notes=str(payload.get("safety_notes") or ""),
            recommended_gear=tuple(str(item) for item in gear),
            best_seasons=str(payload.get("best_seasons") or ""),
            seo=SeoFields(
                title=str(seo.get("title") or ""),
                meta_description=str(seo.get("meta_description") or ""),
                h1=str(seo.get("h1") or ""),
            ),
        )


_TRAIL_KEYS = {
    "id",
    "slug",
    "name",
    "region",
    "country",
    "distanceKm",
    "distance_km",
    "ascentM",
    "difficulty",
    "themes",
    "transport",
    "start",
    "source",
    "ai",
}


@dataclass(frozen=True)
class TrailRecord:
    slug: str
    name: str
    region: str
    distance_km: float
    difficulty: str | None
    start: TrailStart | None
    source: TrailSource
    record_id: str | None = None
    country: str | None = None
    ascent_m: float | None = None
    themes: tuple[str, ...] = ()
    transport_tags: tuple[str, ...] = ()
    ai: AiEnrichment | None = None
    # Unrecognised top-level keys, written back untouched.
    extra: dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def candidate_id(self) -> str:
        return self.slug

    @property
    def point(self) -> GeoPoint | None:
        if self.start is None:
            return None
        return GeoPoint(lat=self.start.lat, lon=self.start.lon)

    def with_enrichment(self, ai: AiEnrichment) -> "TrailRecord":
        return replace(self, ai=ai)

    def with_nearest_postcode(self, code: str | None) -> "TrailRecord":
        if self.start is None:
            return self
        return replace(self, start=replace(self.start, nearest_postcode=code))

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        if self.record_id:
            payload["id"] = self.record_id
        payload.update(
            {
                "slug": self.slug,
                "name": self.name,
                "region": self.region,
                "distanceKm": self.distance_km,
                "difficulty": self.difficulty,
                "themes": list(self.themes),
                "transport": {"access_tags": list(self.transport_tags)},
                "source": self.source.to_dict(),
            }
        )
        if self.country:
            payload["country"] = self.country
        if self.ascent_m is not None:
            payload["ascentM"] = self.ascent_m
        if self.start is not None:
            payload["start"] = self.start.to_dict()
        if self.ai is not None:
            payload["ai"] = self.ai.to_dict()
        return payload

    @classmethod
    def from_dict(cls, payload: dict) -> "TrailRecord":
        if not isinstance(payload, dict):
            raise ValueError("trail record must be a JSON object")
        slug = payload.get("slug")
        if not isinstance(slug, str) or not slug:
            raise ValueError("trail record has no slug")

        distance = payload.get("distanceKm", payload.get("distance_km", 0.0))
        if isinstance(distance, bool) or not isinstance(distance, (int, float)) or distance < 0:
            raise ValueError(f"distanceKm must be a non-negative number, got {distance!r}")

        difficulty = payload.get("difficulty")
        if difficulty is not None:
            difficulty = str(difficulty).lower()
            if difficulty not in DIFFICULTIES:
                raise ValueError(f"unknown difficulty {difficulty!r}")

        start = None
        raw_start = payload.get("start")
        if isinstance(raw_start, dict):
            start = TrailStart(
                lat=raw_start.get("lat"),
                lon=raw_start.get("lon"),
                nearest_postcode=_optional_str(raw_start.get("nearest_postcode")),
            )

        raw_source = payload.get("source")
        if not isinstance(raw_source, dict):
            raw_source = {}
        osm_id = raw_source.get("osmId")
        source = TrailSource(
            type=str(raw_source.get("type") or "unknown"),
            osm_id=int(osm_id) if isinstance(osm_id, int) else None,
        )

        transport = payload.get("transport")
        if not isinstance(transport, dict):
            transport = {}
        ai_payload = payload.get("ai")

        return cls(
            slug=slug,
            name=str(payload.get("name") or slug),
            region=str(payload.get("region") or ""),
            distance_km=float(distance),
            difficulty=difficulty,
            start=start,
            source=source,
            record_id=_optional_str(payload.get("id")),
            country=_optional_str(payload.get("country")),
            ascent_m=_optional_number(payload.get("ascentM")),
            themes=tuple(t for t in payload.get("themes") or [] if t in THEMES),
            transport_tags=tuple(t for t in transport.get("access_tags") or [] if t in TRANSPORT_TAGS),
            ai=AiEnrichment.from_dict(ai_payload) if ai_payload else None,
            extra={k: v for k, v in payload.items() if k not in _TRAIL_KEYS},
        )


@dataclass(frozen=True)
class RawRoute:
    osm_id: int
    slug: str
    name: str
    tags: dict[str, str]
    coordinates: list[list[float]]
    network: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.osm_id,
            "slug": self.slug,
            "name": self.name,
            "network": self.network,
            "tags": dict(self.tags),
            "coordinates": [list(pair) for pair in self.coordinates],
        }

    @classmethod
    def from_dict(cls, payload: dict) -> "RawRoute":
        coordinates = payload.get("coordinates") or []
        if not coordinates:
            raise ValueError("raw route has no coordinates")
        slug = str(payload["slug"])
        if not is_safe_file_key(slug):
            raise ValueError(f"raw route slug {slug!r} is not a plain file name")
        return cls(
            osm_id=int(payload["id"]),
            slug=slug,
            name=str(payload.get("name") or slug),
            tags=dict(payload.get("tags") or {}),
            coordinates=[[float(lon), float(lat)] for lon, lat in coordinates],
            network=_optional_str(payload.get("network")),
        )
