"""UK postcode normalisation and derived parts."""

from __future__ import annotations

import re

UK_UNIT_POSTCODE_RE = re.compile(r"^([A-Z]{1,2}\d[A-Z\d]?)\s(\d[A-Z]{2})$")
_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_LETTERS_RE = re.compile(r"^[A-Z]+")

INWARD_LENGTH = 3


def is_valid_uk_unit_postcode(value: str) -> bool:
    return bool(UK_UNIT_POSTCODE_RE.match(value))


def normalise_postcode(raw: str | None) -> str:
    """Canonical form: uppercase, one space before the 3-character inward code.

    Best effort only. Input that cannot be a postcode still comes back in some
    form and the lookup simply misses.
    """
    if not raw:
        return ""
    cleaned = _WHITESPACE_RE.sub("", raw).upper()
    if len(cleaned) <= INWARD_LENGTH:
        return cleaned
    return f"{cleaned[:-INWARD_LENGTH]} {cleaned[-INWARD_LENGTH:]}"


def postcode_key(code: str) -> str:
    return code.replace(" ", "-", 1)


def derive_area_district_sector(code: str) -> tuple[str, str, str]:
    outward, _, inward = code.partition(" ")
    match = _LEADING_LETTERS_RE.match(outward)
    area = match.group(0) if match else outward
    sector = f"{outward} {inward[0]}" if inward else outward
    return area, outward, sector
