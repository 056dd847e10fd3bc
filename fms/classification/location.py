# fms/classification/location.py
"""Floor and named-location extraction from free text."""

import re
from dataclasses import dataclass
from typing import Sequence


# Priority order: first match wins
FLOOR_PATTERNS = (
    re.compile(r"(\d+)(?:st|nd|rd|th)\s*floor", re.IGNORECASE),
    re.compile(r"floor\s*(\d+)", re.IGNORECASE),
    re.compile(r"(\d+)\s*floor", re.IGNORECASE),
)

LOCATION_KEYWORDS: Sequence[tuple[str, Sequence[str]]] = (
    ("Cafeteria", ("cafeteria", "canteen", "pantry", "kitchen", "mess")),
    ("Reception", ("lobby", "reception", "front desk", "entrance")),
    ("Parking", ("parking", "basement", "garage")),
    ("Terrace", ("terrace", "roof", "rooftop")),
    ("Washroom", ("washroom", "restroom", "toilet", "bathroom", "loo")),
    ("Conference Room", ("conference", "meeting room", "board room")),
    ("Cabin", ("cabin", "cubicle", "desk", "workstation")),
    ("Server Room", ("server room", "data center", "hub room")),
    ("Electrical Room", ("electrical room", "ups room", "dg room")),
)


def location_pattern(keyword: str) -> re.Pattern:
    # Anchored at a word start and allowing a plural ending, so "washrooms"
    # matches while "loo" stays out of "floor" and "loose"
    return re.compile(r"(?<!\w)" + re.escape(keyword) + r"(?:s|es)?(?!\w)")


@dataclass(frozen=True)
class LocationInfo:
    floor_number: int | None
    location: str | None


def extract_floor_number(text: str | None) -> int | None:
    text = text or ""
    for pattern in FLOOR_PATTERNS:
        match = pattern.search(text)
        if match:
            return int(match.group(1))

    lowered = text.lower()
    if "ground floor" in lowered:
        return 0
    if "basement" in lowered:
        return -1
    return None


class LocationExtractor:
    def __init__(self, table: Sequence[tuple[str, Sequence[str]]] = LOCATION_KEYWORDS):
        self._table = tuple(
            (name, tuple(location_pattern(kw) for kw in keywords))
            for name, keywords in table
        )

    def extract_location(self, text: str | None) -> str | None:
        lowered = (text or "").lower()
        for name, patterns in self._table:
            if any(p.search(lowered) for p in patterns):
                return name
        return None

    def extract(self, text: str | None) -> LocationInfo:
        return LocationInfo(extract_floor_number(text), self.extract_location(text))


_default_extractor = LocationExtractor()


def extract_location(text: str | None) -> LocationInfo:
    return _default_extractor.extract(text)
