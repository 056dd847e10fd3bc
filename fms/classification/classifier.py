# fms/classification/classifier.py
"""
Deterministic keyword classifier for ticket text.

Each category owns a keyword list. A matched keyword scores
``word_count * 10`` so multi-word phrases outrank single words. The highest
score wins; on a tie the category declared first in the table wins, so the
table order is part of the contract.
"""

import re
from dataclasses import dataclass, field
from typing import Sequence

KEYWORD_WEIGHT = 10
LENGTH_BONUS = 20
LENGTH_BONUS_MIN_CHARS = 20
VAGUE_CONFIDENCE = 40
VAGUE_MIN_CHARS = 10

KeywordTable = Sequence[tuple[str, Sequence[str]]]

# Canonical order: earlier entries win ties.
CATEGORY_KEYWORDS: KeywordTable = (
    ("ac_breakdown", (
        "ac", "a/c", "air conditioning", "air conditioner", "aircon",
        "ac not working", "not cooling", "no cooling", "hvac", "thermostat",
    )),
    ("power_outage", (
        "power cut", "power outage", "no power", "power failure",
        "electricity", "tripping", "mcb", "short circuit",
    )),
    ("electrical_fault", (
        "switch", "socket", "plug point", "wiring", "spark", "sparking",
        "fuse", "breaker", "electrical",
    )),
    ("lighting", (
        "light", "lights", "bulb", "tube light", "lamp", "light not working",
        "flickering",
    )),
    ("water_leakage", (
        "leak", "leaking", "leakage", "water leak", "seepage", "dripping",
    )),
    ("plumbing_blockage", (
        "clog", "clogged", "blocked drain", "drain", "flush", "flush not working",
        "tap", "overflow", "no water",
    )),
    ("lift_issue", (
        "lift", "elevator", "lift stuck", "escalator",
    )),
    ("fire_safety", (
        "fire alarm", "smoke detector", "sprinkler", "fire extinguisher",
    )),
    ("cleaning", (
        "clean", "cleaning", "dirty", "dust", "dusty", "spill", "garbage",
        "trash", "housekeeping", "mop", "stain",
    )),
    ("pest_control", (
        "pest", "cockroach", "cockroaches", "rat", "rats", "rodent",
        "mosquito", "termite",
    )),
    ("washroom_supplies", (
        "toilet paper", "soap", "hand wash", "tissue", "towel", "bad smell",
        "odour", "odor",
    )),
    ("network_issue", (
        "wifi", "wi-fi", "internet", "network", "lan",
    )),
)


@dataclass(frozen=True)
class Classification:
    category_code: str | None
    confidence: int
    is_vague: bool
    matched_keywords: tuple[str, ...] = ()
    scores: dict[str, int] = field(default_factory=dict)


def keyword_pattern(keyword: str) -> re.Pattern:
    # word boundary lookarounds on both sides so "ac" never matches inside "access" or "space"
    return re.compile(r"(?<!\w)" + re.escape(keyword) + r"(?!\w)")


class TicketClassifier:
    def __init__(self, table: KeywordTable = CATEGORY_KEYWORDS):
        self._table = tuple(
            (code, tuple((kw, keyword_pattern(kw)) for kw in keywords))
            for code, keywords in table
        )

    @property
    def category_codes(self) -> list[str]:
        return [code for code, _ in self._table]

    def classify(self, text: str | None) -> Classification:
        text = text or ""
        lowered = text.lower()

        scores: dict[str, int] = {}
        matches: dict[str, list[str]] = {}
        for code, keywords in self._table:
            score = 0
            for keyword, pattern in keywords:
                if pattern.search(lowered):
                    score += len(keyword.split()) * KEYWORD_WEIGHT
                    matches.setdefault(code, []).append(keyword)
            scores[code] = score

        best_code = None
        best_score = 0
        for code, _ in self._table:
            # strict > keeps the first-declared category on ties
            if scores[code] > best_score:
                best_code = code
                best_score = scores[code]

        if best_code is None:
            return Classification(None, 0, True, (), scores)

        confidence = best_score + LENGTH_BONUS if len(text) > LENGTH_BONUS_MIN_CHARS else best_score
        confidence = min(100, confidence)
        is_vague = confidence < VAGUE_CONFIDENCE or len(text) < VAGUE_MIN_CHARS
        return Classification(best_code, confidence, is_vague, tuple(matches[best_code]), scores)


_default_classifier = TicketClassifier()


def classify(text: str | None) -> Classification:
    return _default_classifier.classify(text)
