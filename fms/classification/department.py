# fms/classification/department.py
"""Coarse two-bucket department classifier used when no category resolves."""

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Sequence

from fms.classification.classifier import keyword_pattern

MULTI_WORD_BONUS = 2


class Department(str, Enum):
    TECHNICAL = "technical"
    SOFT_SERVICES = "soft_services"


DEPARTMENT_KEYWORDS: Mapping[Department, Sequence[str]] = {
    Department.TECHNICAL: (
        "ac", "air conditioning", "aircon", "electrical", "electric", "power",
        "switch", "socket", "outlet", "plumbing", "pipe", "leak", "leakage",
        "water leak", "tap", "faucet", "temperature", "hvac", "heating",
        "cooling", "thermostat", "wiring", "cable", "circuit", "breaker", "fuse",
        "fan", "exhaust", "ventilation", "vent", "light", "lighting", "bulb",
        "tube light", "led", "lamp", "ups", "generator", "dg", "diesel generator",
        "door", "lock", "window", "glass", "broken", "ceiling", "wall", "tile",
        "crack", "intercom", "telephone", "network", "lan", "internet", "wifi",
    ),
    Department.SOFT_SERVICES: (
        "clean", "cleaning", "cleaner", "spill", "spillage", "wet floor",
        "pantry", "kitchen", "microwave", "fridge", "washroom", "toilet",
        "bathroom", "restroom", "dust", "dusty", "dirty", "stain", "smell",
        "odor", "odour", "hygiene", "sanitize", "sanitization", "disinfect",
        "housekeeping", "housekeeper", "janitor", "trash", "garbage", "waste",
        "bin", "dustbin", "pest", "cockroach", "rodent", "rat", "mice", "mop",
        "sweep", "vacuum", "polish", "tissue", "soap", "towel", "supplies",
    ),
}


@dataclass(frozen=True)
class DepartmentResult:
    department: Department
    score: int
    matched_keywords: tuple[str, ...]


class DepartmentClassifier:
    def __init__(self, table: Mapping[Department, Sequence[str]] = DEPARTMENT_KEYWORDS):
        self._table = {
            dept: tuple((kw, keyword_pattern(kw)) for kw in keywords)
            for dept, keywords in table.items()
        }

    def classify(self, text: str | None) -> DepartmentResult:
        lowered = (text or "").lower()
        best = DepartmentResult(Department.TECHNICAL, 0, ())
        for dept, keywords in self._table.items():
            score = 0
            matched = []
            for keyword, pattern in keywords:
                if pattern.search(lowered):
                    words = len(keyword.split())
                    score += words * MULTI_WORD_BONUS if words > 1 else 1
                    matched.append(keyword)
            if score > best.score:
                best = DepartmentResult(dept, score, tuple(matched))
        return best


_default_department_classifier = DepartmentClassifier()


def classify_department(text: str | None) -> DepartmentResult:
    return _default_department_classifier.classify(text)
