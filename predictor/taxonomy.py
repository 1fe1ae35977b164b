"""
Exam / category / seat-type taxonomy.

The tables here are built once at import time and never mutated. A
different taxonomy can be passed to the matcher and the engine, or loaded
from a JSON file with ``load_taxonomy``.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Tuple

logger = logging.getLogger(__name__)

_EXAM_NOISE = re.compile(r"[\s\-_]+")


class ScoringMode(str, Enum):
    """How an exam expresses its admission cutoff."""
    PERCENTILE = "percentile"
    RANK = "rank"


def _freeze(aliases: Mapping[str, Iterable[str]]) -> Mapping[str, Tuple[str, ...]]:
    return MappingProxyType({key.strip().upper(): tuple(group) for key, group in aliases.items()})


@dataclass(frozen=True)
class Taxonomy:
    # Canonical exam id -> substrings that identify it, checked in order.
    exams: Tuple[Tuple[str, Tuple[str, ...]], ...]
    rank_based_exams: FrozenSet[str]
    categories: Tuple[str, ...]
    seat_types: Tuple[str, ...]
    category_aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)
    seat_type_aliases: Mapping[str, Tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "exams", tuple((exam, tuple(markers)) for exam, markers in self.exams))
        object.__setattr__(self, "rank_based_exams", frozenset(self.rank_based_exams))
        object.__setattr__(self, "categories", tuple(self.categories))
        object.__setattr__(self, "seat_types", tuple(self.seat_types))
        object.__setattr__(self, "category_aliases", _freeze(self.category_aliases))
        object.__setattr__(self, "seat_type_aliases", _freeze(self.seat_type_aliases))

    @property
    def exam_ids(self) -> Tuple[str, ...]:
        return tuple(exam for exam, _ in self.exams)

    def normalize_exam(self, raw):
        """
        Map a loosely written exam name to its canonical id.

        Whitespace, hyphens and underscores are dropped and the rest is
        upper-cased before looking for a known marker. Unknown exams are
        returned unchanged so that retrieval simply finds nothing.
        """
        if not isinstance(raw, str) or not raw:
            return raw
        cleaned = _EXAM_NOISE.sub("", raw).upper()
        for exam_id, markers in self.exams:
            if any(marker in cleaned for marker in markers):
                return exam_id
        return raw

    def is_rank_based(self, exam_id: str) -> bool:
        return exam_id in self.rank_based_exams

    def scoring_mode(self, exam_id: str) -> ScoringMode:
        return ScoringMode.RANK if self.is_rank_based(exam_id) else ScoringMode.PERCENTILE

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Taxonomy":
        return cls(
            exams=tuple((exam, tuple(markers)) for exam, markers in data["exams"].items()),
            rank_based_exams=frozenset(data.get("rank_based_exams", ())),
            categories=tuple(data["categories"]),
            seat_types=tuple(data["seat_types"]),
            category_aliases=data.get("category_aliases", {}),
            seat_type_aliases=data.get("seat_type_aliases", {}),
        )


# -----------------------------------------------------------------------------
# Default tables (MHT-CET / JEE / NEET)
# -----------------------------------------------------------------------------

_CASTE_ROOTS = ("OPEN", "OBC", "SC", "ST", "VJ", "NT1", "NT2", "NT3", "SEBC")

# G = general, L = ladies; H = home university, O = other university, S = state level
_SEAT_GENDERS = ("G", "L")
_SEAT_DOMICILES = ("H", "O", "S")


def _seat_code(gender: str, root: str, domicile: str) -> str:
    return f"{gender}{root}{domicile}"


_REGULAR_SEAT_TYPES = tuple(
    _seat_code(gender, root, domicile)
    for root in _CASTE_ROOTS
    for gender in _SEAT_GENDERS
    for domicile in _SEAT_DOMICILES
)

_SPECIAL_SEAT_TYPES = (
    "DEFOPENS", "DEFOBCS", "DEFSEBCS",
    "PWDOPENH", "PWDOPENS", "PWDOBCH",
    "TFWS", "EWS", "ORPHAN", "MI", "AI",
)

DEFAULT_CATEGORIES = (
    "OPEN", "OPEN-L",
    "OBC", "OBC-L",
    "SC", "SC-L",
    "ST", "ST-L",
    "VJ", "VJ-L",
    "NT1", "NT1-L",
    "NT2", "NT2-L",
    "NT3", "NT3-L",
    "SEBC", "SEBC-L",
    "EWS", "TFWS",
    "DEF-OPEN", "DEF-OBC",
    "PWD-OPEN", "ORPHAN",
)

DEFAULT_SEAT_TYPES = _REGULAR_SEAT_TYPES + _SPECIAL_SEAT_TYPES

DEFAULT_CATEGORY_ALIASES = {
    "OPEN": ("OPEN", "OPEN-L"),
    "GENERAL": ("OPEN", "OPEN-L"),
    "GEN": ("OPEN", "OPEN-L"),
    "OBC": ("OBC", "OBC-L", "DEF-OBC"),
    "SC": ("SC", "SC-L"),
    "ST": ("ST", "ST-L"),
    "VJ": ("VJ", "VJ-L"),
    "NT1": ("NT1", "NT1-L"),
    "NT2": ("NT2", "NT2-L"),
    "NT3": ("NT3", "NT3-L"),
    "SEBC": ("SEBC", "SEBC-L"),
    "EWS": ("EWS",),
    "TFWS": ("TFWS",),
    "DEFENCE": ("DEF-OPEN", "DEF-OBC"),
    "PWD": ("PWD-OPEN",),
}


def _seat_family(predicate) -> Tuple[str, ...]:
    return tuple(code for code in DEFAULT_SEAT_TYPES if predicate(code))


_HOME_FAMILY = _seat_family(lambda code: code in _REGULAR_SEAT_TYPES and code.endswith("H")) + ("PWDOPENH", "PWDOBCH")

DEFAULT_SEAT_TYPE_ALIASES = {
    "HOME": _HOME_FAMILY,
    "HOME UNIVERSITY": _HOME_FAMILY,
    "HU": _HOME_FAMILY,
    "OTHER": _seat_family(lambda code: code in _REGULAR_SEAT_TYPES and code.endswith("O")),
    "OTHER UNIVERSITY": _seat_family(lambda code: code in _REGULAR_SEAT_TYPES and code.endswith("O")),
    "STATE": _seat_family(lambda code: code in _REGULAR_SEAT_TYPES and code.endswith("S")),
    "STATE LEVEL": _seat_family(lambda code: code in _REGULAR_SEAT_TYPES and code.endswith("S")),
    "LADIES": _seat_family(lambda code: code in _REGULAR_SEAT_TYPES and code.startswith("L")),
    "DEFENCE": ("DEFOPENS", "DEFOBCS", "DEFSEBCS"),
    "ALL INDIA": ("AI",),
    "AI": ("AI",),
    "MINORITY": ("MI",),
}

DEFAULT_TAXONOMY = Taxonomy(
    exams=(
        ("MHTCET", ("MHT", "CET")),
        ("JEE", ("JEE",)),
        ("NEET", ("NEET",)),
    ),
    rank_based_exams=frozenset({"JEE", "NEET"}),
    categories=DEFAULT_CATEGORIES,
    seat_types=DEFAULT_SEAT_TYPES,
    category_aliases=DEFAULT_CATEGORY_ALIASES,
    seat_type_aliases=DEFAULT_SEAT_TYPE_ALIASES,
)


def load_taxonomy(path: str) -> Taxonomy:
    """Read a taxonomy from a JSON file (same keys as ``Taxonomy.from_dict``)."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    taxonomy = Taxonomy.from_dict(data)
    logger.info(
        f"Loaded taxonomy from {path}: {len(taxonomy.exams)} exams, "
        f"{len(taxonomy.categories)} categories, {len(taxonomy.seat_types)} seat types"
    )
    return taxonomy


def normalize_exam(raw, taxonomy: Taxonomy = DEFAULT_TAXONOMY):
    return taxonomy.normalize_exam(raw)


def is_rank_based(exam_id: str, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> bool:
    return taxonomy.is_rank_based(exam_id)
