"""
Fuzzy matching of user supplied category / seat-type strings to the
canonical taxonomy values.
"""

import logging
from typing import List, Mapping, Optional, Sequence, Tuple

from .similarity import similarity
from .taxonomy import DEFAULT_TAXONOMY, Taxonomy

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 60.0


class TaxonomyMatcher:
    """
    Resolve raw category and seat-type input against a taxonomy.

    Lookup order:
    1. Curated alias groups (exact key, case-insensitive)
    2. Similarity scoring against every canonical value
    """

    def __init__(self, taxonomy: Taxonomy = DEFAULT_TAXONOMY, threshold: float = DEFAULT_THRESHOLD):
        self.taxonomy = taxonomy
        self.threshold = threshold

    def match_category(self, raw: str, threshold: Optional[float] = None, fuzzy: bool = True) -> List[str]:
        return self._match(
            raw,
            self.taxonomy.category_aliases,
            self.taxonomy.categories,
            threshold,
            fuzzy,
        )

    def match_seat_type(self, raw: str, threshold: Optional[float] = None, fuzzy: bool = True) -> List[str]:
        return self._match(
            raw,
            self.taxonomy.seat_type_aliases,
            self.taxonomy.seat_types,
            threshold,
            fuzzy,
        )

    def _match(
        self,
        raw: str,
        aliases: Mapping[str, Tuple[str, ...]],
        candidates: Sequence[str],
        threshold: Optional[float],
        fuzzy: bool
    ) -> List[str]:
        if not fuzzy:
            return [raw]

        value = raw.strip()
        key = value.upper()
        if key in aliases:
            return list(aliases[key])

        cutoff = self.threshold if threshold is None else threshold
        scored = [(candidate, similarity(value, candidate)) for candidate in candidates]
        kept = [pair for pair in scored if pair[1] >= cutoff]
        # sorted() is stable, so equal scores keep declaration order
        kept = sorted(kept, key=lambda pair: pair[1], reverse=True)

        logger.debug(f"Fuzzy match for {raw!r}: {kept}")
        return [candidate for candidate, _ in kept]


def match_category(raw: str, threshold: float = DEFAULT_THRESHOLD, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> List[str]:
    return TaxonomyMatcher(taxonomy, threshold).match_category(raw)


def match_seat_type(raw: str, threshold: float = DEFAULT_THRESHOLD, taxonomy: Taxonomy = DEFAULT_TAXONOMY) -> List[str]:
    return TaxonomyMatcher(taxonomy, threshold).match_seat_type(raw)
