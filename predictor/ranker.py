"""
Ranker

Orders prediction results and numbers them.
"""

from typing import List, Optional

from .models import CutoffSummary, PredictionResult
from .taxonomy import ScoringMode


def native_score(cutoff: CutoffSummary, mode: ScoringMode) -> Optional[float]:
    """The cutoff's own score field: percentile, or closing rank for rank exams."""
    if mode is ScoringMode.RANK:
        return cutoff.closing_rank
    return cutoff.percentile


def rank_results(results: List[PredictionResult], mode: ScoringMode) -> List[PredictionResult]:
    """
    Sort by match score, then by the cutoff's native score, both descending.

    The sort is stable so equal records keep retrieval order. Serial
    numbers are re-assigned from 1 in the final order.
    """
    def sort_key(result: PredictionResult):
        native = native_score(result.cutoff, mode)
        return (result.match_score, float("-inf") if native is None else native)

    ranked = sorted(results, key=sort_key, reverse=True)
    return [
        result.model_copy(update={"serial_number": position})
        for position, result in enumerate(ranked, start=1)
    ]
