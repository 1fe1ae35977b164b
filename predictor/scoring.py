"""
Match scoring: how likely a candidate is to clear a cutoff.

Two piecewise curves are used depending on how the exam reports cutoffs.
Both return a MatchOutcome holding the raw 0-100 score and a reason text.
"""

import math
from typing import Callable, Dict, NamedTuple, Optional

from .models import CutoffRecord
from .taxonomy import ScoringMode

RANK_UNIT = 1000

# Reason buckets: (lower bound on diff, label), checked top down
PERCENTILE_REASONS = ((5, "Excellent"), (0, "Good Chance"), (-5, "Possible"), (-10, "Borderline"))
RANK_REASONS = ((5000, "Excellent"), (0, "Good Chance"), (-5000, "Possible"), (-10000, "Borderline"))
FALLBACK_REASON = "Reach"

UNPUBLISHED_REASON = "Unknown - Cutoff not published"


class MatchOutcome(NamedTuple):
    score: float
    reason: str

    @property
    def display_score(self) -> int:
        return round_score(self.score)


def clamp(score: float) -> float:
    return max(0.0, min(100.0, score))


def round_score(score: float) -> int:
    """Round half up, the way the scores are shown to users."""
    return int(math.floor(clamp(score) + 0.5))


def _bucket(diff: float, buckets) -> str:
    for bound, label in buckets:
        if diff >= bound:
            return label
    return FALLBACK_REASON


def percentile_reason(diff: float) -> str:
    label = _bucket(diff, PERCENTILE_REASONS)
    if diff >= 0:
        return f"{label} - Above cutoff by {diff:+.1f}%"
    return f"{label} - Below cutoff by {diff:+.1f}%"


def rank_reason(diff: int) -> str:
    label = _bucket(diff, RANK_REASONS)
    if diff >= 0:
        return f"{label} - Ahead of closing rank by {diff:+d} ranks"
    return f"{label} - Behind closing rank by {diff:+d} ranks"


def score_percentile(candidate: float, tolerance: float, cutoff_percentile: Optional[float]) -> MatchOutcome:
    """
    Percentile mode, ``diff = candidate - cutoff``.

    At or above the cutoff scores 100. Below it the score decays over
    three bands of one tolerance each: 100->70, 70->20, 20->1, then 0.
    """
    if cutoff_percentile is None:
        return MatchOutcome(0.0, UNPUBLISHED_REASON)

    diff = candidate - cutoff_percentile
    gap = abs(diff)

    if diff >= 0:
        score = 100.0
    elif gap <= tolerance:
        score = 100 - (gap / tolerance) * 30
    elif gap <= 2 * tolerance:
        score = 70 - ((gap - tolerance) / tolerance) * 50
    elif gap <= 3 * tolerance:
        score = 20 - ((gap - 2 * tolerance) / tolerance) * 19
    else:
        score = 0.0

    return MatchOutcome(clamp(score), percentile_reason(diff))


def score_rank(candidate_rank: int, tolerance: float, closing_rank: Optional[int]) -> MatchOutcome:
    """
    Rank mode, ``diff = closing_rank - candidate_rank``.

    Tolerance is in thousands of ranks. Beyond two tolerances the score
    keeps falling by one point per thousand ranks from 50.
    """
    if closing_rank is None:
        return MatchOutcome(0.0, UNPUBLISHED_REASON)

    diff = closing_rank - candidate_rank

    if diff >= 0:
        score = 100.0
    else:
        rank_gap = abs(diff)
        tolerance_ranks = tolerance * RANK_UNIT
        if rank_gap <= tolerance_ranks:
            score = 100 - (rank_gap / tolerance_ranks) * 30
        elif rank_gap <= 2 * tolerance_ranks:
            score = 70 - ((rank_gap - tolerance_ranks) / tolerance_ranks) * 20
        else:
            score = max(0.0, 50 - (rank_gap - 2 * tolerance_ranks) / RANK_UNIT)

    return MatchOutcome(clamp(score), rank_reason(diff))


Scorer = Callable[[float, float, CutoffRecord], MatchOutcome]


def _percentile_scorer(candidate: float, tolerance: float, cutoff: CutoffRecord) -> MatchOutcome:
    return score_percentile(candidate, tolerance, cutoff.percentile)


def _rank_scorer(candidate: float, tolerance: float, cutoff: CutoffRecord) -> MatchOutcome:
    return score_rank(int(candidate), tolerance, cutoff.closing_rank)


_SCORERS: Dict[ScoringMode, Scorer] = {
    ScoringMode.PERCENTILE: _percentile_scorer,
    ScoringMode.RANK: _rank_scorer,
}


def scorer_for(mode: ScoringMode) -> Scorer:
    return _SCORERS[mode]
