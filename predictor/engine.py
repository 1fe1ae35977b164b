"""
Prediction Engine

Turns a validated prediction request into ranked, scored cutoff matches.

Pipeline flow:
1. Exam normalization - canonical exam id and scoring mode
2. Taxonomy matching - category / seat-type input to canonical values
3. Retrieval - cutoffs inside the score window, then their colleges
4. Scoring - match score and reason per cutoff
5. Ranking - stable sort and serial numbers
"""

import logging
from typing import Dict, List, Optional, Tuple

from .exceptions import PredictorError, RetrievalError, ValidationError
from .matcher import DEFAULT_THRESHOLD, TaxonomyMatcher
from .models import (
    CollegeRecord,
    CollegeSummary,
    CutoffRecord,
    CutoffSearchRequest,
    CutoffSearchResponse,
    CutoffSearchResult,
    CutoffSummary,
    PredictionParameters,
    PredictionRequest,
    PredictionResponse,
    PredictionResult,
)
from .ranker import rank_results
from .scoring import RANK_UNIT, scorer_for
from .store import DEFAULT_RESULT_CAP, CutoffFilter, CutoffRepository
from .taxonomy import DEFAULT_TAXONOMY, ScoringMode, Taxonomy

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 10.0
MIN_SEARCH_LENGTH = 2

EMPTY_PREDICTIONS_MESSAGE = "No colleges found matching your criteria. Try adjusting filters."
EMPTY_SEARCH_MESSAGE = "No cutoffs found for these criteria"


class PredictionEngine:
    """
    Orchestrates normalization, matching, retrieval, scoring and ranking.

    The engine holds no per-request state and can serve concurrent requests.
    """

    def __init__(
        self,
        repository: CutoffRepository,
        taxonomy: Taxonomy = DEFAULT_TAXONOMY,
        result_cap: int = DEFAULT_RESULT_CAP,
        fuzzy_threshold: float = DEFAULT_THRESHOLD,
        default_tolerance: float = DEFAULT_TOLERANCE
    ):
        self.repository = repository
        self.taxonomy = taxonomy
        self.matcher = TaxonomyMatcher(taxonomy, fuzzy_threshold)
        self.result_cap = result_cap
        self.default_tolerance = default_tolerance

    def predict(self, request: PredictionRequest) -> PredictionResponse:
        """
        Predict colleges for a candidate.

        Raises:
            ValidationError: if the score field the exam needs is missing
            RetrievalError: if the cutoff store cannot be read
        """
        exam_type = self.taxonomy.normalize_exam(request.exam_type)
        mode = self.taxonomy.scoring_mode(exam_type)
        candidate = self._candidate_score(request, mode)
        tolerance = self.default_tolerance if request.tolerance_range is None else request.tolerance_range

        categories = self.matcher.match_category(request.category, fuzzy=request.fuzzy_match)
        seat_types = self.matcher.match_seat_type(request.seat_type, fuzzy=request.fuzzy_match)
        logger.info(f"Resolved {request.exam_type!r} -> {exam_type} ({mode.value}), "
                    f"categories={categories}, seat_types={seat_types}")

        parameters = PredictionParameters(
            exam_type=exam_type,
            scoring_mode=mode,
            percentile=candidate if mode is ScoringMode.PERCENTILE else None,
            rank=int(candidate) if mode is ScoringMode.RANK else None,
            year=request.year,
            round=request.round,
            category=request.category,
            seat_type=request.seat_type,
            tolerance_range=tolerance,
            matching_categories=categories,
            matching_seat_types=seat_types,
            fuzzy_match=request.fuzzy_match,
        )

        cutoff_filter = CutoffFilter(
            exam_type=exam_type,
            year=request.year,
            round=request.round,
            categories=tuple(categories),
            seat_types=tuple(seat_types),
            score_field='closing_rank' if mode is ScoringMode.RANK else 'percentile',
            score_range=score_window(candidate, tolerance, mode),
            branch_substrings=tuple(request.preferred_branches),
            result_cap=self.result_cap,
        )
        cutoffs = self._retrieve("lookup_cutoffs", self.repository.lookup_cutoffs, cutoff_filter)
        if not cutoffs:
            return PredictionResponse(count=0, predictions=[], parameters=parameters,
                                      message=EMPTY_PREDICTIONS_MESSAGE)

        colleges = self._colleges_for(cutoffs, request.preferred_cities, request.college_statuses)

        scorer = scorer_for(mode)
        results: List[PredictionResult] = []
        for cutoff in cutoffs:
            college = colleges.get(cutoff.college_id)
            if college is None:
                logger.debug(f"Dropping cutoff {cutoff.id}: college {cutoff.college_id} not found or filtered out")
                continue
            outcome = scorer(candidate, tolerance, cutoff)
            results.append(PredictionResult(
                serial_number=len(results) + 1,
                college=CollegeSummary.from_record(college),
                cutoff=CutoffSummary.from_record(cutoff),
                match_score=outcome.display_score,
                match_reason=outcome.reason,
            ))

        predictions = rank_results(results, mode)
        logger.info(f"Built {len(predictions)} predictions from {len(cutoffs)} cutoffs")

        return PredictionResponse(
            count=len(predictions),
            predictions=predictions,
            parameters=parameters,
            message=None if predictions else EMPTY_PREDICTIONS_MESSAGE,
        )

    def search_cutoffs(self, request: CutoffSearchRequest) -> CutoffSearchResponse:
        """
        List cutoffs for an exam, year, round, category and seat type, with
        an optional college name / city search term.
        """
        exam_type = self.taxonomy.normalize_exam(request.exam_type)
        cutoff_filter = CutoffFilter(
            exam_type=exam_type,
            year=request.year,
            round=request.round,
            categories=tuple(self.matcher.match_category(request.category, fuzzy=request.fuzzy_match)),
            seat_types=tuple(self.matcher.match_seat_type(request.seat_type, fuzzy=request.fuzzy_match)),
            result_cap=request.limit,
        )
        cutoffs = self._retrieve("lookup_cutoffs", self.repository.lookup_cutoffs, cutoff_filter)
        if not cutoffs:
            return CutoffSearchResponse(count=0, results=[], message=EMPTY_SEARCH_MESSAGE)

        colleges = self._colleges_for(cutoffs)
        term = request.search.strip().lower()
        if len(term) >= MIN_SEARCH_LENGTH:
            colleges = {
                college_id: college for college_id, college in colleges.items()
                if term in college.name.lower() or term in (college.city or "").lower()
            }

        results = [
            CutoffSearchResult(
                college=CollegeSummary.from_record(colleges[cutoff.college_id]),
                cutoff=CutoffSummary.from_record(cutoff),
            )
            for cutoff in cutoffs
            if cutoff.college_id in colleges
        ]
        return CutoffSearchResponse(
            count=len(results),
            results=results,
            message=None if results else EMPTY_SEARCH_MESSAGE,
        )

    def list_branches(self, exam_type: str) -> List[str]:
        exam_id = self.taxonomy.normalize_exam(exam_type)
        return self._retrieve("list_branches", self.repository.list_branches, exam_id)

    def _candidate_score(self, request: PredictionRequest, mode: ScoringMode) -> float:
        if mode is ScoringMode.RANK:
            if request.rank is None:
                raise ValidationError(
                    "rank is required for rank-based exams",
                    details={"examType": request.exam_type, "field": "rank"},
                )
            return request.rank
        if request.percentile is None:
            raise ValidationError(
                "percentile is required for percentile-based exams",
                details={"examType": request.exam_type, "field": "percentile"},
            )
        return request.percentile

    def _colleges_for(
        self,
        cutoffs: List[CutoffRecord],
        cities: Optional[List[str]] = None,
        statuses: Optional[List[str]] = None
    ) -> Dict[str, CollegeRecord]:
        college_ids = list(dict.fromkeys(cutoff.college_id for cutoff in cutoffs))
        colleges = self._retrieve("lookup_colleges", self.repository.lookup_colleges,
                                  college_ids, cities or None, statuses or None)
        return {college.id: college for college in colleges}

    def _retrieve(self, operation: str, call, *args):
        try:
            return call(*args)
        except PredictorError:
            raise
        except Exception as e:
            logger.error(f"Store call {operation} failed: {e}")
            raise RetrievalError(f"Store call {operation} failed", operation=operation, original_error=e) from e


def score_window(candidate: float, tolerance: float, mode: ScoringMode) -> Tuple[float, float]:
    """Score range to retrieve: tolerance is in thousands of ranks for rank exams."""
    width = tolerance * RANK_UNIT if mode is ScoringMode.RANK else tolerance
    return (candidate - width, candidate + width)
