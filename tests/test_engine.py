import pytest

from predictor.engine import EMPTY_PREDICTIONS_MESSAGE, PredictionEngine, score_window
from predictor.exceptions import RetrievalError, ValidationError
from predictor.models import CutoffSearchRequest, PredictionRequest
from predictor.store import DataFrameCutoffStore
from predictor.taxonomy import ScoringMode

from .conftest import COLLEGES, CUTOFFS


def cet(**overrides):
    values = dict(exam_type="MHT-CET", percentile=92, year=2024, round=1,
                  category="OPEN", seat_type="HOME", tolerance_range=10)
    values.update(overrides)
    return PredictionRequest(**values)


def jee(**overrides):
    values = dict(exam_type="JEE Main", rank=5000, year=2024, round=1,
                  category="OPEN", seat_type="All India", tolerance_range=10)
    values.update(overrides)
    return PredictionRequest(**values)


def cutoff_ids(response):
    return [p.cutoff.id for p in response.predictions]


def test_single_record_scenario():
    store = DataFrameCutoffStore.from_records(
        [{"id": "k1", "college_id": "c1", "exam_type": "MHTCET", "year": 2024, "round": 1,
          "branch": "Computer Engineering", "category": "OPEN", "seat_type": "GOPENH", "percentile": 88}],
        COLLEGES,
    )

    response = PredictionEngine(store).predict(cet())

    assert response.parameters.exam_type == "MHTCET"
    assert response.parameters.scoring_mode is ScoringMode.PERCENTILE
    assert response.parameters.matching_categories == ["OPEN", "OPEN-L"]
    assert "GOPENH" in response.parameters.matching_seat_types
    assert response.count == 1
    prediction = response.predictions[0]
    assert prediction.serial_number == 1
    assert prediction.match_score == 100
    assert prediction.match_reason == "Good Chance - Above cutoff by +4.0%"
    assert prediction.college.name == "Pune Engineering College"


def test_percentile_prediction(engine):
    response = engine.predict(cet())

    # k3 is OBC, k4 has no college, k5 is other-university, k8 is 2023
    assert cutoff_ids(response) == ["k1", "k2"]
    assert [p.match_score for p in response.predictions] == [100, 91]
    assert [p.serial_number for p in response.predictions] == [1, 2]
    assert response.predictions[1].match_reason.startswith("Possible")
    assert response.message is None


def test_rank_prediction(engine):
    response = engine.predict(jee())

    assert response.parameters.exam_type == "JEE"
    assert response.parameters.scoring_mode is ScoringMode.RANK
    assert response.parameters.rank == 5000
    assert cutoff_ids(response) == ["k7", "k6"]
    assert [p.match_score for p in response.predictions] == [100, 97]
    assert response.predictions[0].match_reason.startswith("Excellent")


def test_rank_window_is_in_thousands(engine):
    # window 5000 +/- 1000 only reaches k6 (closing rank 4000)
    assert cutoff_ids(engine.predict(jee(tolerance_range=1))) == ["k6"]


def test_default_tolerance():
    engine = PredictionEngine(DataFrameCutoffStore.from_records([], COLLEGES), default_tolerance=7.5)
    assert engine.predict(cet(tolerance_range=None)).parameters.tolerance_range == 7.5


def test_branch_city_and_status_filters(engine):
    assert cutoff_ids(engine.predict(cet(preferred_branches=["mechanical"]))) == ["k2"]
    assert cutoff_ids(engine.predict(cet(preferred_branches=["computer", "mech"]))) == ["k1", "k2"]
    assert cutoff_ids(engine.predict(cet(preferred_cities=["pune"]))) == ["k1"]
    assert cutoff_ids(engine.predict(cet(college_statuses=["Government"]))) == ["k2"]


def test_filters_removing_everything_is_not_an_error(engine):
    response = engine.predict(cet(preferred_cities=["Nashik"]))
    assert response.count == 0
    assert response.message == EMPTY_PREDICTIONS_MESSAGE


def test_unmatched_seat_type_gives_empty_response(engine):
    response = engine.predict(cet(seat_type="ZZZZ"))

    assert response.parameters.matching_seat_types == []
    assert response.count == 0
    assert response.predictions == []
    assert response.message == EMPTY_PREDICTIONS_MESSAGE


def test_fuzzy_disabled_uses_raw_values(engine):
    response = engine.predict(cet(seat_type="GOPENH", fuzzy_match=False))
    assert response.parameters.matching_categories == ["OPEN"]
    assert cutoff_ids(response) == ["k1"]

    assert engine.predict(cet(fuzzy_match=False)).count == 0


def test_unknown_exam_passes_through(engine):
    response = engine.predict(cet(exam_type="GATE"))
    assert response.parameters.exam_type == "GATE"
    assert response.count == 0


def test_result_cap(store):
    assert PredictionEngine(store, result_cap=1).predict(cet()).count == 1


def test_repeat_runs_are_identical(engine):
    assert engine.predict(cet()) == engine.predict(cet())


@pytest.mark.parametrize("request_factory, field", [
    (lambda: cet(percentile=None, rank=1200), "percentile"),
    (lambda: jee(rank=None, percentile=95), "rank"),
])
def test_missing_mode_score_field(engine, request_factory, field):
    with pytest.raises(ValidationError) as exc_info:
        engine.predict(request_factory())
    assert exc_info.value.details["field"] == field


class BrokenStore:
    def lookup_cutoffs(self, cutoff_filter):
        raise ConnectionError("store unreachable")

    def lookup_colleges(self, ids, cities=None, statuses=None):
        return []

    def list_branches(self, exam_type):
        return []


def test_store_failure_is_a_retrieval_error():
    with pytest.raises(RetrievalError) as exc_info:
        PredictionEngine(BrokenStore()).predict(cet())
    assert exc_info.value.details["cause"] == "store unreachable"


class CollegeLookupFailingStore(DataFrameCutoffStore):
    def lookup_colleges(self, ids, cities=None, statuses=None):
        raise TimeoutError("college store timed out")


def test_college_lookup_failure_is_a_retrieval_error():
    store = CollegeLookupFailingStore.from_records(CUTOFFS, COLLEGES)

    with pytest.raises(RetrievalError) as exc_info:
        PredictionEngine(store).predict(cet())

    assert exc_info.value.details["operation"] == "lookup_colleges"
    assert exc_info.value.details["cause"] == "college store timed out"


def test_score_window():
    assert score_window(92, 10, ScoringMode.PERCENTILE) == (82, 102)
    assert score_window(5000, 2, ScoringMode.RANK) == (3000, 7000)


def test_search_cutoffs(engine):
    request = CutoffSearchRequest(exam_type="mht-cet", year=2024, round=1, category="OPEN", seat_type="HOME")
    response = engine.search_cutoffs(request)
    assert [r.cutoff.id for r in response.results] == ["k1", "k2"]

    request = CutoffSearchRequest(exam_type="MHTCET", year=2024, round=1, category="OPEN",
                                  seat_type="HOME", search="mumbai")
    assert [r.cutoff.id for r in engine.search_cutoffs(request).results] == ["k2"]


def test_search_ignores_one_letter_terms(engine):
    request = CutoffSearchRequest(exam_type="MHTCET", year=2024, round=1, category="OPEN",
                                  seat_type="HOME", search="z")
    assert engine.search_cutoffs(request).count == 2


def test_list_branches(engine):
    assert engine.list_branches("jee-main") == ["Computer Science and Engineering", "Electrical Engineering"]
