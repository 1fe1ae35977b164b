# Pytest fixtures. Run: pytest tests/ -v
# Stores are built from in-memory records; no CSV files are needed.

import pytest
from fastapi.testclient import TestClient

from predictor.engine import PredictionEngine
from predictor.main import app, get_engine
from predictor.store import DataFrameCutoffStore

COLLEGES = [
    {"id": "c1", "name": "Pune Engineering College", "code": "6006", "city": "Pune",
     "state": "Maharashtra", "university": "SPPU", "status": "Autonomous", "fees": 90000, "rating": 4.5},
    {"id": "c2", "name": "Mumbai Technical Institute", "code": "3012", "city": "Mumbai",
     "state": "Maharashtra", "university": "MU", "status": "Government", "fees": 60000, "rating": 4.2},
    {"id": "c3", "name": "Nagpur National Institute", "code": "", "city": "Nagpur",
     "state": "Maharashtra", "university": "", "status": "Government", "fees": 150000, "rating": 4.4},
]

CUTOFFS = [
    {"id": "k1", "college_id": "c1", "exam_type": "MHTCET", "year": 2024, "round": 1,
     "branch": "Computer Engineering", "category": "OPEN", "seat_type": "GOPENH", "percentile": 88.0},
    {"id": "k2", "college_id": "c2", "exam_type": "MHTCET", "year": 2024, "round": 1,
     "branch": "Mechanical Engineering", "category": "OPEN-L", "seat_type": "LOPENH", "percentile": 95.0},
    {"id": "k3", "college_id": "c1", "exam_type": "MHTCET", "year": 2024, "round": 1,
     "branch": "Information Technology", "category": "OBC", "seat_type": "GOBCH", "percentile": 85.0},
    {"id": "k4", "college_id": "c9", "exam_type": "MHTCET", "year": 2024, "round": 1,
     "branch": "Civil Engineering", "category": "OPEN", "seat_type": "GOPENH", "percentile": 90.0},
    {"id": "k5", "college_id": "c2", "exam_type": "MHTCET", "year": 2024, "round": 1,
     "branch": "Computer Engineering", "category": "OPEN", "seat_type": "GOPENO", "percentile": 93.0},
    {"id": "k6", "college_id": "c3", "exam_type": "JEE", "year": 2024, "round": 1,
     "branch": "Computer Science and Engineering", "category": "OPEN", "seat_type": "AI",
     "opening_rank": 1000, "closing_rank": 4000},
    {"id": "k7", "college_id": "c3", "exam_type": "JEE", "year": 2024, "round": 1,
     "branch": "Electrical Engineering", "category": "OPEN", "seat_type": "AI",
     "opening_rank": 5000, "closing_rank": 12000},
    {"id": "k8", "college_id": "c1", "exam_type": "MHTCET", "year": 2023, "round": 1,
     "branch": "Computer Engineering", "category": "OPEN", "seat_type": "GOPENH", "percentile": 87.0},
]


@pytest.fixture
def store():
    return DataFrameCutoffStore.from_records(CUTOFFS, COLLEGES)


@pytest.fixture
def engine(store):
    return PredictionEngine(store)


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def cet_request():
    return {
        "examType": "MHT-CET",
        "percentile": 92,
        "year": 2024,
        "round": 1,
        "category": "OPEN",
        "seatType": "HOME",
        "toleranceRange": 10,
    }
