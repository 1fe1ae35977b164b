from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .taxonomy import ScoringMode


class CamelModel(BaseModel):
    """Accepts and emits camelCase keys, also accepts snake_case names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Store records

class CutoffRecord(CamelModel):
    id: str
    college_id: str
    exam_type: str
    year: int
    round: int
    branch: str
    category: str
    seat_type: str
    percentile: Optional[float] = Field(None, ge=0, le=100)
    opening_rank: Optional[int] = Field(None, ge=1)
    closing_rank: Optional[int] = Field(None, ge=1)


class CollegeRecord(CamelModel):
    id: str
    name: str
    code: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    university: Optional[str] = None
    status: Optional[str] = None
    fees: Optional[float] = None
    rating: Optional[float] = None


# Requests

class PredictionRequest(CamelModel):
    exam_type: str = Field(..., min_length=1, description="Exam (e.g., MHT-CET, JEE, NEET)")
    percentile: Optional[float] = Field(None, ge=0, le=100, description="Percentile, for percentile-based exams")
    rank: Optional[int] = Field(None, ge=1, description="Rank, for rank-based exams")
    year: int = Field(..., description="Cutoff year")
    round: int = Field(..., ge=1, description="Counseling Round Number")
    category: str = Field(..., min_length=1, description="Category (e.g., OPEN, OBC, SC)")
    seat_type: str = Field(..., min_length=1, description="Seat type (e.g., HOME, GOPENH)")
    tolerance_range: Optional[float] = Field(None, gt=0, description="Half-width of the score window")
    preferred_branches: List[str] = Field(default_factory=list, description="Branch name fragments")
    preferred_cities: List[str] = Field(default_factory=list, description="Cities")
    college_statuses: List[str] = Field(default_factory=list, description="Institutional statuses")
    fuzzy_match: bool = Field(True, description="Fuzzy-match category and seat type")

    @field_validator("preferred_branches", "preferred_cities", "college_statuses", mode="before")
    @classmethod
    def null_lists(cls, value):
        return [] if value is None else value

    @model_validator(mode="after")
    def check_score_present(self):
        if self.percentile is None and self.rank is None:
            raise ValueError("Either percentile or rank is required")
        return self


class CutoffSearchRequest(CamelModel):
    exam_type: str = Field(..., min_length=1)
    year: int
    round: int = Field(..., ge=1)
    category: str = Field(..., min_length=1)
    seat_type: str = Field(..., min_length=1)
    search: str = Field("", description="College name or city fragment (2+ characters)")
    limit: int = Field(100, ge=1, le=500)
    fuzzy_match: bool = True


# Responses

class CollegeSummary(CamelModel):
    id: str
    name: str
    institute_code: str = "N/A"
    location: str = "N/A"
    university: Optional[str] = None
    status: Optional[str] = None
    fees: Optional[float] = None
    rating: Optional[float] = None

    @classmethod
    def from_record(cls, college: CollegeRecord) -> "CollegeSummary":
        return cls(
            id=college.id,
            name=college.name,
            institute_code=college.code or "N/A",
            location=college.city or college.state or "N/A",
            university=college.university,
            status=college.status,
            fees=college.fees,
            rating=college.rating,
        )


class CutoffSummary(CamelModel):
    id: str
    branch: str
    percentile: Optional[float] = None
    opening_rank: Optional[int] = None
    closing_rank: Optional[int] = None
    year: int
    round: int
    category: str
    seat_type: str

    @classmethod
    def from_record(cls, cutoff: CutoffRecord) -> "CutoffSummary":
        return cls(
            id=cutoff.id,
            branch=cutoff.branch,
            percentile=cutoff.percentile,
            opening_rank=cutoff.opening_rank,
            closing_rank=cutoff.closing_rank,
            year=cutoff.year,
            round=cutoff.round,
            category=cutoff.category,
            seat_type=cutoff.seat_type,
        )


class PredictionResult(CamelModel):
    serial_number: int = Field(..., ge=1)
    college: CollegeSummary
    cutoff: CutoffSummary
    match_score: int = Field(..., ge=0, le=100)
    match_reason: str


class PredictionParameters(CamelModel):
    exam_type: str
    scoring_mode: ScoringMode
    percentile: Optional[float] = None
    rank: Optional[int] = None
    year: int
    round: int
    category: str
    seat_type: str
    tolerance_range: float
    matching_categories: List[str]
    matching_seat_types: List[str]
    fuzzy_match: bool


class PredictionResponse(CamelModel):
    success: bool = True
    count: int
    predictions: List[PredictionResult]
    parameters: PredictionParameters
    message: Optional[str] = None
    distribution: Optional[dict] = None
    plot_data: Optional[dict] = None


class CutoffSearchResult(CamelModel):
    college: CollegeSummary
    cutoff: CutoffSummary


class CutoffSearchResponse(CamelModel):
    success: bool = True
    count: int
    results: List[CutoffSearchResult]
    message: Optional[str] = None


class ExportRequest(CamelModel):
    predictions: List[PredictionResult] = Field(default_factory=list)


class ExportResponse(CamelModel):
    success: bool = True
    message: str
    csv_data: str
    file_name: str
