from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
import uvicorn
import logging

from .config import LOG_FORMAT, get_settings
from .engine import PredictionEngine
from .exceptions import PredictorError, RetrievalError
from .models import (
    CutoffSearchRequest,
    CutoffSearchResponse,
    ExportRequest,
    ExportResponse,
    PredictionRequest,
    PredictionResponse,
)
from .store import load_store
from .taxonomy import DEFAULT_TAXONOMY, load_taxonomy
from .utils import build_score_plot, export_file_name, predictions_to_csv, score_distribution

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level,
    format=LOG_FORMAT
)
logger = logging.getLogger(__name__)

# FastAPI Application
app = FastAPI(
    title="College Admission Predictor",
    description="Cutoff based college admission prediction",
    version="1.0.0"
)

# CORS Middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

app.state.engine = None


# Startup event
@app.on_event("startup")
async def startup_event():
    """Load taxonomy and cutoff data once, before serving"""
    try:
        taxonomy = load_taxonomy(settings.taxonomy_path) if settings.taxonomy_path else DEFAULT_TAXONOMY
        store = load_store(settings.cutoff_csv_path, settings.college_csv_path)
        app.state.engine = PredictionEngine(
            store,
            taxonomy=taxonomy,
            result_cap=settings.result_cap,
            fuzzy_threshold=settings.fuzzy_threshold,
            default_tolerance=settings.default_tolerance,
        )
        logger.info("Data loaded successfully on startup")
    except Exception as e:
        logger.error(f"Failed to load data on startup: {e}")


@app.exception_handler(PredictorError)
async def predictor_error_handler(request: Request, exc: PredictorError):
    logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def get_engine(request: Request) -> PredictionEngine:
    engine = request.app.state.engine
    if engine is None:
        raise RetrievalError("Cutoff data is not loaded", operation="startup")
    return engine


@app.post("/api/predict", response_model=PredictionResponse, response_model_exclude_none=True)
async def predict(
    input: PredictionRequest,
    include_plot: bool = Query(False, description="Attach a match score histogram"),
    engine: PredictionEngine = Depends(get_engine)
):
    """
    Predict colleges for a candidate's score, category and seat type

    Args:
        input (PredictionRequest): Exam, score and preferences

    Returns:
        PredictionResponse with ranked predictions and the resolved parameters
    """
    response = await run_in_threadpool(engine.predict, input)
    if include_plot and response.predictions:
        response.distribution = score_distribution(response.predictions)
        response.plot_data = build_score_plot(response.predictions)
    return response


@app.post("/api/search-cutoffs", response_model=CutoffSearchResponse, response_model_exclude_none=True)
async def search_cutoffs(input: CutoffSearchRequest, engine: PredictionEngine = Depends(get_engine)):
    """List cutoffs for the given criteria, optionally narrowed by college name or city"""
    return await run_in_threadpool(engine.search_cutoffs, input)


@app.post("/api/export/predictions", response_model=ExportResponse)
async def export_predictions(input: ExportRequest):
    """Render predictions as CSV"""
    return ExportResponse(
        message="Export generated",
        csv_data=predictions_to_csv(input.predictions),
        file_name=export_file_name(),
    )


@app.get("/api/branches")
async def branches(
    exam_type: str = Query(..., min_length=1, alias="examType"),
    engine: PredictionEngine = Depends(get_engine)
):
    """Distinct branch names for an exam"""
    branch_list = await run_in_threadpool(engine.list_branches, exam_type)
    return {
        "success": True,
        "examType": engine.taxonomy.normalize_exam(exam_type),
        "count": len(branch_list),
        "branches": branch_list
    }


@app.get("/api/taxonomy")
async def taxonomy(engine: PredictionEngine = Depends(get_engine)):
    """Canonical exams, categories and seat types"""
    return {
        "exams": [
            {"examType": exam_id, "rankBased": engine.taxonomy.is_rank_based(exam_id)}
            for exam_id in engine.taxonomy.exam_ids
        ],
        "categories": list(engine.taxonomy.categories),
        "seatTypes": list(engine.taxonomy.seat_types),
    }


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "dataLoaded": app.state.engine is not None}


if __name__ == "__main__":
    uvicorn.run(
        "predictor.main:app",
        host="0.0.0.0",
        port=settings.port,
        reload=True
    )
