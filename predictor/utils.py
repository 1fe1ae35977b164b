import json
import logging
from datetime import datetime
from typing import Any, Dict, List

import numpy as np
import pandas as pd
import plotly.express as px

from .exceptions import ExportError
from .models import PredictionResult

logger = logging.getLogger(__name__)

SCORE_BANDS = 10

EXPORT_COLUMNS = [
    'Rank', 'College Name', 'Branch', 'City', 'Status', 'Year', 'Round',
    'Category', 'Seat Type', 'Closing Rank', 'Closing Percentile', 'Match Score'
]


def score_distribution(predictions: List[PredictionResult]) -> Dict[str, Any]:
    """
    Count predictions per match score band (0-10, 10-20, ... 90-100).

    Returns:
        dict with ``bands`` labels and matching ``counts``
    """
    scores = np.array([p.match_score for p in predictions], dtype=float)
    counts, edges = np.histogram(scores, bins=SCORE_BANDS, range=(0, 100))
    bands = [f"{int(low)}-{int(high)}" for low, high in zip(edges[:-1], edges[1:])]
    return {"bands": bands, "counts": counts.tolist()}


def build_score_plot(predictions: List[PredictionResult]) -> Dict[str, Any]:
    """
    Histogram of match scores as a plotly figure dict.
    """
    frame = pd.DataFrame({
        'Match Score': [p.match_score for p in predictions],
    })
    fig = px.histogram(
        frame,
        x='Match Score',
        title='Match Score Distribution',
        labels={'Match Score': 'Match Score', 'count': 'Number of Colleges'},
        nbins=20
    )
    fig.update_layout(
        showlegend=False,
        xaxis_title="Match Score",
        yaxis_title="Number of Colleges"
    )
    # to_json handles numpy arrays that plain dict serialization cannot
    return json.loads(fig.to_json())


def predictions_to_csv(predictions: List[PredictionResult]) -> str:
    """
    Render predictions as CSV text.

    Raises:
        ExportError: if there are no predictions
    """
    if not predictions:
        raise ExportError("No predictions to export")

    rows = [
        {
            'Rank': p.serial_number,
            'College Name': p.college.name,
            'Branch': p.cutoff.branch,
            'City': p.college.location,
            'Status': p.college.status,
            'Year': p.cutoff.year,
            'Round': p.cutoff.round,
            'Category': p.cutoff.category,
            'Seat Type': p.cutoff.seat_type,
            'Closing Rank': p.cutoff.closing_rank,
            'Closing Percentile': p.cutoff.percentile,
            'Match Score': p.match_score,
        }
        for p in predictions
    ]
    frame = pd.DataFrame(rows, columns=EXPORT_COLUMNS, dtype=object)
    frame = frame.where(frame.notna(), 'N/A')
    logger.info(f"Exporting {len(frame)} predictions to CSV")
    return frame.to_csv(index=False)


def export_file_name(now: datetime = None) -> str:
    now = now or datetime.now()
    return f"Predictions_{now.strftime('%Y%m%d_%H%M%S')}.csv"
