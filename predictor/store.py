"""
Cutoff store

Read-only access to cutoff and college records. The engine only talks to
the ``CutoffRepository`` protocol; ``DataFrameCutoffStore`` implements it
over pandas frames loaded from CSV.
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Tuple

import pandas as pd

from .exceptions import RetrievalError
from .models import CollegeRecord, CutoffRecord

logger = logging.getLogger(__name__)

DEFAULT_RESULT_CAP = 200

CUTOFF_COLUMNS = [
    'id', 'college_id', 'exam_type', 'year', 'round', 'branch',
    'category', 'seat_type', 'percentile', 'opening_rank', 'closing_rank'
]
REQUIRED_CUTOFF_COLUMNS = ['college_id', 'exam_type', 'year', 'round', 'branch', 'category', 'seat_type']

COLLEGE_COLUMNS = ['id', 'name', 'code', 'city', 'state', 'university', 'status', 'fees', 'rating']
COLLEGE_TEXT_COLUMNS = ['id', 'name', 'code', 'city', 'state', 'university', 'status']
REQUIRED_COLLEGE_COLUMNS = ['id', 'name']


@dataclass(frozen=True)
class CutoffFilter:
    exam_type: str
    year: int
    round: int
    categories: Tuple[str, ...]
    seat_types: Tuple[str, ...]
    score_field: str = 'percentile'
    score_range: Optional[Tuple[float, float]] = None
    branch_substrings: Tuple[str, ...] = field(default_factory=tuple)
    result_cap: int = DEFAULT_RESULT_CAP


class CutoffRepository(Protocol):
    def lookup_cutoffs(self, cutoff_filter: CutoffFilter) -> List[CutoffRecord]:
        ...

    def lookup_colleges(
        self,
        ids: Iterable[str],
        cities: Optional[Sequence[str]] = None,
        statuses: Optional[Sequence[str]] = None
    ) -> List[CollegeRecord]:
        ...

    def list_branches(self, exam_type: str) -> List[str]:
        ...


def _check_columns(df: pd.DataFrame, required: List[str], name: str):
    missing = [column for column in required if column not in df.columns]
    if missing:
        raise ValueError(f"{name} data is missing columns: {missing}")


def _strip(series: pd.Series) -> pd.Series:
    series = series.astype(object)
    return series.where(series.isna(), series.astype(str).str.strip())


def prepare_cutoffs(df: pd.DataFrame) -> pd.DataFrame:
    """Coerce types and normalize the taxonomy columns of raw cutoff data."""
    _check_columns(df, REQUIRED_CUTOFF_COLUMNS, "Cutoff")
    df = df.copy()
    if 'id' not in df.columns:
        df['id'] = df.index.astype(str)
    df = df.reindex(columns=CUTOFF_COLUMNS)

    for column in ['percentile', 'opening_rank', 'closing_rank', 'year', 'round']:
        df[column] = pd.to_numeric(df[column], errors="coerce")
    df = df.dropna(subset=['year', 'round']).copy()
    df['year'] = df['year'].astype(int)
    df['round'] = df['round'].astype(int)

    df['id'] = df['id'].astype(str)
    df['college_id'] = df['college_id'].astype(str)
    df['branch'] = _strip(df['branch'])
    for column in ['exam_type', 'category', 'seat_type']:
        df[column] = _strip(df[column]).str.upper()

    return df.reset_index(drop=True)


def prepare_colleges(df: pd.DataFrame) -> pd.DataFrame:
    _check_columns(df, REQUIRED_COLLEGE_COLUMNS, "College")
    df = df.reindex(columns=COLLEGE_COLUMNS)
    df['id'] = df['id'].astype(str)
    for column in ['name', 'code', 'city', 'state', 'university', 'status']:
        df[column] = _strip(df[column])
    for column in ['fees', 'rating']:
        df[column] = pd.to_numeric(df[column], errors="coerce")
    return df.reset_index(drop=True)


def _records(frame: pd.DataFrame) -> List[Dict[str, Any]]:
    return [
        {key: (None if pd.isna(value) else value) for key, value in row.items()}
        for row in frame.to_dict(orient='records')
    ]


def _lowered(values: Sequence[str]) -> List[str]:
    return [str(value).strip().lower() for value in values]


class DataFrameCutoffStore:
    """In-memory cutoff store. Frames are never modified after construction."""

    def __init__(self, cutoffs: pd.DataFrame, colleges: pd.DataFrame):
        self.cutoffs = prepare_cutoffs(cutoffs)
        self.colleges = prepare_colleges(colleges)

    @classmethod
    def from_records(cls, cutoffs: List[Dict[str, Any]], colleges: List[Dict[str, Any]]) -> "DataFrameCutoffStore":
        return cls(
            pd.DataFrame(cutoffs, columns=None if cutoffs else CUTOFF_COLUMNS),
            pd.DataFrame(colleges, columns=None if colleges else COLLEGE_COLUMNS),
        )

    def lookup_cutoffs(self, cutoff_filter: CutoffFilter) -> List[CutoffRecord]:
        if not cutoff_filter.categories or not cutoff_filter.seat_types:
            return []

        try:
            df = self.cutoffs
            mask = (
                (df['exam_type'] == cutoff_filter.exam_type)
                & (df['year'] == cutoff_filter.year)
                & (df['round'] == cutoff_filter.round)
                & df['category'].isin(cutoff_filter.categories)
                & df['seat_type'].isin(cutoff_filter.seat_types)
            )

            if cutoff_filter.score_range is not None:
                low, high = cutoff_filter.score_range
                mask &= df[cutoff_filter.score_field].between(low, high)

            if cutoff_filter.branch_substrings:
                branch_mask = pd.Series(False, index=df.index)
                for fragment in cutoff_filter.branch_substrings:
                    branch_mask |= df['branch'].str.contains(fragment, case=False, regex=False, na=False)
                mask &= branch_mask

            matched = df[mask].head(cutoff_filter.result_cap)
            logger.info(f"Cutoff lookup matched {int(mask.sum())} rows, returning {len(matched)}")
            return [CutoffRecord(**row) for row in _records(matched)]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"Cutoff lookup failed: {e}")
            raise RetrievalError("Cutoff lookup failed", operation="lookup_cutoffs", original_error=e)

    def lookup_colleges(
        self,
        ids: Iterable[str],
        cities: Optional[Sequence[str]] = None,
        statuses: Optional[Sequence[str]] = None
    ) -> List[CollegeRecord]:
        try:
            df = self.colleges
            mask = df['id'].isin([str(college_id) for college_id in ids])
            if cities:
                mask &= df['city'].str.lower().isin(_lowered(cities))
            if statuses:
                mask &= df['status'].str.lower().isin(_lowered(statuses))
            return [CollegeRecord(**row) for row in _records(df[mask])]
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.error(f"College lookup failed: {e}")
            raise RetrievalError("College lookup failed", operation="lookup_colleges", original_error=e)

    def list_branches(self, exam_type: str) -> List[str]:
        branches = self.cutoffs.loc[self.cutoffs['exam_type'] == exam_type, 'branch'].dropna()
        return sorted(set(branches))


def load_store(cutoff_csv: str, college_csv: str) -> DataFrameCutoffStore:
    """
    Load cutoff and college CSV files into a store.

    Raises:
        FileNotFoundError: if either file is missing
    """
    for path in (cutoff_csv, college_csv):
        logger.info(f"Attempting to load CSV from: {path}")
        if not os.path.exists(path):
            logger.error(f"CSV file not found at: {path}")
            raise FileNotFoundError(f"CSV file not found at: {path}")

    store = DataFrameCutoffStore(
        pd.read_csv(cutoff_csv, dtype={'id': str, 'college_id': str}),
        pd.read_csv(college_csv, dtype={column: str for column in COLLEGE_TEXT_COLUMNS}),
    )
    logger.info(
        f"Data loaded successfully. Cutoffs: {len(store.cutoffs)}, colleges: {len(store.colleges)}"
    )
    return store
