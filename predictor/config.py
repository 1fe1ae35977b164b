"""
Application settings read from the environment (and an optional .env file).
"""

import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional, Tuple

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _split_csv(value: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in value.split(',') if part.strip())


@dataclass(frozen=True)
class Settings:
    cutoff_csv_path: str
    college_csv_path: str
    taxonomy_path: Optional[str]
    result_cap: int
    default_tolerance: float
    fuzzy_threshold: float
    log_level: str
    port: int
    cors_origins: Tuple[str, ...]


@lru_cache
def get_settings() -> Settings:
    """Build settings once per process."""
    return Settings(
        cutoff_csv_path=os.getenv("CUTOFF_CSV_PATH", os.path.join(BASE_DIR, "data", "cutoffs.csv")),
        college_csv_path=os.getenv("COLLEGE_CSV_PATH", os.path.join(BASE_DIR, "data", "colleges.csv")),
        taxonomy_path=os.getenv("TAXONOMY_PATH") or None,
        result_cap=int(os.getenv("RESULT_CAP", 200)),
        default_tolerance=float(os.getenv("DEFAULT_TOLERANCE", 10)),
        fuzzy_threshold=float(os.getenv("FUZZY_THRESHOLD", 60)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        port=int(os.getenv("PORT", 8000)),
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS", "*")),
    )
