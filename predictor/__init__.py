"""College admission predictor."""

__version__ = "1.0.0"
