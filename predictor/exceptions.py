"""
Exceptions raised by the prediction engine.

Each error knows the HTTP status it maps to so the API layer can
render it without inspecting the type.
"""

from typing import Optional, Dict, Any


class PredictorError(Exception):
    """Base exception for all predictor errors."""

    status_code = 500

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "success": False,
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details
        }


class ValidationError(PredictorError):
    """Raised when a request is structurally valid but unusable."""

    status_code = 400


class RetrievalError(PredictorError):
    """Raised when the cutoff store cannot be read."""

    status_code = 503

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None
    ):
        details = {}
        if operation:
            details["operation"] = operation
        if original_error is not None:
            details["cause"] = str(original_error)
        super().__init__(message, details, original_error)


class ExportError(PredictorError):
    """Raised when there is nothing to export."""

    status_code = 400
