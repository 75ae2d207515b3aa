# src/autocoding/core/errors.py
"""
Error taxonomy for the AutoCoding orchestrator.

Every error knows its wire code and HTTP status so a service layer can turn
it into the {success: false, error: {code, message, details}} envelope.
"""

from typing import Any, Dict, Optional


class AutoCodingError(Exception):
    """Base exception for orchestrator errors."""

    code = "INTERNAL_ERROR"
    http_status = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> Dict[str, Any]:
        """Convert to the structured error response body."""
        return {
            'success': False,
            'error': {
                'code': self.code,
                'message': self.message,
                'details': self.details
            }
        }


class ValidationError(AutoCodingError):
    """Raised for malformed task or template input."""
    code = "VALIDATION_ERROR"
    http_status = 400


class ConfigurationError(AutoCodingError):
    """Raised when required settings or credentials are missing."""
    code = "CONFIGURATION_ERROR"
    http_status = 500


class AnalysisError(AutoCodingError):
    """Raised inside quality analysis; never escapes the analyzer."""
    code = "ANALYSIS_ERROR"
    http_status = 500


class TaskTrackingError(AutoCodingError):
    """Raised for illegal token tracker transitions."""
    code = "TASK_STATE_ERROR"
    http_status = 409


class TaskNotFoundError(AutoCodingError):
    """Raised when a task id is unknown."""
    code = "NOT_FOUND"
    http_status = 404


def error_response(error: Exception) -> Dict[str, Any]:
    """Build an error envelope for any exception."""
    if isinstance(error, AutoCodingError):
        return error.to_response()
    return AutoCodingError(str(error)).to_response()
