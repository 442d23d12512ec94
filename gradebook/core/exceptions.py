"""
Custom exceptions for the gradebook platform.
"""

from typing import Optional, Any, Dict


class GradebookException(Exception):
    """Base exception for all gradebook errors."""

    default_error_code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, error_code: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.error_code, "message": self.message, "details": self.details}


class ResourceNotFoundError(GradebookException):
    """Raised when a requested resource is not found."""
    default_error_code = "NOT_FOUND"


class DuplicateEntityError(GradebookException):
    """Raised when attempting to create a duplicate entity."""
    default_error_code = "CONFLICT"


class ValidationError(GradebookException):
    """Raised when data validation fails."""
    default_error_code = "BAD_REQUEST"


class InternalError(GradebookException):
    """Raised for unexpected failures; keeps the underlying cause."""

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.cause = cause


class PersistenceError(InternalError):
    """Raised when persistence operations fail."""
    pass


class ConfigurationError(InternalError):
    """Raised when configuration is invalid."""
    pass
