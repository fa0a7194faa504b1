"""
Shared error handling for the University Elections API.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from .logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    request_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class ElectionsApiException(Exception):
    """Base exception for the Elections API."""

    status_code: int = 500

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            request_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class NotFoundError(ElectionsApiException):
    """Requested resource does not exist."""

    status_code = 404

    def __init__(self, message: str = "Resource not found", details: Optional[Dict[str, Any]] = None):
        super().__init__("NOT_FOUND", message, details)


class InvalidInputError(ElectionsApiException):
    """Caller-supplied data failed validation."""

    status_code = 400

    def __init__(self, message: str = "Invalid input", details: Optional[Dict[str, Any]] = None,
                 code: str = "INVALID_INPUT"):
        super().__init__(code, message, details)


class DuplicateResourceError(InvalidInputError):
    """A unique attribute is already taken (e.g. student ID)."""

    status_code = 409

    def __init__(self, message: str = "Resource already exists", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details, code="DUPLICATE_RESOURCE")


class PersistenceError(ElectionsApiException):
    """The database could not complete an operation."""

    status_code = 503

    def __init__(self, message: str = "Database operation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("PERSISTENCE_ERROR", message, details)
