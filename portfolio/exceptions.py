"""
Domain exceptions raised by the crud and service layers.
Each carries the HTTP status it maps to; handlers live in portfolio.main.
"""
from typing import Any, Optional

from fastapi import status


class PortfolioError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Internal server error"

    def __init__(self, message: str, detail: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail if detail is not None else message


class NotFoundError(PortfolioError):
    status_code = status.HTTP_404_NOT_FOUND
    error = "Not found"


class ValidationError(PortfolioError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = "Validation error"


class ConflictError(PortfolioError):
    status_code = status.HTTP_409_CONFLICT
    error = "Conflict"


class UploadError(PortfolioError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = "Upload failed"
