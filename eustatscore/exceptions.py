"""Custom exceptions for the eustatscore package."""

from typing import Optional


class EurostatAPIError(Exception):
    """Base exception for Eurostat API errors."""

    def __init__(self, message: str = "", status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DatasetNotFoundError(EurostatAPIError):
    """Raised when a requested dataset is not found."""
    pass


class InvalidParameterError(EurostatAPIError):
    """Raised when invalid parameters are provided to API calls."""
    pass


class DataParsingError(EurostatAPIError):
    """Raised when there are issues parsing API response data."""
    pass
