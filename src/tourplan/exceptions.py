"""Custom exceptions for Tourplan."""


class TourplanError(Exception):
    """Base exception for all Tourplan errors."""

    pass


class ValidationError(TourplanError):
    """Raised when input validation fails."""

    pass


class ParseError(TourplanError):
    """Raised when YAML parsing fails."""

    pass
