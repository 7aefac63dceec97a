"""
Custom exception classes for error categorization in the TripTailor service.
"""


class TripTailorError(Exception):
    """Base exception for all TripTailor errors."""

    def __init__(self, message: str, context: dict = None):
        """
        Initialize exception with message and optional context.

        Args:
            message: Error message
            context: Optional dictionary with additional error context
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}


class TransientError(TripTailorError):
    """
    Exception for transient errors that should be retried.

    Examples:
        - Network timeouts
        - HTTP 429 / 5xx from Google or Gemini
        - Database connection failures
    """
    pass


class PermanentError(TripTailorError):
    """
    Exception for permanent errors that should not be retried.

    Examples:
        - Invalid API keys
        - Malformed requests (HTTP 4xx)
        - Unparseable upstream payloads
    """
    pass


class NotFoundError(PermanentError):
    """Exception for missing trips or places."""
    pass


# Specific error types for different components

class StoreError(TripTailorError):
    """Exception for place store (PostGIS / in-memory) errors."""
    pass


class CacheError(TripTailorError):
    """Exception for suggestion cache errors."""
    pass


class APIError(TripTailorError):
    """Base exception for external API errors."""

    def __init__(self, message: str, status_code: int = None, context: dict = None):
        super().__init__(message, context)
        self.status_code = status_code


class GooglePlacesError(APIError):
    """Exception for Google Places API errors."""
    pass


class GeminiError(APIError):
    """Exception for Gemini API errors."""
    pass


class RateLimitError(TransientError):
    """Exception for API rate limiting."""

    def __init__(self, message: str, retry_after: int = None, context: dict = None):
        """
        Initialize rate limit error.

        Args:
            message: Error message
            retry_after: Seconds to wait before retrying
            context: Additional error context
        """
        super().__init__(message, context)
        self.retry_after = retry_after


class ValidationError(PermanentError):
    """Exception for data validation failures."""

    def __init__(self, message: str, validation_errors: list = None, context: dict = None):
        """
        Initialize validation error.

        Args:
            message: Error message
            validation_errors: List of specific validation errors
            context: Additional error context
        """
        super().__init__(message, context)
        self.validation_errors = validation_errors or []


class ConnectionError(TransientError):
    """Exception for connection failures."""
    pass


class TimeoutError(TransientError):
    """Exception for operation timeouts."""
    pass


class ConfigurationError(PermanentError):
    """Exception for configuration errors."""
    pass
