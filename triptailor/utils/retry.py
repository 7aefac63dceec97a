"""
Retry utilities with exponential backoff for outbound HTTP calls.

Google Places answers with 429/5xx under load; those are turned into
`TransientError`s by `raise_for_upstream_status` and retried here. Any
other failure propagates immediately.
"""

import time
from functools import wraps
from typing import Callable, Type, Tuple

import requests

from .exceptions import (
    APIError,
    ConnectionError as TTConnectionError,
    RateLimitError,
    TimeoutError as TTTimeoutError,
    TransientError,
)
from .logger import get_logger

logger = get_logger(__name__)


class RetryConfig:
    """Configuration for retry behavior with exponential backoff."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 5.0,
        exponential_base: float = 2.0,
        retryable_exceptions: Tuple[Type[Exception], ...] = (TransientError,)
    ):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Maximum number of attempts (first call included)
            base_delay: Initial delay in seconds before first retry
            max_delay: Maximum delay in seconds between retries
            exponential_base: Base for exponential backoff calculation
            retryable_exceptions: Exception types that trigger a retry
        """
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.retryable_exceptions = retryable_exceptions

    def delay_for(self, attempt: int) -> float:
        return min(self.base_delay * (self.exponential_base ** attempt), self.max_delay)


def retry_with_exponential_backoff(
    config: RetryConfig = None,
    max_attempts: int = None,
    base_delay: float = None,
    max_delay: float = None,
    exponential_base: float = None,
    retryable_exceptions: Tuple[Type[Exception], ...] = None,
    sleep: Callable[[float], None] = None,
) -> Callable:
    """
    Decorator for automatic retry with exponential backoff.

    Can be used with a RetryConfig object or individual parameters.
    A `RateLimitError` carrying `retry_after` waits that long instead of the
    computed delay (still capped by `max_delay`).

    Example:
        @retry_with_exponential_backoff(max_attempts=3, base_delay=0.5)
        def search_nearby():
            ...
    """
    if config is None:
        config = RetryConfig(
            max_attempts=max_attempts or 3,
            base_delay=base_delay if base_delay is not None else 0.5,
            max_delay=max_delay or 5.0,
            exponential_base=exponential_base or 2.0,
            retryable_exceptions=retryable_exceptions or (TransientError,)
        )

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs):
            for attempt in range(config.max_attempts):
                try:
                    return func(*args, **kwargs)
                except config.retryable_exceptions as e:
                    if attempt == config.max_attempts - 1:
                        logger.error(
                            "retry_exhausted",
                            function=func.__name__,
                            attempts=config.max_attempts,
                            error=str(e),
                            error_type=type(e).__name__
                        )
                        raise

                    delay = config.delay_for(attempt)
                    if isinstance(e, RateLimitError) and e.retry_after is not None:
                        delay = min(float(e.retry_after), config.max_delay)

                    logger.warning(
                        "retry_attempt",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=config.max_attempts,
                        error=str(e),
                        error_type=type(e).__name__,
                        retry_delay_seconds=delay
                    )

                    (sleep or time.sleep)(delay)
                except Exception as e:
                    logger.error(
                        "non_retryable_error",
                        function=func.__name__,
                        error=str(e),
                        error_type=type(e).__name__
                    )
                    raise

        return wrapper
    return decorator


def raise_for_upstream_status(
    response: requests.Response,
    error_class: Type[APIError],
    service: str,
) -> None:
    """
    Translate a non-2xx upstream response into the exception hierarchy.

    429 -> RateLimitError, 5xx -> TransientError (both retried),
    other 4xx -> `error_class` (not retried).
    """
    status = response.status_code
    if 200 <= status < 300:
        return

    body = (response.text or "")[:500]
    context = {"service": service, "status": status, "body": body}

    if status == 429:
        retry_after = response.headers.get("Retry-After")
        raise RateLimitError(
            f"{service} rate limited",
            retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            context=context,
        )
    if status >= 500:
        raise TransientError(f"{service} unavailable (HTTP {status})", context=context)

    raise error_class(f"{service} rejected request (HTTP {status})", status_code=status, context=context)


def wrap_transport_errors(func: Callable) -> Callable:
    """Map requests' timeout/connection exceptions onto retryable errors."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except requests.exceptions.Timeout as e:
            raise TTTimeoutError(f"Upstream timeout in {func.__name__}", context={"error": str(e)}) from e
        except requests.exceptions.ConnectionError as e:
            raise TTConnectionError(f"Upstream connection failed in {func.__name__}", context={"error": str(e)}) from e
    return wrapper
