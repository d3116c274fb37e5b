"""
Error handling utilities for the itinerary pipeline.

This module provides the exception taxonomy shared by every pipeline stage,
the bounded retry executor used around unreliable external calls, and a
classifier that decides whether a failure is worth retrying.
"""

import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, TypeVar, cast

from loguru import logger
from tenacity import (
    AsyncRetrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

# Type variables for function decorator typing
F = TypeVar("F", bound=Callable[..., Awaitable[Any]])
T = TypeVar("T")

MAX_RETRY_DELAY_MS = 10_000


class PipelineError(Exception):
    """Base exception class for all itinerary pipeline errors."""

    def __init__(self, message: str, original_error: Exception | None = None):
        """
        Initialize a PipelineError.

        Args:
            message: Error message
            original_error: The original exception that caused this error (optional)
        """
        self.original_error = original_error
        if original_error:
            message = f"{message} - Original error: {original_error!s}"
        super().__init__(message)


class AuthenticationRequired(PipelineError):
    """Raised when no caller identity can be resolved for a request."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


class ValidationError(PipelineError):
    """Error raised when a request payload fails schema validation."""

    def __init__(self, field_errors: dict[str, list[str]], message: str | None = None):
        """
        Initialize a ValidationError.

        Args:
            field_errors: Mapping of field name to the violation messages for it
            message: Optional summary message
        """
        self.field_errors = field_errors
        summary = "; ".join(
            f"{name}: {', '.join(errors)}" for name, errors in field_errors.items()
        )
        super().__init__(message or f"Invalid request payload ({summary})")


class InsufficientCreditsError(PipelineError):
    """Error raised when the caller has no remaining usage for the service."""

    def __init__(self, required: int, remaining: int, service: str):
        self.required = required
        self.remaining = remaining
        self.service = service
        super().__init__(
            f"Insufficient credits for {service}: "
            f"required {required}, remaining {remaining}"
        )


class SampleItineraryMissingError(PipelineError):
    """Raised when composition runs without retrieval's sample itinerary."""

    def __init__(
        self,
        message: str = (
            "Sample itinerary missing from retrieval metadata; "
            "retrieval must run before composition"
        ),
    ):
        super().__init__(message)


class GenerationFailure(PipelineError):
    """Error raised when the text-generation model fails to produce output."""

    def __init__(
        self,
        message: str,
        retryable: bool = True,
        original_error: Exception | None = None,
    ):
        self.retryable = retryable
        super().__init__(message, original_error)


class ParsingFailure(PipelineError):
    """Error raised when model output cannot be turned into a JSON value."""

    pass


class UpstreamTimeout(PipelineError):
    """Error raised when an upstream call or the whole run exceeds its deadline."""

    pass


class UnknownStageFailure(PipelineError):
    """Error raised when a stage fails for a reason outside the taxonomy."""

    pass


class RetrievalNotConfiguredError(PipelineError):
    """Raised when the retrieval stage has no activity retriever to call."""

    def __init__(self, message: str = "Activity retriever is not configured"):
        super().__init__(message)


class APIError(PipelineError):
    """Error raised when an external API request fails."""

    def __init__(
        self,
        message: str,
        service_name: str,
        status_code: int | None = None,
        original_error: Exception | None = None,
    ):
        """
        Initialize an APIError.

        Args:
            message: Error message
            service_name: Name of the API service
            status_code: HTTP status code (optional)
            original_error: The original exception that caused this error (optional)
        """
        self.service_name = service_name
        self.status_code = status_code
        status_str = f" (status: {status_code})" if status_code else ""
        full_message = f"Error in {service_name} API{status_str}: {message}"
        super().__init__(full_message, original_error)


class SessionNotFoundError(PipelineError):
    """Raised when a session id is not present in the store."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session not found: {session_id}")


class InvalidStatusTransitionError(PipelineError):
    """Raised when a status update would move a session backwards."""

    def __init__(self, session_id: str, current: str, requested: str):
        self.session_id = session_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Invalid status transition for session {session_id}: "
            f"{current} -> {requested}"
        )


class SessionWriteConflictError(PipelineError):
    """Raised when a write-once session field is written a second time."""

    def __init__(self, session_id: str, field_name: str):
        self.session_id = session_id
        self.field_name = field_name
        super().__init__(
            f"Session {session_id} already has '{field_name}' written"
        )


class SessionBusyError(PipelineError):
    """Raised when a second run is started for a session that is already active."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session {session_id} is already being processed")


@dataclass(frozen=True)
class ErrorDetails:
    """Classification of an exception."""

    type: str
    message: str
    retryable: bool


_RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}


def classify_error(error: BaseException) -> ErrorDetails:
    """
    Classify an exception by type, status code and message.

    Args:
        error: Exception to classify

    Returns:
        ErrorDetails describing the failure and whether it may be retried
    """
    message = str(error)
    lowered = message.lower()

    if isinstance(error, GenerationFailure):
        return ErrorDetails("generation", message, error.retryable)

    if isinstance(error, ValidationError):
        return ErrorDetails("validation", message, False)

    if isinstance(error, AuthenticationRequired):
        return ErrorDetails("auth", message, False)

    if isinstance(error, InsufficientCreditsError):
        return ErrorDetails("insufficient_credits", message, False)

    if isinstance(error, UpstreamTimeout | TimeoutError):
        return ErrorDetails("timeout", message or "Request timed out", True)

    if isinstance(error, ConnectionError):
        return ErrorDetails("network", message, True)

    status = getattr(error, "status_code", None) or getattr(error, "code", None)
    if isinstance(status, int):
        if status == 429:
            return ErrorDetails("rate_limit", message, True)
        if status in (401, 403):
            return ErrorDetails("auth", message, False)
        if status in _RETRYABLE_STATUS_CODES:
            return ErrorDetails("upstream", message, True)
        if 400 <= status < 500:
            return ErrorDetails("client", message, False)

    if "api key" in lowered or "api_key" in lowered or "permission" in lowered:
        return ErrorDetails("auth", message, False)
    if "rate limit" in lowered or "quota" in lowered or "resource exhausted" in lowered:
        return ErrorDetails("rate_limit", message, True)
    if "timeout" in lowered or "timed out" in lowered or "deadline" in lowered:
        return ErrorDetails("timeout", message, True)
    if (
        "unavailable" in lowered
        or "overloaded" in lowered
        or "network" in lowered
        or "connection" in lowered
    ):
        return ErrorDetails("network", message, True)
    if isinstance(error, ParsingFailure) or "json" in lowered:
        return ErrorDetails("parsing", message, True)

    return ErrorDetails("unknown", message, False)


def is_retryable(error: BaseException) -> bool:
    """Return True if the classifier considers the error transient."""
    return classify_error(error).retryable


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_attempts: int = 3,
    base_delay_ms: int = 1000,
    *,
    retry_if: Callable[[BaseException], bool] | None = None,
) -> T:
    """
    Run an async operation, retrying it with exponential back-off on failure.

    The first retry waits ``base_delay_ms`` and each later wait doubles, capped
    at ten seconds. When every attempt fails the last exception is raised
    unchanged.

    Args:
        operation: Zero-argument callable returning an awaitable
        max_attempts: Maximum number of attempts (at least one)
        base_delay_ms: Delay before the first retry in milliseconds
        retry_if: Optional predicate; exceptions for which it returns False
            propagate immediately

    Returns:
        Result of the first successful attempt
    """
    base_seconds = base_delay_ms / 1000
    predicate = retry_if or (lambda _: True)

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(max(1, max_attempts)),
        wait=wait_exponential(
            multiplier=base_seconds,
            min=base_seconds,
            max=max(base_seconds, MAX_RETRY_DELAY_MS / 1000),
        ),
        retry=retry_if_exception(predicate),
        before_sleep=_log_retry,
        reraise=True,
    ):
        with attempt:
            return await operation()

    # AsyncRetrying either returns from the block above or re-raises
    raise AssertionError("unreachable")


def _log_retry(retry_state) -> None:
    error = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        f"Attempt {retry_state.attempt_number} failed: {error!s}. Retrying."
    )


def retrying(
    max_attempts: int = 3,
    base_delay_ms: int = 1000,
    retry_if: Callable[[BaseException], bool] | None = None,
) -> Callable[[F], F]:
    """
    Decorator form of :func:`with_retry` for async functions.

    Args:
        max_attempts: Maximum number of attempts
        base_delay_ms: Delay before the first retry in milliseconds
        retry_if: Optional predicate selecting which exceptions are retried

    Returns:
        Decorated function
    """

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            return await with_retry(
                lambda: func(*args, **kwargs),
                max_attempts=max_attempts,
                base_delay_ms=base_delay_ms,
                retry_if=retry_if,
            )

        return cast(F, wrapper)

    return decorator
