"""
Resilience Infrastructure.

Retry policy and structured retry logging for backend requests.

Only transport-level failures (connection resets, timeouts, DNS errors) are
retried, and for non-idempotent methods only those raised before the request
was sent. A backend that answers with a non-200 status has answered, and the
failure is reported to the caller as-is.

Usage:
    from hastily.core.resilience import create_retrying

    async for attempt in create_retrying(attempts=3):
        with attempt:
            response = await client.request(...)
"""

from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from hastily.core.logging import get_logger

logger = get_logger(__name__)

RETRYABLE_ERRORS = (httpx.TransportError,)

# Failures where the request never reached the backend; safe to resend anything.
UNSENT_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout)

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "OPTIONS", "PUT", "DELETE"})


def retryable_errors(method: str) -> tuple[type[Exception], ...]:
    """Transport errors worth retrying for a request method.

    A non-idempotent request (POST) that failed after being sent may already
    have taken effect, so it is only resent when it never left the client.
    """
    if method.upper() in IDEMPOTENT_METHODS:
        return RETRYABLE_ERRORS
    return UNSENT_ERRORS


def log_retry(retry_state: Any) -> None:
    """Tenacity before_sleep callback that emits structured retry events.

    Args:
        retry_state: tenacity.RetryCallState instance
    """
    duration_ms = None
    if retry_state.outcome_timestamp and retry_state.start_time:
        duration_ms = round(
            (retry_state.outcome_timestamp - retry_state.start_time) * 1000
        )

    error = None
    if retry_state.outcome and retry_state.outcome.failed:
        error = str(retry_state.outcome.exception())

    fn_name = getattr(retry_state.fn, "__name__", "request")

    logger.warning(
        f"Retrying {fn_name} (attempt {retry_state.attempt_number})",
        resilience_event="retry_attempt",
        dependency=fn_name,
        attempt=retry_state.attempt_number,
        duration_ms=duration_ms,
        error=error,
    )


def create_retrying(
    attempts: int = 3,
    min_wait: float = 0.5,
    max_wait: float = 5.0,
    retry_on: tuple[type[Exception], ...] = RETRYABLE_ERRORS,
) -> AsyncRetrying:
    """Create an async retry controller for transport-level failures.

    Args:
        attempts: Total attempts including the first one
        min_wait: Lower bound of the exponential backoff, in seconds
        max_wait: Upper bound of the exponential backoff, in seconds
        retry_on: Exception types that trigger another attempt

    Returns:
        Configured AsyncRetrying instance; the last error is re-raised
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_exception_type(retry_on),
        before_sleep=log_retry,
        reraise=True,
    )
