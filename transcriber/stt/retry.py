"""
transcriber/stt/retry.py
=========================
Shared retry utility for transcription providers — Transcriber

Wraps a single provider request and retries it on transient failures
(429 rate-limit, 5xx server errors, connection errors and timeouts) with
exponential back-off.

Usage in a provider::

    from transcriber.stt.retry import call_with_retry

    text = call_with_retry(self._post_transcription, container)

Retries happen only here, inside a provider call. The pipeline itself
never retries a failed segment.
"""

import logging
import time
from typing import Any, Callable, TypeVar

logger = logging.getLogger("transcriber.stt.retry")

T = TypeVar("T")

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

MAX_RETRIES: int = 3          # total attempts = MAX_RETRIES + 1 (initial)
BASE_DELAY: float = 1.0       # seconds, first back-off delay
MAX_DELAY: float = 30.0       # cap so we don't wait forever
BACKOFF_FACTOR: float = 2.0   # exponential multiplier

# HTTP status codes worth retrying on
_RETRYABLE_STATUS_CODES: set[int] = {429, 500, 502, 503, 504}

# SDK / transport exception class names that are always transient
_RETRYABLE_EXCEPTION_NAMES: set[str] = {
    "RateLimitError",
    "APITimeoutError",
    "APIConnectionError",
    "ConnectionError",
    "ConnectTimeout",
    "ReadTimeout",
    "Timeout",
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def is_retryable(exc: Exception) -> bool:
    """Return True if the exception looks like a transient provider error."""
    if getattr(exc, "transient", False):
        return True

    if type(exc).__name__ in _RETRYABLE_EXCEPTION_NAMES:
        return True

    status_code = getattr(exc, "status_code", None)
    if status_code is not None:
        return status_code in _RETRYABLE_STATUS_CODES

    return False


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def call_with_retry(
    func: Callable[..., T],
    *args: Any,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY,
    **kwargs: Any,
) -> T:
    """
    Call ``func(*args, **kwargs)`` with automatic retry.

    Non-retryable errors are re-raised immediately; the last exception is
    re-raised once retries are exhausted.
    """
    delay = base_delay

    for attempt in range(max_retries + 1):
        try:
            return func(*args, **kwargs)
        except Exception as exc:
            if not is_retryable(exc):
                logger.warning("Provider call failed with non-retryable error: %s", exc)
                raise

            if attempt >= max_retries:
                logger.error(
                    "Provider call failed after %d attempts: %s", max_retries + 1, exc,
                )
                raise

            logger.warning(
                "Provider call failed (attempt %d/%d): %s; retrying in %.1fs",
                attempt + 1, max_retries + 1, exc, delay,
            )
            time.sleep(delay)
            delay = min(delay * BACKOFF_FACTOR, MAX_DELAY)

    raise AssertionError("unreachable")  # pragma: no cover
