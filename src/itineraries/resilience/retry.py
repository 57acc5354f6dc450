"""Resilient outbound call decorator with tenacity retry.

Retries a bounded number of times with exponential backoff and jitter, logs a
warning before each retry and an error on final failure, then re-raises the
last exception so the caller decides whether to swallow it.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, TypeVar

import structlog
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)
from tenacity.wait import wait_base

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


def _always(_exc: BaseException) -> bool:
    return True


def resilient_call(
    operation: str,
    *,
    attempts: int = 3,
    wait: wait_base | None = None,
    retry_if: Callable[[BaseException], bool] | None = None,
) -> Callable[[F], F]:
    """Create a retry decorator for an outbound call.

    Returns a tenacity retry decorator configured with:
    - *attempts* attempts maximum (default 3)
    - Exponential backoff with jitter (0.5s initial, 5s max, 1s jitter) unless
      *wait* overrides it
    - Warning log before each retry, error log after the final attempt
    - Original exception re-raised after exhaustion

    Args:
        operation: Human-readable name for the call (used in logs).
        attempts: Maximum number of attempts.
        wait: Tenacity wait strategy override.
        retry_if: Predicate selecting which exceptions are retried; all are
            retried by default.

    Returns:
        A decorator that wraps the function with retry logic.
    """

    def before_sleep(retry_state: RetryCallState) -> None:
        logger.warning(
            "Retrying outbound call",
            operation=operation,
            attempt=retry_state.attempt_number,
            wait=retry_state.next_action.sleep if retry_state.next_action else 0,
        )

    def on_final_failure(retry_state: RetryCallState) -> Any:
        exception = retry_state.outcome.exception() if retry_state.outcome else None
        logger.error(
            "Outbound call failed after all retries",
            operation=operation,
            attempts=retry_state.attempt_number,
            exception=str(exception),
        )
        if retry_state.outcome is None:
            return None
        return retry_state.outcome.result()

    def decorator(func: F) -> F:
        wrapped = retry(
            stop=stop_after_attempt(attempts),
            wait=wait or wait_exponential_jitter(initial=0.5, max=5, jitter=1),
            retry=retry_if_exception(retry_if or _always),
            before_sleep=before_sleep,
            retry_error_callback=on_final_failure,
            reraise=True,
        )(func)
        return wrapped  # type: ignore[no-any-return]

    return decorator
