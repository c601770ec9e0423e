"""Retry helper for backup disk handles.

Network-backed handles wrap their object-store calls with ``with_retry`` so
transient endpoint failures do not surface on the first hiccup. Disk
resolution itself is never retried.

Implementation: Uses tenacity library internally.
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type, TypeVar

import tenacity
from tenacity.wait import wait_base

logger = logging.getLogger(__name__)

__all__ = ["with_retry"]

F = TypeVar("F", bound=Callable[..., Any])


def with_retry(
    max_attempts: int = 3,
    backoff_seconds: float = 0.5,
    exponential: bool = True,
    jitter: bool = True,
    retry_exceptions: Optional[Tuple[Type[BaseException], ...]] = None,
) -> Callable[[F], F]:
    """Retry decorator for flaky operations.

    Args:
        max_attempts: Maximum number of attempts (default 3)
        backoff_seconds: Base delay between attempts (default 0.5)
        exponential: Use exponential backoff (default True)
        jitter: Add random jitter to backoff (default True)
        retry_exceptions: Only retry on these exceptions (default: all)

    Example:
        @with_retry(max_attempts=5, retry_exceptions=(EndpointConnectionError,))
        def upload():
            client.put_object(...)
    """
    wait_strategy: wait_base
    if exponential:
        wait_strategy = tenacity.wait_exponential(multiplier=backoff_seconds, min=backoff_seconds)
    else:
        wait_strategy = tenacity.wait_fixed(backoff_seconds)

    if jitter:
        wait_strategy = wait_strategy + tenacity.wait_random(0, backoff_seconds * 0.5)

    retry_condition = tenacity.retry_if_exception_type(retry_exceptions or Exception)

    def decorator(fn: F) -> F:
        fn_logger = logging.getLogger(fn.__module__)

        def before_sleep_handler(retry_state: tenacity.RetryCallState) -> None:
            exception = retry_state.outcome.exception() if retry_state.outcome else None
            fn_logger.warning(
                "Attempt %d/%d of %s failed: %s. Retrying in %.1fs...",
                retry_state.attempt_number,
                max_attempts,
                fn.__name__,
                exception,
                retry_state.next_action.sleep if retry_state.next_action else 0,
            )

        retrying = tenacity.retry(
            stop=tenacity.stop_after_attempt(max_attempts),
            wait=wait_strategy,
            retry=retry_condition,
            before_sleep=before_sleep_handler,
            reraise=True,
        )(fn)

        @wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            return retrying(*args, **kwargs)

        return wrapper  # type: ignore

    return decorator
