"""
Bounded retry for storage calls.

Only transient storage errors are retried; every other error
propagates on the first attempt.
"""

import logging
from typing import Callable, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from changeit.domain.exchange.errors import TransientStorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_DELAY_SECONDS = 0.01
MAX_DELAY_SECONDS = 0.25


def call_with_retry(
    operation: Callable[[], T],
    *,
    attempts: int,
    description: str,
    base_delay: float = BASE_DELAY_SECONDS,
    max_delay: float = MAX_DELAY_SECONDS,
) -> T:
    """Run ``operation``, retrying transient storage failures.

    Args:
        operation: Zero-argument callable performing one storage step.
        attempts: Total attempts, at least 1.
        description: Step name used in log messages.
        base_delay: First back-off delay in seconds.
        max_delay: Upper bound for the exponential back-off.

    Returns:
        Whatever ``operation`` returns.

    Raises:
        TransientStorageError: If every attempt failed transiently.
    """
    if attempts < 1:
        raise ValueError("attempts must be at least 1")

    def log_retry(retry_state: RetryCallState) -> None:
        logger.warning(
            "%s failed transiently (attempt %d/%d): %s",
            description,
            retry_state.attempt_number,
            attempts,
            retry_state.outcome.exception(),
        )

    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base_delay, max=max_delay),
        retry=retry_if_exception_type(TransientStorageError),
        before_sleep=log_retry,
        reraise=True,
    )
    try:
        return retrying(operation)
    except TransientStorageError as exc:
        logger.error("%s failed after %d attempt(s): %s", description, attempts, exc.message)
        raise
