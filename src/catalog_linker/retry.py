"""Retry helper for writes at the persistence boundary."""

import logging
import time
from typing import Callable, Tuple, Type, TypeVar

from catalog_linker.errors import PersistenceWriteFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _should_retry(attempt: int, retries: int) -> bool:
    return attempt < retries - 1


def _sleep_for_retry(delay: float, attempt: int) -> None:
    time.sleep(delay * (attempt + 1))


def call_with_retry(
    func: Callable[..., T],
    *args,
    retries: int = 3,
    delay: float = 0.1,
    retry_on: Tuple[Type[BaseException], ...] = (PersistenceWriteFailure,),
    **kwargs,
) -> T:
    """
    Call func, retrying on `retry_on` errors with linear backoff.

    `retries` is the total number of attempts. The last error is re-raised
    once attempts are exhausted; other exception types propagate immediately.
    """
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except retry_on as exc:
            if not _should_retry(attempt, retries):
                raise
            logger.warning("Attempt %d/%d failed: %s; retrying", attempt + 1, retries, exc)
            _sleep_for_retry(delay, attempt)
            attempt += 1
