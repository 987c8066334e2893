"""
Caller-side retry for SQLite lock contention.

The workflow core never retries: a failed transaction rolls back and the
error reaches the caller. Callers that want to absorb "database is locked"
errors (the CLI does) wrap the whole operation with retry_on_sqlite_lock, so
each attempt is a fresh transaction.
"""

import sqlite3
from collections.abc import Callable
from typing import TypeVar

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from design_pipeline.kernel.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def is_lock_contention(error: BaseException) -> bool:
    """True for the OperationalError SQLite raises when the busy timeout ran out"""
    return isinstance(error, sqlite3.OperationalError) and "locked" in str(error).lower()


def retry_on_sqlite_lock(
    max_attempts: int = 3,
    min_wait_ms: int = 100,
    max_wait_ms: int = 1000,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Retry decorator for SQLite lock contention.

    Other OperationalErrors (missing table, disk I/O) are not retried.

    Args:
        max_attempts: Maximum number of attempts
        min_wait_ms: Minimum backoff in milliseconds
        max_wait_ms: Maximum backoff in milliseconds
    """
    return retry(
        retry=retry_if_exception(is_lock_contention),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=min_wait_ms / 1000.0,
            max=max_wait_ms / 1000.0,
        ),
        before_sleep=lambda retry_state: logger.warning(
            "SQLite lock detected, retrying",
            attempt=retry_state.attempt_number,
            exception=str(retry_state.outcome.exception()) if retry_state.outcome else None,
        ),
        reraise=True,
    )
