"""
Bounded retry for transient store faults.

Only TransientStoreError is retried. Once the backoff schedule is used up
the last fault surfaces as InviteUnavailableError; every other error
propagates untouched on the first attempt.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import TypeVar

from friendlink.domain.errors import InviteUnavailableError, TransientStoreError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_BACKOFF_SECONDS: tuple[float, ...] = (0.05, 0.2, 0.5)


def call_with_retry(
    op_name: str,
    fn: Callable[[], T],
    backoff_seconds: Sequence[float] = DEFAULT_BACKOFF_SECONDS,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run fn, retrying transient faults once per backoff delay."""
    attempt = 0
    while True:
        try:
            return fn()
        except TransientStoreError as e:
            if attempt >= len(backoff_seconds):
                logger.error("Store %s failed after %d attempts: %s", op_name, attempt + 1, e)
                raise InviteUnavailableError(f"Store unavailable during {op_name}") from e
            delay = backoff_seconds[attempt]
            attempt += 1
            logger.warning(
                "Store %s transient failure (attempt %d), retrying in %.2fs: %s",
                op_name,
                attempt,
                delay,
                e,
            )
            sleep(delay)
