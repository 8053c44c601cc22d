"""Poll asynchronous write tasks until the server publishes them."""

from __future__ import annotations

import logging
import math
import time
from typing import Any, Callable

from .cancellation import Cancellation
from .errors import InvalidInputError, TaskTimeoutError
from .options import RequestOptions

_LOGGER = logging.getLogger(__name__)

PUBLISHED = "published"

StatusFetcher = Callable[[Any, RequestOptions | None], dict]


def backoff_delay(attempt: int) -> float:
    """Seconds to sleep after a pending answer on ``attempt`` (1-based).

    100ms for attempts 1-10, 200ms for 11-20, 300ms for 21-30, and so on.
    """
    return math.ceil(attempt / 10) * 0.1


def is_published(status: dict) -> bool:
    return status.get("status") == PUBLISHED


def wait_for_completion(
    task_id: Any,
    fetch_status: StatusFetcher,
    max_attempts: int,
    options: RequestOptions | None = None,
    *,
    cancellation: Cancellation | None = None,
    sleep: Callable[[float], None] | None = None,
) -> dict:
    """Fetch the task status until it is published.

    Issues at most ``max_attempts`` fetches, sleeping ``backoff_delay(n)``
    between attempt n and n + 1. Errors from ``fetch_status`` propagate as-is.

    Returns:
        The status payload that reported the task as published.

    Raises:
        TaskTimeoutError: the budget ran out first.
        OperationCancelled: ``cancellation`` fired between round trips.
    """
    if max_attempts < 1:
        raise InvalidInputError(f"max_attempts must be at least 1, got {max_attempts}")
    if sleep is None:
        sleep = time.sleep

    attempt = 1
    while True:
        if cancellation is not None:
            cancellation.check()

        status = fetch_status(task_id, options)
        if is_published(status):
            _LOGGER.info("Task %s published after %d attempt(s)", task_id, attempt)
            return status

        if attempt >= max_attempts:
            _LOGGER.warning("Task %s still pending after %d attempt(s)", task_id, attempt)
            raise TaskTimeoutError(task_id, attempt)

        delay = backoff_delay(attempt)
        _LOGGER.debug("Task %s pending (attempt %d), sleeping %.1fs", task_id, attempt, delay)
        if cancellation is not None:
            cancellation.check()
        sleep(delay)
        attempt += 1
