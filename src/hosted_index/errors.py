"""Exception types raised by the client."""

from __future__ import annotations


class IndexClientError(Exception):
    """Base class for every error raised by hosted_index."""


class ConfigurationError(IndexClientError):
    """Missing credentials or an unusable setting."""


class InvalidInputError(IndexClientError):
    """A local precondition failed. Raised before any request is sent."""


class TransportError(IndexClientError):
    """The request never produced an HTTP response (network failure, timeout)."""


class ApiError(IndexClientError):
    """The server answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class TaskTimeoutError(IndexClientError):
    """A task was still unpublished when the polling budget ran out.

    Raise the budget or poll again later. A task that failed server-side
    looks the same from here: the status endpoint only reports published
    or not.
    """

    def __init__(self, task_id: int | str, attempts: int) -> None:
        super().__init__(f"Task {task_id} was not published after {attempts} attempt(s)")
        self.task_id = task_id
        self.attempts = attempts


class OperationCancelled(IndexClientError):
    """A poll or browse stopped because its cancellation fired or its deadline passed."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason
