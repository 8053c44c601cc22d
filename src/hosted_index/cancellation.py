"""Cooperative cancellation for polling and browsing loops."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable

from .errors import OperationCancelled


@dataclass
class Cancellation:
    """A cancel signal and/or a deadline, checked between round trips.

    Loops call ``check()`` before each fetch and before each sleep. Another
    thread may call ``cancel()`` at any time; the loop stops at its next
    check.
    """

    deadline: float | None = None  # value of ``clock()`` after which to stop
    clock: Callable[[], float] = time.monotonic
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def after(cls, seconds: float, clock: Callable[[], float] = time.monotonic) -> Cancellation:
        return cls(deadline=clock() + seconds, clock=clock)

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self) -> None:
        """Raise OperationCancelled if cancelled or past the deadline."""
        if self._event.is_set():
            raise OperationCancelled("cancelled")
        if self.deadline is not None and self.clock() >= self.deadline:
            raise OperationCancelled("deadline exceeded")
