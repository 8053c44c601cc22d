"""Shared fixtures: an in-memory stand-in for the request layer."""

from dataclasses import dataclass
from typing import Any, Callable

import pytest

from hosted_index.options import RequestOptions


@dataclass
class Call:
    kind: str  # "read" or "write"
    method: str
    path: str
    body: Any
    options: RequestOptions | None


class FakeApi:
    """Records every call. Answers from per-route queues, then from ``responder``.

    A queued Exception is raised instead of returned. The last queued item for
    a route is repeated once the queue is down to one.
    """

    def __init__(self, responder: Callable[[Call], Any] | None = None) -> None:
        self.calls: list[Call] = []
        self.closed = False
        self._routes: dict[tuple[str, str], list[Any]] = {}
        self._responder = responder

    def queue(self, method: str, path: str, *responses: Any) -> None:
        self._routes.setdefault((method, path), []).extend(responses)

    def read(self, method, path, options=None):
        return self._answer(Call("read", method, path, None, options))

    def write(self, method, path, body=None, options=None):
        return self._answer(Call("write", method, path, body, options))

    def close(self):
        self.closed = True

    def paths(self) -> list[str]:
        return [call.path for call in self.calls]

    def _answer(self, call: Call) -> Any:
        self.calls.append(call)
        queued = self._routes.get((call.method, call.path))
        if queued:
            item = queued.pop(0) if len(queued) > 1 else queued[0]
        elif self._responder is not None:
            item = self._responder(call)
        else:
            item = {}
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture
def api():
    return FakeApi()
