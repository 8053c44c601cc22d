"""Per-request options layered over endpoint defaults."""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any


@dataclass
class RequestOptions:
    """Extra query parameters, body parameters and headers for one call.

    Endpoints layer these over their own defaults with ``merged``; a value
    set here always wins over the endpoint's default for the same key.
    """

    query: dict[str, Any] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)
    headers: dict[str, str] = field(default_factory=dict)
    timeout: float | None = None  # overrides the transport timeout when set

    def set_query_parameter(self, name: str, value: Any) -> RequestOptions:
        self.query[name] = value
        return self

    def set_body_parameter(self, name: str, value: Any) -> RequestOptions:
        self.body[name] = value
        return self

    def set_header(self, name: str, value: str) -> RequestOptions:
        self.headers[name] = value
        return self

    def merged(
        self,
        query: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> RequestOptions:
        """Return a copy of these options on top of the given defaults."""
        return RequestOptions(
            query={**(query or {}), **self.query},
            body={**(body or {}), **copy.deepcopy(self.body)},
            headers=dict(self.headers),
            timeout=self.timeout,
        )

    def without_body_parameter(self, name: str) -> tuple[RequestOptions, Any]:
        """Split one body parameter out. Returns (remaining options, value or None)."""
        remaining = self.merged()
        value = remaining.body.pop(name, None)
        return remaining, value


def resolve(options: RequestOptions | None) -> RequestOptions:
    """Normalize an optional argument to a fresh RequestOptions."""
    if options is None:
        return RequestOptions()
    return options.merged()
