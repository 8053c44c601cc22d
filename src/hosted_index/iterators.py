"""Lazy iteration over paginated endpoints.

One generic ``CursorIterator`` drives every paginated resource. What
differs per resource (endpoint, request shape, how the next cursor is
read from the response) lives in a small page-fetch adapter.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Iterator

from .cancellation import Cancellation
from .options import RequestOptions, resolve

if TYPE_CHECKING:
    from .transport import ApiWrapper

_LOGGER = logging.getLogger(__name__)


@dataclass
class Page:
    """One page of records and the cursor for the page after it (None on the last)."""

    records: list[dict] = field(default_factory=list)
    next_cursor: Any = None


PageFetcher = Callable[[str, Any, RequestOptions], Page]


class CursorIterator(Iterator[dict]):
    """Flat, lazy stream of records over a paginated resource.

    A page is fetched only when the caller asks for a record and the current
    page is used up. Only one page is held in memory. Once exhausted, or once
    a fetch fails, the iterator stays exhausted; build a new one to browse
    again.

    Args:
        resource_name: Passed through to ``page_fetcher`` (the index name).
        page_fetcher: ``(resource_name, cursor, options) -> Page``. The cursor
            is ``start_cursor`` on the first call and the previous page's
            ``next_cursor`` afterwards.
        options: Request options handed to every fetch.
        start_cursor: Where to resume; None starts from the beginning.
        cancellation: Checked before every page fetch.
    """

    def __init__(
        self,
        resource_name: str,
        page_fetcher: PageFetcher,
        options: RequestOptions | None = None,
        start_cursor: Any = None,
        cancellation: Cancellation | None = None,
    ) -> None:
        self._resource_name = resource_name
        self._fetch_page = page_fetcher
        self._options = resolve(options)
        self._cursor = start_cursor
        self._cancellation = cancellation
        self._records: list[dict] = []
        self._position = 0
        self._started = False
        self._exhausted = False
        self.pages_fetched = 0

    def __iter__(self) -> CursorIterator:
        return self

    def __next__(self) -> dict:
        while self._position >= len(self._records):
            if self._exhausted or (self._started and self._cursor is None):
                self._exhausted = True
                self._records = []
                self._position = 0
                raise StopIteration
            self._load_next_page()

        record = self._records[self._position]
        self._position += 1
        return record

    def _load_next_page(self) -> None:
        try:
            if self._cancellation is not None:
                self._cancellation.check()
            page = self._fetch_page(self._resource_name, self._cursor, self._options)
        except Exception:
            self._exhausted = True
            raise

        self._started = True
        self.pages_fetched += 1
        _LOGGER.debug(
            "Fetched page %d of %s (cursor=%r, %d record(s))",
            self.pages_fetched,
            self._resource_name,
            self._cursor,
            len(page.records),
        )
        self._records = list(page.records)
        self._position = 0
        self._cursor = page.next_cursor


# --- Page-fetch adapters ---


def object_page_fetcher(api: ApiWrapper, path_for: Callable[[str, str], str]) -> PageFetcher:
    """Objects: POST .../browse, continued with the opaque ``cursor`` token."""

    def fetch(index_name: str, cursor: Any, options: RequestOptions) -> Page:
        request = options.merged(body={"cursor": cursor} if cursor is not None else {})
        response = api.read("POST", path_for(index_name, "browse"), request)
        return Page(records=list(response.get("hits", [])), next_cursor=response.get("cursor"))

    return fetch


def search_page_fetcher(
    api: ApiWrapper,
    path_for: Callable[[str, str], str],
    endpoint: str,
    hits_per_page: int,
) -> PageFetcher:
    """Rules and synonyms: POST .../search, continued by page number.

    The next page exists while ``(page + 1) * hitsPerPage < nbHits``; without
    ``nbHits`` a full page is taken to mean there may be more.
    """

    def fetch(index_name: str, cursor: Any, options: RequestOptions) -> Page:
        page_number = cursor or 0
        request = options.merged(body={"query": "", "hitsPerPage": hits_per_page})
        request.body["page"] = page_number
        response = api.read("POST", path_for(index_name, endpoint), request)

        hits = [_strip_highlight(hit) for hit in response.get("hits", [])]
        per_page = request.body["hitsPerPage"]
        total = response.get("nbHits")
        if not hits:
            next_cursor = None
        elif total is not None:
            next_cursor = page_number + 1 if (page_number + 1) * per_page < total else None
        else:
            next_cursor = page_number + 1 if len(hits) >= per_page else None
        return Page(records=hits, next_cursor=next_cursor)

    return fetch


def _strip_highlight(hit: dict) -> dict:
    return {key: value for key, value in hit.items() if key != "_highlightResult"}
