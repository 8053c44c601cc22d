"""Client for a hosted search index: searching, writes, task polling and lazy browsing."""

from .batch import OperationTag, build_batch
from .cancellation import Cancellation
from .client import SearchClient
from .config import Config
from .errors import (
    ApiError,
    ConfigurationError,
    IndexClientError,
    InvalidInputError,
    OperationCancelled,
    TaskTimeoutError,
    TransportError,
)
from .index import SearchIndex
from .iterators import CursorIterator, Page
from .options import RequestOptions

__all__ = [
    "ApiError",
    "Cancellation",
    "Config",
    "ConfigurationError",
    "CursorIterator",
    "IndexClientError",
    "InvalidInputError",
    "OperationCancelled",
    "OperationTag",
    "Page",
    "RequestOptions",
    "SearchClient",
    "SearchIndex",
    "TaskTimeoutError",
    "TransportError",
    "build_batch",
]
