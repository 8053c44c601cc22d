"""Turn records into tagged batch entries."""

from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Mapping

from .errors import InvalidInputError

OBJECT_ID = "objectID"


class OperationTag(Enum):
    ADD_OBJECT = "addObject"
    PARTIAL_UPDATE_OBJECT_NO_CREATE = "partialUpdateObjectNoCreate"
    PARTIAL_UPDATE_OBJECT = "partialUpdateObject"
    DELETE_OBJECT = "deleteObject"


def ensure_object_ids(records: Iterable[Mapping[str, Any]], kind: str = "objects") -> None:
    """Raise InvalidInputError unless every record carries an objectID."""
    missing = [position for position, record in enumerate(records) if OBJECT_ID not in record]
    if missing:
        raise InvalidInputError(
            f"All {kind} must have a unique {OBJECT_ID} (like a primary key) to be valid; "
            f"missing at position(s) {missing}"
        )


def build_batch(
    records: Iterable[Mapping[str, Any]],
    operation: OperationTag,
    kind: str = "objects",
) -> list[dict[str, Any]]:
    """Build one ``{"action", "body"}`` entry per record, in input order.

    Bodies are the records themselves, not copies. An empty list gives an
    empty batch.
    """
    records = list(records)
    ensure_object_ids(records, kind)
    return [{"action": operation.value, "body": record} for record in records]
