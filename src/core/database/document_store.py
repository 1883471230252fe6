"""Document store abstraction.

Services talk to a ``DocumentStore``: named collections of schemaless
documents with single-field equality/membership filters, ordering, cursor
pagination and atomic field transforms. Two implementations exist:
``InMemoryDocumentStore`` (development and tests) and
``FirestoreDocumentStore``.
"""

import base64
import binascii
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Protocol

from src.core.errors import ValidationError


FilterOp = Literal["==", "in", "array-contains"]
Filter = tuple[str, FilterOp, Any]

SUPPORTED_OPS: frozenset[str] = frozenset({"==", "in", "array-contains"})


class _ServerTimestamp:
    """Placeholder resolved to the store's clock when the write is applied."""

    _instance: "_ServerTimestamp | None" = None

    def __new__(cls) -> "_ServerTimestamp":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


@dataclass(frozen=True)
class ArrayUnion:
    """Add values to an array field, skipping ones already present."""

    values: tuple[Any, ...]

    def __init__(self, values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass(frozen=True)
class ArrayRemove:
    """Remove every occurrence of the values from an array field."""

    values: tuple[Any, ...]

    def __init__(self, values: Any) -> None:
        object.__setattr__(self, "values", tuple(values))


@dataclass
class Document:
    """A stored document: its id plus field data."""

    id: str
    data: dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.data.get(key, default)


@dataclass
class Page:
    """One page of query results.

    ``next_cursor`` is None when there are no further documents.
    """

    documents: list[Document]
    next_cursor: str | None = None


_NO_VALUE = object()


@dataclass(frozen=True)
class Cursor:
    """Position after the last document of a page.

    ``order_value`` is that document's value of the ordering field, kept so a
    query can resume even after the document itself has been deleted.
    ``has_order_value`` is False for cursors of unordered queries.
    """

    document_id: str
    order_value: Any = None
    has_order_value: bool = False


def encode_cursor(document_id: str, order_value: Any = _NO_VALUE) -> str:
    """Encode an opaque pagination cursor pointing after ``document_id``."""
    data: dict[str, Any] = {"id": document_id}
    if isinstance(order_value, datetime):
        data["ts"] = order_value.isoformat()
    elif order_value is not _NO_VALUE:
        data["v"] = order_value
    json_str = json.dumps(data)
    return base64.urlsafe_b64encode(json_str.encode()).decode()


def decode_cursor(cursor: str) -> Cursor:
    """Decode a pagination cursor produced by ``encode_cursor``.

    Raises:
        ValidationError: If the cursor is not one this module produced.
    """
    try:
        json_str = base64.urlsafe_b64decode(cursor.encode()).decode()
        data = json.loads(json_str)
        document_id = data["id"]
        if "ts" in data:
            order = (datetime.fromisoformat(data["ts"]), True)
        elif "v" in data:
            order = (data["v"], True)
        else:
            order = (None, False)
    except (binascii.Error, UnicodeDecodeError, ValueError, KeyError, TypeError) as e:
        raise ValidationError("Invalid pagination cursor") from e

    if not isinstance(document_id, str) or not document_id:
        raise ValidationError("Invalid pagination cursor")
    return Cursor(document_id, *order)


def validate_filters(filters: tuple[Filter, ...] | list[Filter]) -> None:
    for field_name, op, _ in filters:
        if op not in SUPPORTED_OPS:
            raise ValueError(f"Unsupported filter operator {op!r} on {field_name}")


class DocumentStore(Protocol):
    """Async interface every document store implementation provides."""

    async def get(self, collection: str, document_id: str) -> Document:
        """Fetch one document. Raises ``NotFound``."""
        ...

    async def query(
        self,
        collection: str,
        filters: tuple[Filter, ...] | list[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page:
        """Filtered, ordered, cursor-paginated listing.

        Ties on ``order_by`` are broken by document id in the same direction.
        A cursor resumes from the position of the document it was cut at, so
        deleting that document between pages does not invalidate it.
        """
        ...

    async def add(self, collection: str, fields: dict[str, Any]) -> str:
        """Create a document with a store-assigned id and return the id."""
        ...

    async def set(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> None:
        """Create or overwrite a document with a caller-chosen id."""
        ...

    async def update(
        self, collection: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        """Apply a partial update atomically. Raises ``NotFound``."""
        ...

    async def delete(self, collection: str, document_id: str) -> None:
        """Delete a document. Missing documents are ignored."""
        ...

    async def ping(self) -> bool:
        """Return True when the store is reachable."""
        ...
