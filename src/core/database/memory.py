"""In-process document store used in development and tests."""

import asyncio
import copy
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

import structlog

from src.core.database.document_store import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    Cursor,
    Document,
    Filter,
    Page,
    decode_cursor,
    encode_cursor,
    validate_filters,
)
from src.core.errors import NotFound, ValidationError


logger = structlog.get_logger(__name__)


def _matches(data: dict[str, Any], flt: Filter) -> bool:
    field_name, op, value = flt
    current = data.get(field_name)
    if op == "==":
        return current == value
    if op == "in":
        return current in value
    # array-contains
    return isinstance(current, list) and value in current


def _id_key(item: tuple[str, dict[str, Any]]) -> str:
    return item[0]


def _sort_key(field_name: str):
    def key(item: tuple[str, dict[str, Any]]) -> tuple:
        document_id, data = item
        value = data.get(field_name)
        return (value is not None, value if value is not None else 0, document_id)

    return key


class InMemoryDocumentStore:
    """Dict-backed ``DocumentStore``.

    A single asyncio lock serialises writes so field transforms
    (``ArrayUnion``/``ArrayRemove``) are atomic with respect to each other.
    Server timestamps are strictly increasing so creation order is preserved
    even when the clock does not advance between writes.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()
        self._last_timestamp: datetime | None = None

    def _now(self) -> datetime:
        now = datetime.now(UTC)
        if self._last_timestamp is not None and now <= self._last_timestamp:
            now = self._last_timestamp + timedelta(microseconds=1)
        self._last_timestamp = now
        return now

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    def _resolve(self, current: Any, value: Any) -> Any:
        if value is SERVER_TIMESTAMP:
            return self._now()
        if isinstance(value, ArrayUnion):
            existing = list(current) if isinstance(current, list) else []
            for item in value.values:
                if item not in existing:
                    existing.append(item)
            return existing
        if isinstance(value, ArrayRemove):
            existing = list(current) if isinstance(current, list) else []
            return [item for item in existing if item not in value.values]
        return copy.deepcopy(value)

    def _apply(self, target: dict[str, Any], fields: dict[str, Any]) -> None:
        for key, value in fields.items():
            target[key] = self._resolve(target.get(key), value)

    async def get(self, collection: str, document_id: str) -> Document:
        data = self._collection(collection).get(document_id)
        if data is None:
            raise NotFound(f"{collection}/{document_id} not found")
        return Document(id=document_id, data=copy.deepcopy(data))

    async def query(
        self,
        collection: str,
        filters: tuple[Filter, ...] | list[Filter] = (),
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> Page:
        validate_filters(filters)
        items = [
            (document_id, data)
            for document_id, data in self._collection(collection).items()
            if all(_matches(data, flt) for flt in filters)
        ]

        if order_by:
            items.sort(key=_sort_key(order_by), reverse=descending)
        else:
            items.sort(key=_id_key, reverse=descending)

        if cursor:
            items = self._after_cursor(
                collection, items, decode_cursor(cursor), order_by, descending
            )

        next_cursor = None
        if limit is not None and len(items) > limit:
            items = items[:limit]
            last_id, last_data = items[-1]
            if order_by:
                next_cursor = encode_cursor(last_id, last_data.get(order_by))
            else:
                next_cursor = encode_cursor(last_id)

        return Page(
            documents=[
                Document(id=document_id, data=copy.deepcopy(data))
                for document_id, data in items
            ],
            next_cursor=next_cursor,
        )

    def _after_cursor(
        self,
        collection: str,
        items: list[tuple[str, dict[str, Any]]],
        cursor: Cursor,
        order_by: str | None,
        descending: bool,
    ) -> list[tuple[str, dict[str, Any]]]:
        """Items strictly past the cursor position in the current ordering."""
        if order_by and not cursor.has_order_value:
            anchor = self._collection(collection).get(cursor.document_id)
            if anchor is None:
                raise ValidationError("Pagination cursor no longer valid")
            anchor_value = anchor.get(order_by)
        else:
            anchor_value = cursor.order_value

        if order_by:
            key = _sort_key(order_by)
            anchor_key = key((cursor.document_id, {order_by: anchor_value}))
        else:
            key = _id_key
            anchor_key = cursor.document_id

        if descending:
            return [item for item in items if key(item) < anchor_key]
        return [item for item in items if key(item) > anchor_key]

    async def add(self, collection: str, fields: dict[str, Any]) -> str:
        async with self._lock:
            document_id = uuid4().hex[:20]
            data: dict[str, Any] = {}
            self._apply(data, fields)
            self._collection(collection)[document_id] = data
        logger.debug("document_added", collection=collection, document_id=document_id)
        return document_id

    async def set(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> None:
        async with self._lock:
            docs = self._collection(collection)
            data = docs.get(document_id, {}) if merge else {}
            self._apply(data, fields)
            docs[document_id] = data

    async def update(
        self, collection: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        async with self._lock:
            data = self._collection(collection).get(document_id)
            if data is None:
                raise NotFound(f"{collection}/{document_id} not found")
            self._apply(data, fields)

    async def delete(self, collection: str, document_id: str) -> None:
        async with self._lock:
            self._collection(collection).pop(document_id, None)

    async def ping(self) -> bool:
        return True
