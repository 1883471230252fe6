"""Firestore-backed document store."""

from typing import Any

import firebase_admin
import structlog
from firebase_admin import firestore_async
from google.api_core import exceptions as google_exceptions
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

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
from src.core.errors import NotFound, StoreUnavailable, ValidationError


logger = structlog.get_logger(__name__)


def _to_native(value: Any) -> Any:
    if value is SERVER_TIMESTAMP:
        return firestore.SERVER_TIMESTAMP
    if isinstance(value, ArrayUnion):
        return firestore.ArrayUnion(list(value.values))
    if isinstance(value, ArrayRemove):
        return firestore.ArrayRemove(list(value.values))
    return value


def _native_fields(fields: dict[str, Any]) -> dict[str, Any]:
    return {key: _to_native(value) for key, value in fields.items()}


def _document(snapshot: Any) -> Document:
    return Document(id=snapshot.id, data=snapshot.to_dict() or {})


class FirestoreDocumentStore:
    """``DocumentStore`` over the Firestore async client.

    Google API errors are translated into ``NotFound`` and
    ``StoreUnavailable``; field transforms map onto Firestore's own
    ``ArrayUnion``/``ArrayRemove``/``SERVER_TIMESTAMP`` so they are applied
    atomically server side.
    """

    def __init__(self, app: firebase_admin.App) -> None:
        self._client = firestore_async.client(app)

    def _unavailable(self, operation: str, collection: str, error: Exception):
        logger.error(
            "firestore_operation_failed",
            operation=operation,
            collection=collection,
            error=str(error),
            error_type=type(error).__name__,
        )
        return StoreUnavailable(f"Document store {operation} failed")

    async def get(self, collection: str, document_id: str) -> Document:
        try:
            snapshot = await self._client.collection(collection).document(
                document_id
            ).get()
        except google_exceptions.GoogleAPICallError as e:
            raise self._unavailable("get", collection, e) from e

        if not snapshot.exists:
            raise NotFound(f"{collection}/{document_id} not found")
        return _document(snapshot)

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
        ref = self._client.collection(collection)
        direction = (
            firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
        )

        q: Any = ref
        for field_name, op, value in filters:
            q = q.where(filter=FieldFilter(field_name, op, value))
        if order_by:
            q = q.order_by(order_by, direction=direction)
        q = q.order_by(firestore.FieldPath.document_id(), direction=direction)

        try:
            if cursor:
                q = await self._start_after(ref, q, decode_cursor(cursor), order_by)

            if limit is not None:
                # One extra document tells us whether another page exists
                q = q.limit(limit + 1)

            snapshots = await q.get()
        except google_exceptions.GoogleAPICallError as e:
            raise self._unavailable("query", collection, e) from e

        documents = [_document(s) for s in snapshots]
        next_cursor = None
        if limit is not None and len(documents) > limit:
            documents = documents[:limit]
            last = documents[-1]
            if order_by:
                next_cursor = encode_cursor(last.id, last.get(order_by))
            else:
                next_cursor = encode_cursor(last.id)

        return Page(documents=documents, next_cursor=next_cursor)

    async def _start_after(
        self, ref: Any, q: Any, cursor: Cursor, order_by: str | None
    ) -> Any:
        """Position ``q`` after the cursor by field values, not by snapshot.

        The anchor document is only read for cursors that carry no ordering
        value; those still fail once the anchor is deleted.
        """
        if not order_by:
            return q.start_after({"__name__": cursor.document_id})
        if cursor.has_order_value:
            return q.start_after(
                {order_by: cursor.order_value, "__name__": cursor.document_id}
            )

        snapshot = await ref.document(cursor.document_id).get()
        if not snapshot.exists:
            raise ValidationError("Pagination cursor no longer valid")
        return q.start_after(snapshot)

    async def add(self, collection: str, fields: dict[str, Any]) -> str:
        try:
            _, ref = await self._client.collection(collection).add(
                _native_fields(fields)
            )
        except google_exceptions.GoogleAPICallError as e:
            raise self._unavailable("add", collection, e) from e
        return ref.id

    async def set(
        self,
        collection: str,
        document_id: str,
        fields: dict[str, Any],
        merge: bool = False,
    ) -> None:
        try:
            await self._client.collection(collection).document(document_id).set(
                _native_fields(fields), merge=merge
            )
        except google_exceptions.GoogleAPICallError as e:
            raise self._unavailable("set", collection, e) from e

    async def update(
        self, collection: str, document_id: str, fields: dict[str, Any]
    ) -> None:
        try:
            await self._client.collection(collection).document(document_id).update(
                _native_fields(fields)
            )
        except google_exceptions.NotFound as e:
            raise NotFound(f"{collection}/{document_id} not found") from e
        except google_exceptions.GoogleAPICallError as e:
            raise self._unavailable("update", collection, e) from e

    async def delete(self, collection: str, document_id: str) -> None:
        try:
            await self._client.collection(collection).document(document_id).delete()
        except google_exceptions.GoogleAPICallError as e:
            raise self._unavailable("delete", collection, e) from e

    async def ping(self) -> bool:
        try:
            await self._client.collection("posts").limit(1).get()
        except google_exceptions.GoogleAPICallError as e:
            logger.warning("firestore_ping_failed", error=str(e))
            return False
        return True
