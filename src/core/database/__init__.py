"""Document store package for the Wave Rider API."""

from src.core.database.document_store import (
    SERVER_TIMESTAMP,
    ArrayRemove,
    ArrayUnion,
    Cursor,
    Document,
    DocumentStore,
    Page,
    decode_cursor,
    encode_cursor,
)
from src.core.database.memory import InMemoryDocumentStore


__all__ = [
    "SERVER_TIMESTAMP",
    "ArrayRemove",
    "ArrayUnion",
    "Cursor",
    "Document",
    "DocumentStore",
    "InMemoryDocumentStore",
    "Page",
    "create_document_store",
    "decode_cursor",
    "encode_cursor",
]


def create_document_store(settings) -> DocumentStore:
    """Build the store selected by ``settings.store_backend``."""
    if settings.store_backend == "firestore":
        # Imported lazily so the memory backend never loads the Firestore SDK
        from src.core.database.firestore import FirestoreDocumentStore  # noqa: PLC0415
        from src.core.firebase import init_firebase  # noqa: PLC0415

        return FirestoreDocumentStore(init_firebase(settings))
    return InMemoryDocumentStore()
