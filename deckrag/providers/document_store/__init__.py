"""Document store adapters (system of record for documents and chunks)."""

from deckrag.providers.document_store.sqlite_document_store import SQLiteDocumentStore

__all__ = ["SQLiteDocumentStore"]
