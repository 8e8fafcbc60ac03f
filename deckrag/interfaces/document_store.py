"""Abstract base class for the document/chunk persistence store.

The document store is the system of record: documents, their embedded
chunks, the original upload bytes and the lease rows that guard
non-reentrant operations.  Implementations must make :meth:`insert_chunks`
all-or-nothing and must only move a document out of ``processing`` once.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from deckrag.models.document import Document, StoredUpload
from deckrag.models.rag import Chunk


# Concrete implementation: SQLiteDocumentStore
# Located in: deckrag/providers/document_store/
class IDocumentStore(ABC):
    """Contract for document, chunk, upload and lease persistence."""

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables and indices if they do not exist."""

    # -- Documents -----------------------------------------------------------

    @abstractmethod
    async def create_document(self, document: Document) -> Document:
        """Insert a new document record and return it."""

    @abstractmethod
    async def get_document(self, document_id: str) -> Document | None:
        """Return the document with *document_id*, or ``None``."""

    @abstractmethod
    async def get_documents(self, document_ids: list[str]) -> dict[str, Document]:
        """Return the documents among *document_ids* that exist, keyed by id."""

    @abstractmethod
    async def list_documents(self) -> list[Document]:
        """Return every document, newest upload first."""

    @abstractmethod
    async def mark_ready(self, document_id: str, chunk_count: int) -> Document | None:
        """Move a ``processing`` document to ``ready``.

        Returns the updated document, or ``None`` if the document no longer
        exists or is not ``processing``.
        """

    @abstractmethod
    async def mark_error(self, document_id: str, error_message: str) -> Document | None:
        """Move a ``processing`` document to ``error`` with *error_message*.

        Returns the updated document, or ``None`` if the document no longer
        exists or is not ``processing``.
        """

    @abstractmethod
    async def delete_document(self, document_id: str) -> bool:
        """Delete the document's chunks, then its record, atomically.

        Returns ``True`` if a document row was removed.
        """

    # -- Chunks --------------------------------------------------------------

    @abstractmethod
    async def insert_chunks(self, chunks: list[Chunk]) -> int:
        """Persist *chunks* as one batch; either all rows are written or none.

        Raises :class:`DocumentNotFound` when an owning document no longer
        exists, so a deleted document never regains chunks.
        """

    @abstractmethod
    async def list_chunks(self) -> list[Chunk]:
        """Return every stored chunk, embeddings included."""

    @abstractmethod
    async def get_chunks(self, document_id: str) -> list[Chunk]:
        """Return the chunks owned by *document_id* in ordinal order."""

    @abstractmethod
    async def delete_chunks(self, document_id: str) -> int:
        """Delete every chunk owned by *document_id*.  Returns the count removed."""

    @abstractmethod
    async def count_chunks(self) -> int:
        """Return the total number of stored chunks."""

    # -- Uploads -------------------------------------------------------------

    @abstractmethod
    async def save_upload(self, upload: StoredUpload) -> None:
        """Store the original bytes of an uploaded file."""

    @abstractmethod
    async def get_upload(self, document_id: str) -> StoredUpload | None:
        """Return the stored upload for *document_id*, or ``None``."""

    @abstractmethod
    async def delete_upload(self, document_id: str) -> bool:
        """Delete the stored upload.  Returns ``True`` if a row was removed."""

    # -- Leases --------------------------------------------------------------

    @abstractmethod
    async def acquire_lease(self, name: str, holder: str, ttl_seconds: float) -> bool:
        """Take the lease *name* for *holder* unless a live lease is held.

        An expired lease may be taken over.  Returns ``True`` on success.
        """

    @abstractmethod
    async def release_lease(self, name: str, holder: str) -> None:
        """Release the lease *name* if *holder* still owns it."""
