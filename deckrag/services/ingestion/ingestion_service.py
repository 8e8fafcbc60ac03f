"""Orchestrator for document ingestion.

Pipeline stages: **extract -> chunk -> embed -> store**.

:class:`IngestionService` coordinates the text extractor, chunker,
embedding client and vector store without any of them knowing about each
other, and owns each document's one-way status transition:

    processing --success--> ready  (chunk_count set)
    processing --failure--> error  (error_message set)

Any failure in any stage aborts the remaining stages.  Chunks are only
written once every embedding has succeeded, in a single batch, so a failed
run leaves no chunks behind.  A failed document is never retried in place;
uploading the file again creates a new document.
"""

from __future__ import annotations

import asyncio
import time
import uuid
from pathlib import Path

import structlog

from deckrag.interfaces.document_store import IDocumentStore
from deckrag.models.document import Document, DocumentStatus, StoredUpload
from deckrag.models.rag import Chunk, TextChunk
from deckrag.services.embedding_client import EmbeddingClient
from deckrag.services.ingestion.chunker import TextChunker
from deckrag.services.ingestion.text_extractor import TextExtractor, guess_mime_type, is_supported
from deckrag.services.retrieval.vector_store import VectorStore
from deckrag.utils.errors import DocumentNotFound, UnsupportedFileType

logger = structlog.get_logger(logger_name=__name__)


class IngestionService:
    """Runs uploads through the ingestion pipeline and tracks their status.

    Parameters
    ----------
    extractor:
        Converts upload bytes into plain text.
    chunker:
        Splits text into overlapping sentence-aligned chunks.
    embedding_client:
        Embeds each chunk (with its own retry/backoff).
    vector_store:
        Persists the embedded chunks.
    document_store:
        Holds document records and original upload bytes.
    embed_delay:
        Pause between consecutive chunk embeddings, in seconds (default 0.1).
    """

    def __init__(
        self,
        extractor: TextExtractor,
        chunker: TextChunker,
        embedding_client: EmbeddingClient,
        vector_store: VectorStore,
        document_store: IDocumentStore,
        embed_delay: float = 0.1,
    ) -> None:
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_client = embedding_client
        self._vector_store = vector_store
        self._document_store = document_store
        self._embed_delay = embed_delay

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def register_upload(self, data: bytes, filename: str, mime_type: str = "") -> Document:
        """Create a ``processing`` document for an upload and keep its bytes.

        Raises
        ------
        UnsupportedFileType
            If neither *mime_type* nor the extension of *filename* is on
            the allow-list.  No document is created in that case.
        """
        if not is_supported(filename, mime_type):
            raise UnsupportedFileType(file_type=mime_type or Path(filename).suffix or filename)

        mime_type = mime_type or guess_mime_type(filename)
        document_id = str(uuid.uuid4())
        document = Document(
            id=document_id,
            filename=f"{document_id}{Path(filename).suffix.lower()}",
            original_name=filename,
            mime_type=mime_type,
            file_size=len(data),
            status=DocumentStatus.PROCESSING,
        )
        await self._document_store.create_document(document)
        await self._document_store.save_upload(
            StoredUpload(
                document_id=document_id,
                filename=filename,
                mime_type=mime_type,
                data=data,
                uploaded_at=document.uploaded_at,
            )
        )
        return document

    async def process_document(self, document: Document, data: bytes) -> Document:
        """Run extract -> chunk -> embed -> store for a registered document.

        Never raises for pipeline failures: they are recorded on the
        document, which is returned in its terminal state.  If the document
        is deleted while this runs, nothing it produced is kept and the
        registered (``processing``) document is returned unchanged.
        """
        start = time.monotonic()
        log = logger.bind(document_id=document.id, filename=document.original_name)
        log.info("ingestion_started", file_size=len(data))

        try:
            extracted = await asyncio.to_thread(
                self._extractor.extract, data, document.original_name, document.mime_type
            )
            text_chunks = self._chunker.chunk(extracted.text, document.original_name)
            chunks = await self._embed_chunks(document.id, text_chunks)
            await self._vector_store.store(chunks)
        except DocumentNotFound:
            log.info("ingestion_discarded", reason="document_deleted", stage="store")
            return document
        except Exception as exc:  # noqa: BLE001
            message = f"Ingestion failed for {document.original_name} (document {document.id}): {exc}"
            log.error(
                "ingestion_failed",
                error_type=type(exc).__name__,
                error=str(exc),
                duration_ms=round((time.monotonic() - start) * 1000, 1),
            )
            updated = await self._document_store.mark_error(document.id, message)
            return updated or await self._current(document)

        updated = await self._document_store.mark_ready(document.id, len(chunks))
        if updated is None:
            return await self._discard_if_deleted(document, log)
        log.info(
            "ingestion_completed",
            chunk_count=len(chunks),
            duration_ms=round((time.monotonic() - start) * 1000, 1),
        )
        return updated

    async def ingest(self, data: bytes, filename: str, mime_type: str = "") -> Document:
        """Register and process an upload in one call; returns the terminal document."""
        document = await self.register_upload(data, filename, mime_type)
        return await self.process_document(document, data)

    async def ingest_file(self, file_path: str | Path) -> Document:
        path = Path(file_path)
        return await self.ingest(path.read_bytes(), path.name, guess_mime_type(path.name))

    async def delete_document(self, document_id: str) -> bool:
        """Delete a document with its chunks, then its index entries and upload.

        The store drops chunks and the record in one transaction, so an
        ingestion still running for the document can no longer add chunks.

        Returns ``False`` when the document does not exist.
        """
        if await self._document_store.get_document(document_id) is None:
            return False

        deleted = await self._document_store.delete_document(document_id)
        await self._vector_store.delete_document_chunks(document_id)
        await self._document_store.delete_upload(document_id)
        return deleted

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _embed_chunks(self, document_id: str, text_chunks: list[TextChunk]) -> list[Chunk]:
        """Embed *text_chunks* one at a time, in order, pausing between calls."""
        chunks: list[Chunk] = []
        for position, text_chunk in enumerate(text_chunks):
            if position > 0 and self._embed_delay > 0:
                await asyncio.sleep(self._embed_delay)
            embedding = await self._embedding_client.embed(text_chunk.content)
            chunks.append(
                Chunk(
                    id=str(uuid.uuid4()),
                    document_id=document_id,
                    content=text_chunk.content,
                    embedding=embedding,
                    metadata=text_chunk.metadata,
                )
            )
        return chunks

    async def _current(self, document: Document) -> Document:
        return await self._document_store.get_document(document.id) or document

    async def _discard_if_deleted(self, document: Document, log: structlog.BoundLogger) -> Document:
        current = await self._document_store.get_document(document.id)
        if current is not None:
            return current
        # Deleted between the chunk write and mark_ready.
        removed = await self._vector_store.delete_document_chunks(document.id)
        log.info(
            "ingestion_discarded",
            reason="document_deleted",
            stage="mark_ready",
            chunks_removed=removed,
        )
        return document
