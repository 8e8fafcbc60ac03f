"""SQLite-backed document store.

Persists documents, embedded chunks, original upload bytes and lease rows
to a local SQLite database (``data/deckrag.db`` by default) using
``aiosqlite`` for async I/O.

Chunk embeddings are stored as JSON arrays.  There is no ``ON DELETE
CASCADE``; :meth:`SQLiteDocumentStore.delete_document` removes a document's
chunks and then its row inside one transaction, and chunk batches are only
accepted while their owning document row exists.
"""

from __future__ import annotations

import json
import time
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from deckrag.interfaces.document_store import IDocumentStore
from deckrag.models.document import Document, DocumentStatus, StoredUpload
from deckrag.models.rag import Chunk, ChunkMetadata
from deckrag.utils.errors import DocumentNotFound, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/deckrag.db")

_CREATE_TABLES_SQL = [
    """\
CREATE TABLE IF NOT EXISTS documents (
    id             TEXT    PRIMARY KEY,
    filename       TEXT    NOT NULL,
    original_name  TEXT    NOT NULL,
    mime_type      TEXT    NOT NULL DEFAULT '',
    file_size      INTEGER NOT NULL DEFAULT 0,
    status         TEXT    NOT NULL,
    error_message  TEXT,
    chunk_count    INTEGER NOT NULL DEFAULT 0,
    uploaded_at    TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS chunks (
    id           TEXT    PRIMARY KEY,
    document_id  TEXT    NOT NULL,
    chunk_index  INTEGER NOT NULL,
    content      TEXT    NOT NULL,
    embedding    TEXT    NOT NULL,
    source_file  TEXT    NOT NULL,
    start_char   INTEGER NOT NULL,
    end_char     INTEGER NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS uploads (
    document_id  TEXT    PRIMARY KEY,
    filename     TEXT    NOT NULL,
    mime_type    TEXT    NOT NULL,
    data         BLOB    NOT NULL,
    uploaded_at  TEXT    NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS leases (
    name        TEXT  PRIMARY KEY,
    holder      TEXT  NOT NULL,
    expires_at  REAL  NOT NULL
);
""",
]

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_documents_uploaded ON documents(uploaded_at);",
]

_DOCUMENT_COLUMNS = (
    "id, filename, original_name, mime_type, file_size, status, "
    "error_message, chunk_count, uploaded_at"
)

_CHUNK_COLUMNS = (
    "id, document_id, chunk_index, content, embedding, source_file, start_char, end_char"
)

_INSERT_DOCUMENT_SQL = f"""\
INSERT INTO documents ({_DOCUMENT_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_CHUNK_SQL = f"""\
INSERT INTO chunks ({_CHUNK_COLUMNS})
VALUES (?, ?, ?, ?, ?, ?, ?, ?);
"""

# Terminal transitions only apply to rows still in 'processing'.
_MARK_READY_SQL = """\
UPDATE documents SET status = 'ready', chunk_count = ?
WHERE id = ? AND status = 'processing';
"""

_MARK_ERROR_SQL = """\
UPDATE documents SET status = 'error', error_message = ?
WHERE id = ? AND status = 'processing';
"""

_UPSERT_UPLOAD_SQL = """\
INSERT INTO uploads (document_id, filename, mime_type, data, uploaded_at)
VALUES (?, ?, ?, ?, ?)
ON CONFLICT(document_id)
DO UPDATE SET filename = excluded.filename,
              mime_type = excluded.mime_type,
              data = excluded.data,
              uploaded_at = excluded.uploaded_at;
"""

# Takes the lease when it is free or expired; a live lease is left alone.
_ACQUIRE_LEASE_SQL = """\
INSERT INTO leases (name, holder, expires_at)
VALUES (?, ?, ?)
ON CONFLICT(name)
DO UPDATE SET holder = excluded.holder,
              expires_at = excluded.expires_at
WHERE leases.expires_at <= ?;
"""


class SQLiteDocumentStore(IDocumentStore):
    """SQLite-backed persistence for documents, chunks, uploads and leases."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    async def initialize(self) -> None:
        """Create the tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(str(self._db_path)) as db:
            for table_sql in _CREATE_TABLES_SQL:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES_SQL:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("document_store_initialized", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    async def create_document(self, document: Document) -> Document:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _INSERT_DOCUMENT_SQL,
                (
                    document.id,
                    document.filename,
                    document.original_name,
                    document.mime_type,
                    document.file_size,
                    document.status.value,
                    document.error_message,
                    document.chunk_count,
                    document.uploaded_at.isoformat(),
                ),
            )
            await db.commit()
        logger.info(
            "document_created",
            document_id=document.id,
            filename=document.original_name,
            status=document.status.value,
        )
        return document

    async def get_document(self, document_id: str) -> Document | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        return self._row_to_document(row) if row else None

    async def get_documents(self, document_ids: list[str]) -> dict[str, Document]:
        unique_ids = list(dict.fromkeys(document_ids))
        if not unique_ids:
            return {}
        placeholders = ", ".join("?" for _ in unique_ids)
        try:
            async with aiosqlite.connect(str(self._db_path)) as db:
                db.row_factory = aiosqlite.Row
                cursor = await db.execute(
                    f"SELECT {_DOCUMENT_COLUMNS} FROM documents WHERE id IN ({placeholders})",
                    unique_ids,
                )
                rows = await cursor.fetchall()
        except aiosqlite.Error as exc:
            raise StorageError(
                message=f"Document lookup failed: {exc}",
                provider_name="sqlite",
            ) from exc
        documents = (self._row_to_document(r) for r in rows)
        return {d.id: d for d in documents}

    async def list_documents(self) -> list[Document]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_DOCUMENT_COLUMNS} FROM documents ORDER BY uploaded_at DESC"
            )
            rows = await cursor.fetchall()
        return [self._row_to_document(r) for r in rows]

    async def mark_ready(self, document_id: str, chunk_count: int) -> Document | None:
        return await self._transition(
            _MARK_READY_SQL, (chunk_count, document_id), document_id, DocumentStatus.READY
        )

    async def mark_error(self, document_id: str, error_message: str) -> Document | None:
        return await self._transition(
            _MARK_ERROR_SQL, (error_message, document_id), document_id, DocumentStatus.ERROR
        )

    async def delete_document(self, document_id: str) -> bool:
        """Delete the document's chunks, then its row, in one transaction."""
        async with aiosqlite.connect(str(self._db_path)) as db:
            chunk_cursor = await db.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            cursor = await db.execute("DELETE FROM documents WHERE id = ?", (document_id,))
            await db.commit()
            deleted = cursor.rowcount > 0
        logger.info(
            "document_deleted",
            document_id=document_id,
            deleted=deleted,
            chunks_removed=chunk_cursor.rowcount,
        )
        return deleted

    # ------------------------------------------------------------------
    # Chunks
    # ------------------------------------------------------------------

    async def insert_chunks(self, chunks: list[Chunk]) -> int:
        """Insert all *chunks* in a single transaction.

        Raises
        ------
        StorageError
            If any row fails; the transaction is rolled back so no chunk
            of the batch is persisted.
        DocumentNotFound
            If an owning document row no longer exists (deleted while its
            ingestion was running); nothing is written.
        """
        if not chunks:
            return 0

        document_ids = sorted({c.document_id for c in chunks})
        placeholders = ", ".join("?" for _ in document_ids)

        rows = [
            (
                c.id,
                c.document_id,
                c.metadata.chunk_index,
                c.content,
                json.dumps(c.embedding),
                c.metadata.source_file,
                c.metadata.start_char,
                c.metadata.end_char,
            )
            for c in chunks
        ]
        async with aiosqlite.connect(str(self._db_path)) as db:
            try:
                # Write lock first so a concurrent delete_document cannot
                # slip in between the owner check and the insert.
                await db.execute("BEGIN IMMEDIATE")
                cursor = await db.execute(
                    f"SELECT id FROM documents WHERE id IN ({placeholders})", document_ids
                )
                found = {row[0] for row in await cursor.fetchall()}
                missing = [d for d in document_ids if d not in found]
                if missing:
                    await db.rollback()
                    raise DocumentNotFound(missing[0], provider_name="sqlite")
                await db.executemany(_INSERT_CHUNK_SQL, rows)
                await db.commit()
            except aiosqlite.Error as exc:
                await db.rollback()
                raise StorageError(
                    message=f"Chunk batch insert failed for document {chunks[0].document_id}: {exc}",
                    provider_name="sqlite",
                ) from exc

        logger.info("chunks_inserted", document_id=chunks[0].document_id, count=len(rows))
        return len(rows)

    async def list_chunks(self) -> list[Chunk]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM chunks ORDER BY document_id, chunk_index"
            )
            rows = await cursor.fetchall()
        return [self._row_to_chunk(r) for r in rows]

    async def get_chunks(self, document_id: str) -> list[Chunk]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                f"SELECT {_CHUNK_COLUMNS} FROM chunks WHERE document_id = ? ORDER BY chunk_index",
                (document_id,),
            )
            rows = await cursor.fetchall()
        return [self._row_to_chunk(r) for r in rows]

    async def delete_chunks(self, document_id: str) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM chunks WHERE document_id = ?", (document_id,))
            await db.commit()
            count = cursor.rowcount
        logger.info("chunks_deleted", document_id=document_id, count=count)
        return count

    async def count_chunks(self) -> int:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("SELECT COUNT(*) FROM chunks")
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    async def save_upload(self, upload: StoredUpload) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                _UPSERT_UPLOAD_SQL,
                (
                    upload.document_id,
                    upload.filename,
                    upload.mime_type,
                    upload.data,
                    upload.uploaded_at.isoformat(),
                ),
            )
            await db.commit()
        logger.debug("upload_saved", document_id=upload.document_id, size=len(upload.data))

    async def get_upload(self, document_id: str) -> StoredUpload | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            cursor = await db.execute(
                "SELECT document_id, filename, mime_type, data, uploaded_at "
                "FROM uploads WHERE document_id = ?",
                (document_id,),
            )
            row = await cursor.fetchone()
        if row is None:
            return None
        return StoredUpload(
            document_id=row["document_id"],
            filename=row["filename"],
            mime_type=row["mime_type"],
            data=bytes(row["data"]),
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
        )

    async def delete_upload(self, document_id: str) -> bool:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute("DELETE FROM uploads WHERE document_id = ?", (document_id,))
            await db.commit()
            return cursor.rowcount > 0

    # ------------------------------------------------------------------
    # Leases
    # ------------------------------------------------------------------

    async def acquire_lease(self, name: str, holder: str, ttl_seconds: float) -> bool:
        now = time.time()
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(_ACQUIRE_LEASE_SQL, (name, holder, now + ttl_seconds, now))
            await db.commit()
            cursor = await db.execute("SELECT holder FROM leases WHERE name = ?", (name,))
            row = await cursor.fetchone()
        acquired = row is not None and row[0] == holder
        logger.info("lease_acquire", name=name, holder=holder, acquired=acquired)
        return acquired

    async def release_lease(self, name: str, holder: str) -> None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            await db.execute(
                "DELETE FROM leases WHERE name = ? AND holder = ?",
                (name, holder),
            )
            await db.commit()
        logger.info("lease_released", name=name, holder=holder)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _transition(
        self,
        sql: str,
        params: tuple[Any, ...],
        document_id: str,
        target: DocumentStatus,
    ) -> Document | None:
        async with aiosqlite.connect(str(self._db_path)) as db:
            cursor = await db.execute(sql, params)
            await db.commit()
            updated = cursor.rowcount > 0
        if not updated:
            logger.warning(
                "document_transition_skipped",
                document_id=document_id,
                target=target.value,
                reason="missing or no longer processing",
            )
            return None
        logger.info("document_transitioned", document_id=document_id, status=target.value)
        return await self.get_document(document_id)

    @staticmethod
    def _row_to_document(row: aiosqlite.Row) -> Document:
        return Document(
            id=row["id"],
            filename=row["filename"],
            original_name=row["original_name"],
            mime_type=row["mime_type"],
            file_size=row["file_size"],
            status=DocumentStatus(row["status"]),
            error_message=row["error_message"],
            chunk_count=row["chunk_count"],
            uploaded_at=datetime.fromisoformat(row["uploaded_at"]),
        )

    @staticmethod
    def _row_to_chunk(row: aiosqlite.Row) -> Chunk:
        return Chunk(
            id=row["id"],
            document_id=row["document_id"],
            content=row["content"],
            embedding=json.loads(row["embedding"]),
            metadata=ChunkMetadata(
                chunk_index=row["chunk_index"],
                source_file=row["source_file"],
                start_char=row["start_char"],
                end_char=row["end_char"],
            ),
        )
