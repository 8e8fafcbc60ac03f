"""ChromaDB vector index adapter.

Wraps ``chromadb.PersistentClient`` to implement
:class:`IVectorIndexProvider` with cosine distance.  Fully local, no
external service required.  Embeddings are always pre-computed by the
embedding client, so the collection is opened with a no-op embedding
function.
"""

from __future__ import annotations

import os
from typing import Any

# Disable ChromaDB telemetry before importing chromadb.  A version mismatch
# between chromadb's bundled PostHog client and the installed posthog
# package raises "capture() takes 1 positional argument" errors.
os.environ["ANONYMIZED_TELEMETRY"] = "False"

import posthog

posthog.disabled = True

import chromadb
import structlog

from deckrag.interfaces.vector_index_provider import IVectorIndexProvider
from deckrag.models.rag import Chunk, RetrievalHit
from deckrag.utils.errors import ProviderError, SearchUnavailable

logger = structlog.get_logger(logger_name=__name__)


class _NoopEmbeddingFunction(chromadb.EmbeddingFunction[list[str]]):
    """Stops ChromaDB from downloading its default ONNX embedding model."""

    def __call__(self, input: list[str]) -> list[list[float]]:
        raise NotImplementedError(
            "deckrag uses pre-computed embeddings; "
            "ChromaDB's built-in embedding should never be called."
        )

    def name(self) -> str:
        return "noop_precomputed"


class ChromaDBVectorIndex(IVectorIndexProvider):
    """Vector index backed by ChromaDB with local persistence.

    Each entry's id is the chunk id; metadata carries ``document_id`` so
    entries can be deleted per document.

    Parameters
    ----------
    persist_directory:
        Directory for ChromaDB's on-disk files.
    collection_name:
        Collection holding the chunk vectors.
    client:
        Pre-built client (tests pass ``chromadb.EphemeralClient()``).
    """

    def __init__(
        self,
        persist_directory: str = "./data/chromadb",
        collection_name: str = "deckrag_chunks",
        client: Any | None = None,
    ) -> None:
        self._collection_name = collection_name
        self._client = client or chromadb.PersistentClient(
            path=persist_directory,
            settings=chromadb.config.Settings(anonymized_telemetry=False),
        )
        # Collections created by other chromadb versions may refuse a
        # different embedding function; reopen without one in that case.
        try:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
                embedding_function=_NoopEmbeddingFunction(),
            )
        except ValueError:
            self._collection = self._client.get_or_create_collection(
                name=collection_name,
                metadata={"hnsw:space": "cosine"},
            )

    # ------------------------------------------------------------------
    # IVectorIndexProvider implementation
    # ------------------------------------------------------------------

    async def upsert(self, chunks: list[Chunk], batch_size: int = 500) -> int:
        """Upsert *chunks* in slices of *batch_size* to bound peak memory."""
        if not chunks:
            return 0
        try:
            for start in range(0, len(chunks), batch_size):
                batch = chunks[start : start + batch_size]
                self._collection.upsert(
                    ids=[c.id for c in batch],
                    embeddings=[c.embedding for c in batch],
                    documents=[c.content for c in batch],
                    metadatas=[
                        {
                            "document_id": c.document_id,
                            "chunk_index": c.metadata.chunk_index,
                            "source_file": c.metadata.source_file,
                        }
                        for c in batch
                    ],
                )
        except Exception as exc:
            raise ProviderError(
                message=f"ChromaDB upsert failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_upsert", count=len(chunks), document_id=chunks[0].document_id)
        return len(chunks)

    async def query(
        self,
        query_vector: list[float],
        k: int,
        num_candidates: int,
    ) -> list[RetrievalHit]:
        """Query the collection and project the candidate pool to *k* hits.

        Relevance is ``1 - cosine_distance``, i.e. cosine similarity.
        """
        try:
            total = self._collection.count()
            if total == 0 or k <= 0:
                return []

            results = self._collection.query(
                query_embeddings=[query_vector],
                n_results=min(max(num_candidates, k), total),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as exc:
            raise SearchUnavailable(
                message=f"ChromaDB query failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not results["ids"] or not results["ids"][0]:
            return []

        ids = results["ids"][0]
        documents = results["documents"][0] if results["documents"] else [""] * len(ids)
        metadatas = results["metadatas"][0] if results["metadatas"] else [{}] * len(ids)
        distances = results["distances"][0] if results["distances"] else [1.0] * len(ids)

        hits = [
            RetrievalHit(
                chunk_id=chunk_id,
                document_id=str((meta or {}).get("document_id", "")),
                content=text or "",
                score=1.0 - distance,
            )
            for chunk_id, text, meta, distance in zip(ids, documents, metadatas, distances, strict=True)
        ]
        hits.sort(key=lambda h: h.score, reverse=True)
        projected = hits[:k]

        logger.info(
            "chromadb_query",
            candidates=len(hits),
            results_count=len(projected),
            top_score=projected[0].score if projected else 0.0,
        )
        return projected

    async def delete_by_document(self, document_id: str) -> int:
        try:
            existing = self._collection.get(where={"document_id": document_id})
            count = len(existing["ids"]) if existing["ids"] else 0
            if count > 0:
                self._collection.delete(where={"document_id": document_id})
        except Exception as exc:
            raise ProviderError(
                message=f"ChromaDB delete failed for document {document_id}: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        logger.info("chromadb_delete_by_document", document_id=document_id, deleted_count=count)
        return count

    def count(self) -> int:
        return self._collection.count()

    def get_provider_name(self) -> str:
        return "chromadb"

    def is_available(self) -> bool:
        try:
            self._collection.count()
            return True
        except Exception:  # noqa: BLE001
            return False
