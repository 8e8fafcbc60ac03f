"""Vector store facade: chunk persistence plus enriched similarity search.

The document store is the system of record for chunks; the native vector
index, when configured, is a query-optimised secondary copy.  Writes go to
the document store first (one all-or-nothing batch), then to the index on
a best-effort basis.  Reads go through an :class:`IRetriever` (normally a
:class:`FallbackRetriever`) and every hit is enriched with the owning
document's display name.
"""

from __future__ import annotations

import hashlib

import structlog

from deckrag.interfaces.cache_provider import ICacheProvider
from deckrag.interfaces.document_store import IDocumentStore
from deckrag.interfaces.retriever import IRetriever
from deckrag.interfaces.vector_index_provider import IVectorIndexProvider
from deckrag.models.rag import Chunk, RetrievedContext
from deckrag.services.embedding_client import EmbeddingClient
from deckrag.utils.errors import DeckRagError

logger = structlog.get_logger(logger_name=__name__)

UNKNOWN_DOCUMENT_NAME = "Unknown"


class VectorStore:
    """Stores embedded chunks and answers top-k similarity queries.

    Parameters
    ----------
    document_store:
        System of record for chunks and document names.
    retriever:
        Strategy used by :meth:`search`.
    embedding_client:
        Embeds query text for :meth:`search_text`.
    index:
        Optional native vector index mirrored on writes and deletes.
    query_cache:
        Optional cache of query embeddings keyed by query text.
    default_k:
        Result count when callers do not pass one (default 5).
    """

    def __init__(
        self,
        document_store: IDocumentStore,
        retriever: IRetriever,
        embedding_client: EmbeddingClient,
        index: IVectorIndexProvider | None = None,
        query_cache: ICacheProvider | None = None,
        default_k: int = 5,
    ) -> None:
        self._document_store = document_store
        self._retriever = retriever
        self._embedding_client = embedding_client
        self._index = index
        self._query_cache = query_cache
        self._default_k = default_k

    # ------------------------------------------------------------------
    # Write path
    # ------------------------------------------------------------------

    async def store(self, chunks: list[Chunk]) -> int:
        """Persist *chunks* as one batch, then mirror them into the index.

        Raises
        ------
        StorageError
            If the document-store batch fails; nothing is persisted then.
        """
        if not chunks:
            return 0

        stored = await self._document_store.insert_chunks(chunks)

        if self._index is not None:
            try:
                await self._index.upsert(chunks)
            except DeckRagError as exc:
                logger.warning(
                    "vector_index_upsert_failed",
                    document_id=chunks[0].document_id,
                    chunk_count=len(chunks),
                    error=str(exc),
                )

        logger.info("chunks_stored", document_id=chunks[0].document_id, chunk_count=stored)
        return stored

    async def delete_document_chunks(self, document_id: str) -> int:
        """Delete every chunk owned by *document_id*; returns the count removed."""
        deleted = await self._document_store.delete_chunks(document_id)

        if self._index is not None:
            try:
                await self._index.delete_by_document(document_id)
            except DeckRagError as exc:
                logger.warning(
                    "vector_index_delete_failed",
                    document_id=document_id,
                    error=str(exc),
                )

        logger.info("chunks_deleted", document_id=document_id, deleted_count=deleted)
        return deleted

    async def count_chunks(self) -> int:
        return await self._document_store.count_chunks()

    # ------------------------------------------------------------------
    # Read path
    # ------------------------------------------------------------------

    async def search(self, query_vector: list[float], k: int | None = None) -> list[RetrievedContext]:
        """Return the top-*k* chunks for *query_vector* with display names.

        Hits whose owning document cannot be resolved are labelled
        ``"Unknown"`` rather than dropped.
        """
        k = self._default_k if k is None else k
        hits = await self._retriever.retrieve(query_vector, k)
        if not hits:
            return []

        document_ids = list(dict.fromkeys(hit.document_id for hit in hits))
        try:
            documents = await self._document_store.get_documents(document_ids)
        except DeckRagError as exc:
            logger.warning("document_name_lookup_failed", document_ids=document_ids, error=str(exc))
            documents = {}

        results = [
            RetrievedContext(
                content=hit.content,
                document_id=hit.document_id,
                filename=(
                    documents[hit.document_id].original_name
                    if hit.document_id in documents
                    else UNKNOWN_DOCUMENT_NAME
                ),
                score=hit.score,
            )
            for hit in hits
        ]

        logger.info(
            "vector_search",
            retriever=self._retriever.get_name(),
            k=k,
            results=len(results),
            top_score=results[0].score,
        )
        return results

    async def search_text(self, query: str, k: int | None = None) -> list[RetrievedContext]:
        """Embed *query* and run :meth:`search`.

        Raises
        ------
        EmbeddingFailed
            If the query cannot be embedded; no results can be computed.
        """
        query_vector = await self._embed_query(query)
        return await self.search(query_vector, k)

    async def _embed_query(self, query: str) -> list[float]:
        if self._query_cache is None:
            return await self._embedding_client.embed(query)

        key = self._cache_key(query)
        cached = await self._query_cache.get(key)
        if cached is not None:
            return cached

        vector = await self._embedding_client.embed(query)
        await self._query_cache.set(key, vector)
        return vector

    def _cache_key(self, query: str) -> str:
        digest = hashlib.sha256(query.encode("utf-8")).hexdigest()
        return f"query_embedding:{self._embedding_client.provider_name}:{digest}"
