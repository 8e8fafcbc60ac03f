"""Similarity retrieval strategies.

Three :class:`IRetriever` implementations:

- :class:`IndexedRetriever` -- asks the native vector index for a
  candidate pool larger than *k* and projects it down.  Raises
  :class:`SearchUnavailable` when no index is configured or it fails.
- :class:`BruteForceRetriever` -- loads every stored chunk and ranks it by
  cosine similarity in process.  O(total chunks) per query: fine for small
  corpora, degraded but correct otherwise.
- :class:`FallbackRetriever` -- tries a primary strategy and switches to a
  fallback when the primary raises :class:`SearchUnavailable` or returns
  nothing.
"""

from __future__ import annotations

import structlog

from deckrag.interfaces.document_store import IDocumentStore
from deckrag.interfaces.retriever import IRetriever
from deckrag.interfaces.vector_index_provider import IVectorIndexProvider
from deckrag.models.rag import RetrievalHit
from deckrag.services.embedding_client import cosine_similarity
from deckrag.utils.errors import DeckRagError, SearchUnavailable

logger = structlog.get_logger(logger_name=__name__)


class IndexedRetriever(IRetriever):
    """Retrieval through the native approximate-nearest-neighbour index.

    Parameters
    ----------
    index:
        The vector index, or ``None`` when none is configured.
    num_candidates:
        Candidate pool requested from the index before projecting to *k*
        (default 100).
    """

    def __init__(self, index: IVectorIndexProvider | None, num_candidates: int = 100) -> None:
        self._index = index
        self._num_candidates = num_candidates

    async def retrieve(self, query_vector: list[float], k: int) -> list[RetrievalHit]:
        if self._index is None:
            raise SearchUnavailable(message="No vector index configured")
        if not self._index.is_available():
            raise SearchUnavailable(
                message="Vector index is not available",
                provider_name=self._index.get_provider_name(),
            )

        try:
            hits = await self._index.query(
                query_vector,
                k=k,
                num_candidates=max(self._num_candidates, k),
            )
        except SearchUnavailable:
            raise
        except DeckRagError as exc:
            raise SearchUnavailable(
                message=f"Vector index query failed: {exc.message}",
                provider_name=self._index.get_provider_name(),
            ) from exc

        return hits[:k]

    def get_name(self) -> str:
        return "indexed"


class BruteForceRetriever(IRetriever):
    """In-process cosine ranking over every chunk in the document store.

    Chunks whose embedding dimension differs from the query are skipped
    with a warning instead of failing the whole search; such chunks come
    from an embedding model change and cannot be compared.
    """

    def __init__(self, document_store: IDocumentStore) -> None:
        self._document_store = document_store

    async def retrieve(self, query_vector: list[float], k: int) -> list[RetrievalHit]:
        if k <= 0:
            return []

        chunks = await self._document_store.list_chunks()
        scored: list[RetrievalHit] = []
        skipped = 0
        for chunk in chunks:
            if len(chunk.embedding) != len(query_vector):
                skipped += 1
                continue
            scored.append(
                RetrievalHit(
                    chunk_id=chunk.id,
                    document_id=chunk.document_id,
                    content=chunk.content,
                    score=cosine_similarity(query_vector, chunk.embedding),
                )
            )

        if skipped:
            logger.warning(
                "brute_force_dimension_skip",
                skipped=skipped,
                query_dimension=len(query_vector),
            )

        scored.sort(key=lambda hit: hit.score, reverse=True)
        logger.debug("brute_force_retrieve", scanned=len(chunks), returned=min(k, len(scored)))
        return scored[:k]

    def get_name(self) -> str:
        return "brute_force"


class FallbackRetriever(IRetriever):
    """Tries *primary*; uses *fallback* on ``SearchUnavailable`` or no hits."""

    def __init__(self, primary: IRetriever, fallback: IRetriever) -> None:
        self._primary = primary
        self._fallback = fallback

    async def retrieve(self, query_vector: list[float], k: int) -> list[RetrievalHit]:
        try:
            hits = await self._primary.retrieve(query_vector, k)
        except SearchUnavailable as exc:
            logger.info(
                "retrieval_fallback",
                primary=self._primary.get_name(),
                fallback=self._fallback.get_name(),
                reason=str(exc),
            )
            return await self._fallback.retrieve(query_vector, k)

        if not hits:
            logger.info(
                "retrieval_fallback",
                primary=self._primary.get_name(),
                fallback=self._fallback.get_name(),
                reason="no_results",
            )
            return await self._fallback.retrieve(query_vector, k)

        return hits

    def get_name(self) -> str:
        return f"{self._primary.get_name()}+{self._fallback.get_name()}"
