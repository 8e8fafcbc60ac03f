"""Abstract base class for native approximate-nearest-neighbour indexes.

The vector index is a secondary, query-optimised copy of the chunks held in
the document store.  It backs the primary retrieval path; when it is absent
or fails, retrieval falls back to an in-process scan of the document store.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from deckrag.models.rag import Chunk, RetrievalHit


# Concrete implementation: ChromaDBVectorIndex
# Located in: deckrag/providers/vector_index/
class IVectorIndexProvider(ABC):
    """Contract for vector-similarity indexes over pre-embedded chunks."""

    @abstractmethod
    async def upsert(self, chunks: list[Chunk]) -> int:
        """Add or replace *chunks* in the index.  Returns the number written."""

    @abstractmethod
    async def query(
        self,
        query_vector: list[float],
        k: int,
        num_candidates: int,
    ) -> list[RetrievalHit]:
        """Return up to *k* nearest chunks to *query_vector*.

        Parameters
        ----------
        query_vector:
            Pre-computed query embedding.
        k:
            Number of results to return.
        num_candidates:
            Size of the candidate pool requested from the index before
            projecting to *k*; larger pools improve recall.

        Returns
        -------
        list[RetrievalHit]
            Hits ordered by descending index relevance.  An empty index
            yields an empty list.

        Raises
        ------
        deckrag.utils.errors.SearchUnavailable
            If the index cannot be queried.
        """

    @abstractmethod
    async def delete_by_document(self, document_id: str) -> int:
        """Remove every entry owned by *document_id*.  Returns the count removed."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"chromadb"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the index is ready to serve queries."""
