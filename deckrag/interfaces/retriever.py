"""Abstract base class for similarity retrievers.

Retrieval is modelled as interchangeable strategies behind one contract:
an index-backed retriever, a brute-force scan, and a composing retriever
that tries one and falls back to the other.  See
:mod:`deckrag.services.retrieval.retrievers`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from deckrag.models.rag import RetrievalHit


class IRetriever(ABC):
    """Contract for finding the chunks nearest to a query vector."""

    @abstractmethod
    async def retrieve(self, query_vector: list[float], k: int) -> list[RetrievalHit]:
        """Return at most *k* hits ordered by non-increasing score.

        Raises
        ------
        deckrag.utils.errors.SearchUnavailable
            If this strategy cannot serve the query at all.
        """

    @abstractmethod
    def get_name(self) -> str:
        """Return a short identifier used in logs, e.g. ``"indexed"``."""
