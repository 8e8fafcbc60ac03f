"""Unit tests for the ChromaDB vector index adapter.

Runs against a real on-disk ChromaDB collection under ``tmp_path``;
embeddings come from the deterministic hash vectors in ``conftest``.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from deckrag.providers.vector_index.chromadb_index import ChromaDBVectorIndex
from deckrag.services.retrieval.retrievers import IndexedRetriever
from deckrag.utils.errors import ProviderError, SearchUnavailable
from tests.conftest import _hash_to_vector, make_chunk


@pytest.fixture()
def index(tmp_path: Path) -> ChromaDBVectorIndex:
    return ChromaDBVectorIndex(persist_directory=str(tmp_path / "chroma"), collection_name="test_chunks")


class TestChromaDBVectorIndex:
    def test_provider_metadata(self, index: ChromaDBVectorIndex) -> None:
        assert index.get_provider_name() == "chromadb"
        assert index.is_available() is True
        assert index.count() == 0

    @pytest.mark.asyncio
    async def test_upsert_and_query_exact_match(self, index: ChromaDBVectorIndex) -> None:
        chunks = [make_chunk("doc-1", text, index=i) for i, text in enumerate(["alpha", "beta", "gamma"])]

        assert await index.upsert(chunks) == 3
        hits = await index.query(_hash_to_vector("beta"), k=2, num_candidates=100)

        assert len(hits) == 2
        assert hits[0].content == "beta"
        assert hits[0].document_id == "doc-1"
        assert hits[0].score == pytest.approx(1.0, abs=1e-4)
        assert hits[0].score >= hits[1].score

    @pytest.mark.asyncio
    async def test_upsert_replaces_same_id(self, index: ChromaDBVectorIndex) -> None:
        chunk = make_chunk("doc-1", "first version")
        await index.upsert([chunk])
        await index.upsert([chunk.model_copy(update={"content": "second version"})])

        assert index.count() == 1

    @pytest.mark.asyncio
    async def test_empty_index_returns_nothing(self, index: ChromaDBVectorIndex) -> None:
        assert await index.query(_hash_to_vector("q"), k=5, num_candidates=100) == []
        assert await index.upsert([]) == 0

    @pytest.mark.asyncio
    async def test_delete_by_document(self, index: ChromaDBVectorIndex) -> None:
        await index.upsert([make_chunk("keep", "kept"), make_chunk("drop", "d1"), make_chunk("drop", "d2")])

        assert await index.delete_by_document("drop") == 2
        assert await index.delete_by_document("drop") == 0
        assert index.count() == 1

    @pytest.mark.asyncio
    async def test_query_failure_raises_search_unavailable(self, index: ChromaDBVectorIndex) -> None:
        await index.upsert([make_chunk("doc-1", "alpha")])

        # Wrong dimension is rejected by the collection.
        with pytest.raises(SearchUnavailable):
            await index.query([0.1, 0.2], k=1, num_candidates=10)

    @pytest.mark.asyncio
    async def test_upsert_failure_raises_provider_error(self, index: ChromaDBVectorIndex) -> None:
        index._collection = MagicMock()
        index._collection.upsert.side_effect = RuntimeError("disk full")

        with pytest.raises(ProviderError):
            await index.upsert([make_chunk("doc-1", "alpha")])

    @pytest.mark.asyncio
    async def test_backs_indexed_retriever(self, index: ChromaDBVectorIndex) -> None:
        await index.upsert([make_chunk("doc-1", text, index=i) for i, text in enumerate(["one", "two", "three"])])

        hits = await IndexedRetriever(index, num_candidates=10).retrieve(_hash_to_vector("three"), 1)

        assert [h.content for h in hits] == ["three"]
