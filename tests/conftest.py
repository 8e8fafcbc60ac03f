"""Shared pytest fixtures for the deckrag test suite."""

from __future__ import annotations

import hashlib
import struct
import uuid
from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio

from deckrag.interfaces.embedding_provider import IEmbeddingProvider
from deckrag.interfaces.llm_provider import ILLMProvider
from deckrag.models.document import Document, DocumentStatus
from deckrag.models.rag import Chunk, ChunkMetadata
from deckrag.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from deckrag.services.embedding_client import EmbeddingClient
from deckrag.services.ingestion.chunker import TextChunker
from deckrag.services.ingestion.ingestion_service import IngestionService
from deckrag.services.ingestion.text_extractor import TextExtractor
from deckrag.services.retrieval.retrievers import BruteForceRetriever, FallbackRetriever, IndexedRetriever
from deckrag.services.retrieval.vector_store import VectorStore
from deckrag.utils.errors import LLMError

_EMBEDDING_DIM = 32


# ---------------------------------------------------------------------------
# Deterministic embedding provider
# ---------------------------------------------------------------------------


def _hash_to_vector(text: str, dim: int = _EMBEDDING_DIM) -> list[float]:
    """Generate a deterministic unit vector by hashing *text*.

    Same text always produces the same vector.
    """
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    raw = digest
    while len(raw) < dim * 2:
        raw += hashlib.sha256(raw).digest()
    raw = raw[: dim * 2]
    # Signed 16-bit ints rather than floats: raw bytes can decode to NaN.
    values = [float(v) for v in struct.unpack(f"<{dim}h", raw)]
    magnitude = max(sum(v * v for v in values) ** 0.5, 1e-10)
    return [v / magnitude for v in values]


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    ``fail_on`` makes every call whose text contains that marker raise.
    """

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[str] = []

    async def embed(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_single(t) for t in texts]

    async def embed_single(self, text: str) -> list[float]:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise RuntimeError(f"embedding backend rejected text containing {self.fail_on!r}")
        return _hash_to_vector(text)

    def get_dimension(self) -> int:
        return _EMBEDDING_DIM

    def get_provider_name(self) -> str:
        return "mock-embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Scripted streaming LLM
# ---------------------------------------------------------------------------


class FakeStreamingLLM(ILLMProvider):
    """LLM that streams a fixed token list, optionally failing after some tokens."""

    def __init__(self, tokens: list[str] | None = None, fail_after: int | None = None) -> None:
        self.tokens = tokens if tokens is not None else ["Hello", ", ", "world", "."]
        self.fail_after = fail_after
        self.prompts: list[tuple[str, str]] = []

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> str:
        return "".join(self.tokens)

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 2048,
    ) -> AsyncIterator[str]:
        self.prompts.append((system_prompt, user_prompt))
        for i, token in enumerate(self.tokens):
            if self.fail_after is not None and i >= self.fail_after:
                raise LLMError(message="upstream stream reset", provider_name="fake")
            yield token

    def get_provider_name(self) -> str:
        return "fake-llm"

    def is_available(self) -> bool:
        return True

    async def validate_credentials(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def make_document(
    original_name: str = "deck.pdf",
    status: DocumentStatus = DocumentStatus.PROCESSING,
    document_id: str | None = None,
) -> Document:
    doc_id = document_id or str(uuid.uuid4())
    return Document(
        id=doc_id,
        filename=f"{doc_id}.pdf",
        original_name=original_name,
        mime_type="application/pdf",
        file_size=1024,
        status=status,
    )


def make_chunk(
    document_id: str,
    content: str,
    index: int = 0,
    embedding: list[float] | None = None,
    source_file: str = "deck.pdf",
) -> Chunk:
    return Chunk(
        id=str(uuid.uuid4()),
        document_id=document_id,
        content=content,
        embedding=embedding if embedding is not None else _hash_to_vector(content),
        metadata=ChunkMetadata(
            chunk_index=index,
            source_file=source_file,
            start_char=0,
            end_char=len(content),
        ),
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_root() -> Path:
    return Path(__file__).parent.parent


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    return MockEmbeddingProvider()


@pytest.fixture
def embedding_client(mock_embedding_provider: MockEmbeddingProvider) -> EmbeddingClient:
    return EmbeddingClient(provider=mock_embedding_provider, initial_delay=0.0, batch_delay=0.0)


@pytest_asyncio.fixture
async def document_store(tmp_path: Path) -> SQLiteDocumentStore:
    store = SQLiteDocumentStore(db_path=tmp_path / "deckrag-test.db")
    await store.initialize()
    return store


@pytest.fixture
def vector_store(document_store: SQLiteDocumentStore, embedding_client: EmbeddingClient) -> VectorStore:
    """Vector store with no native index, so every search takes the brute-force path."""
    retriever = FallbackRetriever(
        primary=IndexedRetriever(None),
        fallback=BruteForceRetriever(document_store),
    )
    return VectorStore(
        document_store=document_store,
        retriever=retriever,
        embedding_client=embedding_client,
    )


@pytest.fixture
def ingestion_service(
    document_store: SQLiteDocumentStore,
    embedding_client: EmbeddingClient,
    vector_store: VectorStore,
) -> IngestionService:
    return IngestionService(
        extractor=TextExtractor(),
        chunker=TextChunker(),
        embedding_client=embedding_client,
        vector_store=vector_store,
        document_store=document_store,
        embed_delay=0.0,
    )


@pytest.fixture
def forty_char_sentences() -> str:
    """60 sentences of exactly 40 characters each, separated by single spaces."""
    sentences = [(f"Sentence {i:02d} " + "x" * 40)[:39] + "." for i in range(60)]
    return " ".join(sentences)
