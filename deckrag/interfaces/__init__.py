"""Public interface definitions for external services and strategies.

Business logic talks to storage and AI services only through the abstract
base classes defined here.  Concrete adapters live in ``deckrag/providers/``
and are wired together in ``deckrag/main.py`` at application startup, so a
provider swap touches one line and tests can inject fakes.

CONCRETE PROVIDER MAP:
    Interface               →  Concrete implementations
    ─────────────────────────────────────────────────────────────────────
    ILLMProvider            →  OpenAILLMProvider, AnthropicLLMProvider,
                               OllamaLLMProvider
    IEmbeddingProvider      →  OpenAIEmbeddingProvider, NomicEmbeddingProvider
    IDocumentStore          →  SQLiteDocumentStore
    IVectorIndexProvider    →  ChromaDBVectorIndex
    ICacheProvider          →  MemoryCacheProvider
    IRetriever              →  IndexedRetriever, BruteForceRetriever,
                               FallbackRetriever (deckrag/services/retrieval/)
"""

from deckrag.interfaces.cache_provider import ICacheProvider
from deckrag.interfaces.document_store import IDocumentStore
from deckrag.interfaces.embedding_provider import IEmbeddingProvider
from deckrag.interfaces.llm_provider import ILLMProvider
from deckrag.interfaces.retriever import IRetriever
from deckrag.interfaces.vector_index_provider import IVectorIndexProvider

__all__ = [
    "ICacheProvider",
    "IDocumentStore",
    "IEmbeddingProvider",
    "ILLMProvider",
    "IRetriever",
    "IVectorIndexProvider",
]
