"""Embedding provider adapters.

    - OpenAIEmbeddingProvider - OpenAI or any OpenAI-compatible endpoint
      (Gemini text-embedding-004 via its compatibility URL)
    - NomicEmbeddingProvider  - nomic-embed-text via a local Ollama server
"""

from deckrag.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from deckrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["NomicEmbeddingProvider", "OpenAIEmbeddingProvider"]
