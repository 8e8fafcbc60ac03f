"""deckrag FastAPI application entry point.

Wires providers, services and routes together via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml`` and configures
structured logging at import time.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any

import structlog
import uvicorn
from fastapi import FastAPI

from deckrag.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from deckrag.api.routes import router as api_router
from deckrag.config.loader import load_config
from deckrag.config.settings import Settings
from deckrag.interfaces.embedding_provider import IEmbeddingProvider
from deckrag.interfaces.llm_provider import ILLMProvider
from deckrag.interfaces.vector_index_provider import IVectorIndexProvider
from deckrag.providers.cache.memory_cache import MemoryCacheProvider
from deckrag.providers.document_store.sqlite_document_store import SQLiteDocumentStore
from deckrag.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from deckrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from deckrag.providers.llm.anthropic_provider import AnthropicLLMProvider
from deckrag.providers.llm.ollama_provider import OllamaLLMProvider
from deckrag.providers.llm.openai_provider import OpenAILLMProvider
from deckrag.services.chat_service import ChatService
from deckrag.services.embedding_client import EmbeddingClient
from deckrag.services.ingestion.chunker import TextChunker
from deckrag.services.ingestion.ingestion_service import IngestionService
from deckrag.services.ingestion.text_extractor import TextExtractor
from deckrag.services.retrieval.retrievers import (
    BruteForceRetriever,
    FallbackRetriever,
    IndexedRetriever,
)
from deckrag.services.retrieval.vector_store import VectorStore
from deckrag.services.seed_service import SeedService
from deckrag.utils.errors import DeckRagError
from deckrag.utils.logging import configure_logging, get_logger

_APP_VERSION = "0.1.0"

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
)
_logger: structlog.BoundLogger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Provider selection
# ---------------------------------------------------------------------------


def _build_llm_provider(app_settings: Settings) -> ILLMProvider:
    """Select the first configured LLM provider.

    Priority order: Anthropic -> OpenAI -> Ollama (always available).
    """
    if app_settings.anthropic_api_key:
        return AnthropicLLMProvider(settings=app_settings)
    if app_settings.openai_api_key:
        return OpenAILLMProvider(settings=app_settings)
    return OllamaLLMProvider(settings=app_settings)


def _build_embedding_provider(app_settings: Settings) -> IEmbeddingProvider | None:
    """Select the first available embedding provider.

    Priority: OpenAI/OpenAI-compatible (if API key set) -> Nomic/Ollama
    (if reachable).  Returns ``None`` if neither is available.
    """
    if app_settings.openai_api_key:
        provider: IEmbeddingProvider = OpenAIEmbeddingProvider(settings=app_settings)
        if provider.is_available():
            return provider

    provider = NomicEmbeddingProvider(settings=app_settings)
    if provider.is_available():
        return provider

    return None


def _build_vector_index(app_settings: Settings) -> IVectorIndexProvider | None:
    """Open the ChromaDB index, or return ``None`` when disabled or broken.

    The import is deferred so deployments with the index disabled never
    load chromadb.
    """
    if not app_settings.vector_index_enabled:
        return None
    try:
        from deckrag.providers.vector_index.chromadb_index import ChromaDBVectorIndex

        return ChromaDBVectorIndex(
            persist_directory=app_settings.chromadb_persist_dir,
            collection_name=app_settings.chromadb_collection,
        )
    except (DeckRagError, OSError, ValueError) as exc:
        _logger.warning("vector_index_disabled", error=str(exc))
        return None


# ---------------------------------------------------------------------------
# Full DI assembly
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings, app_config: dict[str, Any] | None = None) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    cfg = app_config if app_config is not None else config

    # -- Providers --
    llm = _build_llm_provider(app_settings)
    embedding_provider = _build_embedding_provider(app_settings)
    embedding_available = embedding_provider is not None
    if embedding_provider is None:
        _logger.warning(
            "no_embedding_provider",
            message="Set OPENAI_API_KEY or start Ollama; ingestion and chat will fail until then.",
        )
        embedding_provider = NomicEmbeddingProvider(settings=app_settings)

    document_store = SQLiteDocumentStore(db_path=app_settings.database_path)
    vector_index = _build_vector_index(app_settings)
    cache_cfg = cfg["cache"]
    query_cache = MemoryCacheProvider(max_size=cache_cfg["max_size"], ttl=cache_cfg["ttl"])

    # -- Services --
    emb_cfg = cfg["embedding"]
    embedding_client = EmbeddingClient(
        provider=embedding_provider,
        max_attempts=emb_cfg["max_attempts"],
        initial_delay=emb_cfg["initial_delay"],
        batch_size=emb_cfg["batch_size"],
        batch_concurrency=emb_cfg["batch_concurrency"],
        batch_delay=emb_cfg["batch_delay"],
    )

    retrieval_cfg = cfg["retrieval"]
    retriever = FallbackRetriever(
        primary=IndexedRetriever(vector_index, num_candidates=retrieval_cfg["num_candidates"]),
        fallback=BruteForceRetriever(document_store),
    )
    vector_store = VectorStore(
        document_store=document_store,
        retriever=retriever,
        embedding_client=embedding_client,
        index=vector_index,
        query_cache=query_cache,
        default_k=retrieval_cfg["top_k"],
    )

    chunk_cfg = cfg["chunking"]
    ingestion_service = IngestionService(
        extractor=TextExtractor(),
        chunker=TextChunker(target_size=chunk_cfg["target_size"], overlap=chunk_cfg["overlap"]),
        embedding_client=embedding_client,
        vector_store=vector_store,
        document_store=document_store,
        embed_delay=cfg["ingestion"]["embed_delay"],
    )

    chat_cfg = cfg["chat"]
    chat_service = ChatService(
        vector_store=vector_store,
        llm=llm,
        top_k=retrieval_cfg["top_k"],
        history_messages=chat_cfg["history_messages"],
        temperature=chat_cfg["temperature"],
        max_tokens=chat_cfg["max_tokens"],
    )

    seed_service = SeedService(
        ingestion_service=ingestion_service,
        document_store=document_store,
        lease_ttl_seconds=cfg["seed"]["lease_ttl_seconds"],
    )

    # -- Provider registry for /health --
    provider_registry: dict[str, Any] = {
        "llm": llm.is_available(),
        "llm_provider": llm.get_provider_name(),
        "embedding": embedding_available,
        "embedding_provider": embedding_client.provider_name,
        "vector_index": vector_index is not None,
        "cache": True,
    }

    return {
        "document_store": document_store,
        "vector_index": vector_index,
        "vector_store": vector_store,
        "ingestion_service": ingestion_service,
        "chat_service": chat_service,
        "seed_service": seed_service,
        "provider_registry": provider_registry,
        "primary_llm_name": llm.get_provider_name(),
        "max_upload_bytes": app_settings.max_upload_bytes,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup."""
    components = _build_all(settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    await components["document_store"].initialize()

    _logger.info(
        "app_startup",
        version=_APP_VERSION,
        environment=settings.app_env,
        primary_llm=components["primary_llm_name"],
        vector_index=components["vector_index"] is not None,
    )

    yield

    _logger.info("app_shutdown")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app() -> FastAPI:
    """Build and configure the FastAPI application."""
    application = FastAPI(
        title="deckrag API",
        version=_APP_VERSION,
        description=(
            "Upload presentation source material (PDF, PPTX, TXT, Markdown) and "
            "chat with it: retrieval-augmented answers streamed over Server-Sent "
            "Events with source citations."
        ),
        lifespan=_lifespan,
    )

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application)

    application.include_router(api_router)
    return application


app = create_app()


if __name__ == "__main__":
    uvicorn.run(
        "deckrag.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=(settings.app_env == "development"),
    )
