"""Nomic embedding provider adapter (local/free via Ollama).

Talks to the OpenAI-compatible ``/v1`` endpoint exposed by Ollama to
implement :class:`IEmbeddingProvider` with ``nomic-embed-text``
(768 dimensions).  No API key required.
"""

from __future__ import annotations

import httpx
import openai
import structlog

from deckrag.config.settings import Settings
from deckrag.interfaces.embedding_provider import IEmbeddingProvider
from deckrag.utils.errors import ProviderError

logger = structlog.get_logger(logger_name=__name__)

_OLLAMA_BATCH_LIMIT = 512


class NomicEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by ``nomic-embed-text`` served via Ollama.

    Produces 768-dimensional vectors, matching ``text-embedding-004``.
    Inputs longer than 512 texts are sent in several requests.
    """

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            api_key="ollama",  # Ollama ignores the key but the SDK requires one
        )
        self._model = "nomic-embed-text"
        self._dimension = 768

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in input order, at most 512 per Ollama request.

        Raises
        ------
        ProviderError
            If any request fails; vectors from earlier batches are discarded.
        """
        if not texts:
            return []

        try:
            all_embeddings: list[list[float]] = []
            for start in range(0, len(texts), _OLLAMA_BATCH_LIMIT):
                batch = texts[start : start + _OLLAMA_BATCH_LIMIT]
                response = await self._client.embeddings.create(
                    input=batch,
                    model=self._model,
                )
                all_embeddings.extend(item.embedding for item in response.data)
                logger.debug("nomic_embedding_batch", model=self._model, batch_size=len(batch))
            return all_embeddings
        except openai.APIError as exc:
            raise ProviderError(
                message=f"Nomic/Ollama embedding API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        """Embed one text (a single-item :meth:`embed` call)."""
        result = await self.embed([text])
        return result[0]

    def get_dimension(self) -> int:
        """Return 768 (nomic-embed-text dimension)."""
        return self._dimension

    def get_provider_name(self) -> str:
        return "nomic_embedding"

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server answers on ``/api/tags``."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
            return response.status_code == 200
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
