"""Embedding client: retry, backoff, batching and vector similarity.

Sits between the pipeline and an :class:`IEmbeddingProvider`:

- :meth:`EmbeddingClient.embed` retries a single text up to
  ``max_attempts`` times with exponential backoff (1 s, 2 s, ...), then
  raises :class:`EmbeddingFailed` chained to the last provider error.
- :meth:`EmbeddingClient.embed_batch` splits inputs into groups of
  ``batch_size``, embeds each group's items with bounded parallelism and
  sleeps ``batch_delay`` seconds between groups to stay under provider
  rate limits.  Output order always matches input order.
- :func:`cosine_similarity` compares two vectors.
"""

from __future__ import annotations

import asyncio
import math
from collections.abc import Sequence

import structlog

from deckrag.interfaces.embedding_provider import IEmbeddingProvider
from deckrag.utils.concurrency import throttled_gather
from deckrag.utils.errors import DimensionMismatch, EmbeddingFailed

logger = structlog.get_logger(logger_name=__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of *a* and *b*.

    Returns ``0.0`` when either vector has zero magnitude.

    Raises
    ------
    DimensionMismatch
        If the vectors differ in length.
    """
    if len(a) != len(b):
        raise DimensionMismatch(
            message=f"Vectors must have the same length: {len(a)} != {len(b)}"
        )

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (math.sqrt(norm_a) * math.sqrt(norm_b))


class EmbeddingClient:
    """Resilient front-end over an embedding provider.

    Parameters
    ----------
    provider:
        The embedding backend.
    max_attempts:
        Attempts per text before giving up (default 3).
    initial_delay:
        Backoff before the second attempt, in seconds; doubles on each
        further retry (default 1.0).
    batch_size:
        Number of texts per group in :meth:`embed_batch` (default 100).
    batch_concurrency:
        Maximum in-flight embedding calls within one group (default 10).
    batch_delay:
        Pause between groups in seconds (default 0.5).
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        max_attempts: int = 3,
        initial_delay: float = 1.0,
        batch_size: int = 100,
        batch_concurrency: int = 10,
        batch_delay: float = 0.5,
    ) -> None:
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self._provider = provider
        self._max_attempts = max_attempts
        self._initial_delay = initial_delay
        self._batch_size = batch_size
        self._batch_concurrency = max(1, batch_concurrency)
        self._batch_delay = batch_delay

    @property
    def provider_name(self) -> str:
        return self._provider.get_provider_name()

    @property
    def dimension(self) -> int:
        return self._provider.get_dimension()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        """Embed one text, retrying with exponential backoff.

        Raises
        ------
        EmbeddingFailed
            After ``max_attempts`` failures; ``__cause__`` is the last
            underlying error.
        """
        last_error: Exception | None = None
        for attempt in range(self._max_attempts):
            try:
                return await self._provider.embed_single(text)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                logger.warning(
                    "embedding_attempt_failed",
                    attempt=attempt + 1,
                    max_attempts=self._max_attempts,
                    provider=self.provider_name,
                    error=str(exc),
                )
                if attempt < self._max_attempts - 1:
                    await asyncio.sleep(self._initial_delay * (2**attempt))

        raise EmbeddingFailed(
            message=(
                f"Embedding failed after {self._max_attempts} attempts "
                f"({len(text)} chars): {last_error}"
            ),
            provider_name=self.provider_name,
        ) from last_error

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* in groups, preserving input order.

        Raises
        ------
        EmbeddingFailed
            If any single text exhausts its retries.
        """
        embeddings: list[list[float]] = []
        total_groups = math.ceil(len(texts) / self._batch_size)
        semaphore = asyncio.Semaphore(self._batch_concurrency)

        for group_number, start in enumerate(range(0, len(texts), self._batch_size), start=1):
            group = texts[start : start + self._batch_size]
            logger.debug(
                "embedding_batch_group",
                group=group_number,
                total_groups=total_groups,
                size=len(group),
            )
            results = await throttled_gather(
                [self.embed(t) for t in group],
                semaphore=semaphore,
                return_exceptions=False,
            )
            embeddings.extend(results)  # type: ignore[arg-type]

            if start + self._batch_size < len(texts):
                await asyncio.sleep(self._batch_delay)

        return embeddings

    @staticmethod
    def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
        return cosine_similarity(a, b)
