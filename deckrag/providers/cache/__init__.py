"""Cache providers.

MemoryCacheProvider is a process-local TTL cache used for query
embeddings.  For multi-worker deployments, swap in a Redis adapter
implementing ICacheProvider without changing any business logic.
"""

from deckrag.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
