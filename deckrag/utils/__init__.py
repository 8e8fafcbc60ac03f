"""Utility modules for deckrag.

- **errors** -- Domain-specific exception hierarchy rooted at DeckRagError;
  each pipeline stage raises its own subclass so callers can handle failures
  at exactly the right level (ingestion turns them into an ``error`` document
  status, the chat streamer turns them into an ``error`` SSE event).
- **concurrency** -- ``throttled_gather``, a semaphore-bounded
  ``asyncio.gather`` used for batch embedding.
- **logging** -- structlog setup with a dual renderer: coloured console in
  development, JSON in production.
"""
