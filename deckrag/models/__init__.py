"""deckrag domain models - re-exports all public model classes.

    - document.py - Document lifecycle (status, metadata, stored upload bytes)
    - rag.py      - Extraction output, chunks, retrieval hits and context
    - chat.py     - Conversation messages and streamed answer events
"""

from deckrag.models.chat import ChatEvent, ChatEventType, ChatMessage
from deckrag.models.document import Document, DocumentStatus, StoredUpload
from deckrag.models.rag import (
    Chunk,
    ChunkMetadata,
    ExtractedContent,
    ExtractionMetadata,
    RetrievalHit,
    RetrievedContext,
    TextChunk,
)

__all__ = [
    "ChatEvent",
    "ChatEventType",
    "ChatMessage",
    "Chunk",
    "ChunkMetadata",
    "Document",
    "DocumentStatus",
    "ExtractedContent",
    "ExtractionMetadata",
    "RetrievalHit",
    "RetrievedContext",
    "StoredUpload",
    "TextChunk",
]
