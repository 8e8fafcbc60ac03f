"""RAG pipeline data models.

Pydantic v2 models for the write path (extracted text, chunker output,
persisted chunks) and the read path (raw retrieval hits and enriched
retrieved context).  All models are frozen.

Write path::

    bytes --TextExtractor--> ExtractedContent
          --TextChunker----> list[TextChunk]
          --EmbeddingClient + IngestionService--> list[Chunk]

Read path::

    query vector --IRetriever--> list[RetrievalHit]
                 --VectorStore--> list[RetrievedContext]   (display names resolved)
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------
class ExtractionMetadata(BaseModel):
    """Basic facts about an extracted file.

    ``slide_count`` is a best-effort heuristic derived from text markers,
    not an authoritative count.
    """

    model_config = ConfigDict(frozen=True)

    filename: str
    mime_type: str
    page_count: int | None = Field(default=None, ge=0)
    slide_count: int | None = Field(default=None, ge=0)


class ExtractedContent(BaseModel):
    """Plain text pulled out of an uploaded file."""

    model_config = ConfigDict(frozen=True)

    text: str
    metadata: ExtractionMetadata


# ---------------------------------------------------------------------------
# Chunking
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Position of a chunk within its source.

    Offsets refer to the whitespace-normalized text produced by the
    chunker, not to the original byte stream.
    """

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0, description="Zero-based ordinal within the ingestion batch.")
    source_file: str = Field(description="Filename the chunk was cut from.")
    start_char: int = Field(ge=0, description="Start offset in the normalized text.")
    end_char: int = Field(ge=0, description="End offset (exclusive) in the normalized text.")


class TextChunk(BaseModel):
    """A chunk produced by the chunker, before embedding."""

    model_config = ConfigDict(frozen=True)

    content: str
    index: int = Field(ge=0)
    metadata: ChunkMetadata


class Chunk(BaseModel):
    """A persisted, embedded chunk owned by exactly one document."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) of the chunk.")
    document_id: str = Field(description="Id of the owning document.")
    content: str = Field(description="The chunk's text.")
    embedding: list[float] = Field(description="Embedding vector of the content.")
    metadata: ChunkMetadata


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------
class RetrievalHit(BaseModel):
    """A chunk matched by a retriever, before display-name resolution."""

    model_config = ConfigDict(frozen=True)

    chunk_id: str
    document_id: str
    content: str
    score: float = Field(description="Cosine similarity or store-native relevance.")


class RetrievedContext(BaseModel):
    """A retrieved chunk enriched with its owning document's display name.

    Serialized as the payload of the ``sources`` chat event.
    """

    model_config = ConfigDict(frozen=True)

    content: str
    document_id: str
    filename: str = Field(description='Display name of the owning document, or "Unknown".')
    score: float = Field(description="Cosine similarity in [-1, 1] or index relevance.")
