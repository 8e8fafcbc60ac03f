"""Exception hierarchy for deckrag.

Every error carries a human-readable ``message`` and an optional
``provider_name`` naming the external service involved ("openai",
"chromadb", "sqlite", ...).  Subclasses only override ``default_message``
unless they carry extra context.

    DeckRagError
    +-- UnsupportedFileType      extraction cannot route the upload
    +-- ExtractionFailed         PDF / slide-deck parse failure
    +-- EmbeddingFailed          retries exhausted for one text
    +-- DimensionMismatch        vectors of unequal length compared
    +-- SearchUnavailable        native vector index absent or failing
    +-- StreamGenerationFailed   answer generation failed mid-stream
    +-- LLMError                 LLM API call failure
    +-- ProviderError            embedding / vector-index SDK failure
    +-- StorageError             document store failure
    +-- DocumentNotFound         unknown document id
    +-- SeedInProgress           seed lease held by another worker
    +-- ConfigurationError       invalid or missing startup config

Ingestion-stage errors end up as a terminal ``error`` document status.
``SearchUnavailable`` never reaches the user; it selects the in-process
fallback retriever.
"""


class DeckRagError(Exception):
    """Base exception for all deckrag errors.

    ``str(err)`` prefixes the provider in brackets, e.g.
    ``[openai] Rate limit exceeded``.
    """

    default_message = "An unexpected error occurred"

    def __init__(self, message: str | None = None, provider_name: str | None = None) -> None:
        self._message = message or self.default_message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

class UnsupportedFileType(DeckRagError):
    """No extractor accepts the declared MIME type or the extension."""

    def __init__(
        self,
        file_type: str,
        message: str | None = None,
        provider_name: str | None = None,
    ) -> None:
        self._file_type = file_type
        super().__init__(message or f"Unsupported file type: {file_type}", provider_name)

    @property
    def file_type(self) -> str:
        return self._file_type


class ExtractionFailed(DeckRagError):
    default_message = "Text extraction failed"


class EmbeddingFailed(DeckRagError):
    """Every retry for one text's embedding failed; the last error is ``__cause__``."""

    default_message = "Embedding generation failed"


class DimensionMismatch(DeckRagError):
    default_message = "Vector dimensions do not match"


# ---------------------------------------------------------------------------
# Retrieval and generation
# ---------------------------------------------------------------------------

class SearchUnavailable(DeckRagError):
    """The native vector index is absent or its query failed."""

    default_message = "Vector index search is unavailable"


class StreamGenerationFailed(DeckRagError):
    default_message = "Answer generation failed"


# ---------------------------------------------------------------------------
# Providers and storage
# ---------------------------------------------------------------------------

class LLMError(DeckRagError):
    default_message = "LLM API call failed"


class ProviderError(DeckRagError):
    """An embedding or vector-index SDK call failed."""

    default_message = "Provider call failed"


class StorageError(DeckRagError):
    default_message = "Document store operation failed"


class DocumentNotFound(DeckRagError):
    def __init__(self, document_id: str, provider_name: str | None = None) -> None:
        self._document_id = document_id
        super().__init__(f"Document not found: {document_id}", provider_name)

    @property
    def document_id(self) -> str:
        return self._document_id


class SeedInProgress(DeckRagError):
    default_message = "Sample data seeding is already in progress"


class ConfigurationError(DeckRagError):
    default_message = "Invalid or missing configuration"
