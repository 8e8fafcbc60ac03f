"""Document lifecycle models.

A :class:`Document` is created in ``processing`` state when a file is
uploaded and moves exactly once to a terminal state (``ready`` or
``error``).  The ingestion service owns that transition; the document store
enforces it by only updating rows that are still ``processing``.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# Inherits from (str, Enum) so statuses serialize as plain strings in JSON.
class DocumentStatus(str, Enum):  # noqa: UP042
    """Ingestion lifecycle state of an uploaded document."""

    PROCESSING = "processing"
    READY = "ready"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not DocumentStatus.PROCESSING


class Document(BaseModel):
    """An uploaded source file tracked through ingestion.

    ``chunk_count`` is only authoritative once ``status`` is ``ready``.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) of the document.")
    filename: str = Field(description="Stored filename of the upload.")
    original_name: str = Field(description="Filename as supplied by the uploader; used as display name.")
    mime_type: str = Field(default="", description="Declared MIME type of the upload.")
    file_size: int = Field(default=0, ge=0, description="Size of the upload in bytes.")
    status: DocumentStatus = Field(
        default=DocumentStatus.PROCESSING,
        description="Lifecycle state: processing, ready or error.",
    )
    error_message: str | None = Field(
        default=None,
        description="Failure description when status is error.",
    )
    chunk_count: int = Field(default=0, ge=0, description="Number of chunks derived from the document.")
    uploaded_at: datetime = Field(default_factory=_utcnow, description="Upload timestamp (UTC).")


class StoredUpload(BaseModel):
    """Original bytes of an uploaded file, kept for download."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    filename: str
    mime_type: str
    data: bytes
    uploaded_at: datetime = Field(default_factory=_utcnow)
