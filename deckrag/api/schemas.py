"""Pydantic request/response schemas for the deckrag API.

Request schemas end with ``Request``, response schemas with ``Response``.
Documents are returned as the :class:`~deckrag.models.document.Document`
model itself; only envelopes and endpoint-specific shapes live here.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from deckrag.models.chat import ChatMessage


class ChatRequest(BaseModel):
    """A question plus the client-held conversation so far."""

    message: str = Field(default="", max_length=4000)
    history: list[ChatMessage] = Field(default_factory=list)


class DeleteDocumentResponse(BaseModel):
    success: bool


class SeedResponse(BaseModel):
    """Outcome of a sample-data seed run."""

    seeded: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)
    failed: list[str] = Field(default_factory=list)


class HealthResponse(BaseModel):
    """Application health check response."""

    status: str
    version: str
    providers: dict[str, Any]
    chunk_count: int = 0


class ErrorResponse(BaseModel):
    """Standard error response body."""

    error: str
    detail: str | None = None
