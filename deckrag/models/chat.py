"""Chat models: client-held conversation messages and streamed answer events."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from deckrag.models.rag import RetrievedContext


class ChatMessage(BaseModel):
    """One turn of the conversation, as sent back by the client."""

    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    sources: list[RetrievedContext] | None = None


class ChatEventType(str, Enum):  # noqa: UP042
    """Named Server-Sent-Event types emitted by the chat streamer."""

    SOURCES = "sources"
    TOKEN = "token"
    DONE = "done"
    ERROR = "error"


class ChatEvent(BaseModel):
    """A single event of an answer stream.

    ``data`` is a JSON array for ``sources``, raw text for ``token``, empty
    for ``done`` and a human-readable message for ``error``.
    """

    model_config = ConfigDict(frozen=True)

    type: ChatEventType
    data: str = Field(default="")
