"""Unit tests for pydantic models and the in-memory query cache."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from deckrag.models.chat import ChatEvent, ChatEventType, ChatMessage
from deckrag.models.document import DocumentStatus
from deckrag.providers.cache.memory_cache import MemoryCacheProvider
from tests.conftest import make_chunk, make_document


class TestDocumentModels:
    def test_status_serializes_as_string(self) -> None:
        doc = make_document(status=DocumentStatus.READY)
        assert doc.model_dump(mode="json")["status"] == "ready"

    def test_only_processing_is_non_terminal(self) -> None:
        assert DocumentStatus.PROCESSING.is_terminal is False
        assert DocumentStatus.READY.is_terminal is True
        assert DocumentStatus.ERROR.is_terminal is True

    def test_documents_are_frozen(self) -> None:
        doc = make_document()
        with pytest.raises(ValidationError):
            doc.status = DocumentStatus.READY  # type: ignore[misc]

    def test_negative_chunk_offsets_rejected(self) -> None:
        chunk = make_chunk("doc", "text")
        with pytest.raises(ValidationError):
            chunk.metadata.model_validate({**chunk.metadata.model_dump(), "start_char": -1})


class TestChatModels:
    def test_role_is_restricted(self) -> None:
        with pytest.raises(ValidationError):
            ChatMessage(role="system", content="nope")  # type: ignore[arg-type]

    def test_event_defaults_to_empty_data(self) -> None:
        assert ChatEvent(type=ChatEventType.DONE).data == ""


class TestMemoryCache:
    @pytest.mark.asyncio
    async def test_set_get_delete(self) -> None:
        cache = MemoryCacheProvider(max_size=2, ttl=60)

        await cache.set("a", [0.1, 0.2])
        assert await cache.get("a") == [0.1, 0.2]
        assert await cache.exists("a") is True

        await cache.delete("a")
        assert await cache.get("a") is None

    @pytest.mark.asyncio
    async def test_evicts_when_full(self) -> None:
        cache = MemoryCacheProvider(max_size=2, ttl=60)
        for key in ("a", "b", "c"):
            await cache.set(key, key)
        assert await cache.exists("a") is False
        assert await cache.get("c") == "c"
