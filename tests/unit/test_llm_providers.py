"""Unit tests for LLM provider adapters - OpenAI, Anthropic, Ollama."""

from __future__ import annotations

from collections.abc import AsyncIterator
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from deckrag.config.settings import Settings
from deckrag.utils.errors import LLMError


# ======================================================================
# Shared helpers
# ======================================================================

def _settings(**overrides) -> Settings:
    defaults = {
        "openai_api_key": "sk-test",
        "openai_base_url": "",
        "openai_text_model": "",
        "openai_embedding_model": "",
        "anthropic_api_key": "test-anthropic",
        "ollama_base_url": "http://localhost:11434",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def _openai_chunk(text: str | None) -> MagicMock:
    return MagicMock(choices=[MagicMock(delta=MagicMock(content=text))])


async def _aiter(items: list) -> AsyncIterator:
    for item in items:
        yield item


async def _failing_aiter(items: list, error: Exception) -> AsyncIterator:
    for item in items:
        yield item
    raise error


def _openai_api_error(message: str = "Rate limit") -> Exception:
    import openai

    return openai.APIError(
        message=message,
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions"),
        body=None,
    )


class _FakeAnthropicStream:
    """Async context manager standing in for ``messages.stream(...)``."""

    def __init__(self, texts: list[str]) -> None:
        self.text_stream = _aiter(texts)

    async def __aenter__(self) -> _FakeAnthropicStream:
        return self

    async def __aexit__(self, *exc_info) -> None:
        return None


# ======================================================================
# OpenAI LLM Provider
# ======================================================================


class TestOpenAILLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_provider_label_depends_on_base_url(self, settings: Settings) -> None:
        from deckrag.providers.llm.openai_provider import OpenAILLMProvider

        assert OpenAILLMProvider(settings).get_provider_name() == "openai"
        compat = OpenAILLMProvider(_settings(openai_base_url="https://example.test/v1/"))
        assert compat.get_provider_name() == "openai-compatible"

    def test_is_available_without_key(self) -> None:
        from deckrag.providers.llm.openai_provider import OpenAILLMProvider

        assert OpenAILLMProvider(_settings(openai_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_stream_yields_non_empty_deltas(self, settings: Settings) -> None:
        from deckrag.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_aiter([_openai_chunk("Hel"), _openai_chunk(None), _openai_chunk("lo")])
        )

        with patch("deckrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            tokens = [t async for t in provider.stream("system", "user", temperature=0.4, max_tokens=50)]

        assert tokens == ["Hel", "lo"]
        kwargs = mock_client.chat.completions.create.call_args.kwargs
        assert kwargs["stream"] is True
        assert kwargs["temperature"] == 0.4
        assert kwargs["messages"][0] == {"role": "system", "content": "system"}

    @pytest.mark.asyncio
    async def test_stream_error_mid_way_becomes_llm_error(self, settings: Settings) -> None:
        from deckrag.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_failing_aiter([_openai_chunk("partial")], _openai_api_error("connection reset"))
        )

        with patch("deckrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            provider = OpenAILLMProvider(settings)
            received: list[str] = []
            with pytest.raises(LLMError):
                async for token in provider.stream("s", "u"):
                    received.append(token)

        assert received == ["partial"]

    @pytest.mark.asyncio
    async def test_complete_returns_content(self, settings: Settings) -> None:
        from deckrag.providers.llm.openai_provider import OpenAILLMProvider

        response = MagicMock()
        response.choices = [MagicMock(message=MagicMock(content="An answer"))]
        response.usage = MagicMock(total_tokens=12)
        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(return_value=response)

        with patch("deckrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            result = await OpenAILLMProvider(settings).complete("s", "u")

        assert result == "An answer"

    @pytest.mark.asyncio
    async def test_complete_api_error(self, settings: Settings) -> None:
        from deckrag.providers.llm.openai_provider import OpenAILLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(side_effect=_openai_api_error())

        with patch("deckrag.providers.llm.openai_provider.openai.AsyncOpenAI", return_value=mock_client):
            with pytest.raises(LLMError) as exc_info:
                await OpenAILLMProvider(settings).complete("s", "u")
        assert exc_info.value.provider_name == "openai"


# ======================================================================
# Anthropic LLM Provider
# ======================================================================


class TestAnthropicLLMProvider:
    @pytest.fixture()
    def settings(self) -> Settings:
        return _settings()

    def test_availability_follows_key(self, settings: Settings) -> None:
        from deckrag.providers.llm.anthropic_provider import AnthropicLLMProvider

        assert AnthropicLLMProvider(settings).is_available() is True
        assert AnthropicLLMProvider(_settings(anthropic_api_key="")).is_available() is False

    @pytest.mark.asyncio
    async def test_stream_uses_text_stream(self, settings: Settings) -> None:
        from deckrag.providers.llm.anthropic_provider import AnthropicLLMProvider

        mock_client = MagicMock()
        mock_client.messages.stream = MagicMock(return_value=_FakeAnthropicStream(["Brand ", "", "voice"]))

        with patch("deckrag.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            provider = AnthropicLLMProvider(settings)
            tokens = [t async for t in provider.stream("system prompt", "user prompt")]

        assert tokens == ["Brand ", "voice"]
        kwargs = mock_client.messages.stream.call_args.kwargs
        assert kwargs["system"] == "system prompt"
        assert kwargs["messages"] == [{"role": "user", "content": "user prompt"}]

    @pytest.mark.asyncio
    async def test_complete_joins_text_blocks(self, settings: Settings) -> None:
        from deckrag.providers.llm.anthropic_provider import AnthropicLLMProvider

        response = MagicMock()
        response.content = [MagicMock(type="text", text="Part one"), MagicMock(type="tool_use")]
        response.usage = MagicMock(input_tokens=5, output_tokens=3)
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(return_value=response)

        with patch("deckrag.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            result = await AnthropicLLMProvider(settings).complete("s", "u")

        assert result == "Part one"

    @pytest.mark.asyncio
    async def test_complete_without_text_raises(self, settings: Settings) -> None:
        from deckrag.providers.llm.anthropic_provider import AnthropicLLMProvider

        response = MagicMock()
        response.content = []
        mock_client = MagicMock()
        mock_client.messages.create = AsyncMock(return_value=response)

        with patch("deckrag.providers.llm.anthropic_provider.anthropic.AsyncAnthropic", return_value=mock_client):
            with pytest.raises(LLMError):
                await AnthropicLLMProvider(settings).complete("s", "u")


# ======================================================================
# Ollama LLM Provider
# ======================================================================


class TestOllamaLLMProvider:
    def test_provider_name(self) -> None:
        from deckrag.providers.llm.ollama_provider import OllamaLLMProvider

        assert OllamaLLMProvider(_settings()).get_provider_name() == "ollama"

    @pytest.mark.asyncio
    async def test_stream(self) -> None:
        from deckrag.providers.llm.ollama_provider import OllamaLLMProvider

        mock_client = AsyncMock()
        mock_client.chat.completions.create = AsyncMock(
            return_value=_aiter([_openai_chunk("local"), _openai_chunk(" answer")])
        )

        with patch("deckrag.providers.llm.ollama_provider.openai.AsyncOpenAI", return_value=mock_client):
            tokens = [t async for t in OllamaLLMProvider(_settings()).stream("s", "u")]

        assert tokens == ["local", " answer"]
        assert mock_client.chat.completions.create.call_args.kwargs["model"] == "llama3.1"

    @pytest.mark.asyncio
    async def test_validate_credentials_unreachable_server(self) -> None:
        from deckrag.providers.llm.ollama_provider import OllamaLLMProvider

        provider = OllamaLLMProvider(_settings(ollama_base_url="http://127.0.0.1:9"))
        with patch(
            "deckrag.providers.llm.ollama_provider.httpx.AsyncClient.get",
            new=AsyncMock(side_effect=httpx.ConnectError("refused")),
        ):
            assert await provider.validate_credentials() is False
