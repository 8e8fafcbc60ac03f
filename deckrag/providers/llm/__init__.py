"""LLM provider adapters.

Three concrete implementations of ILLMProvider (deckrag/interfaces/llm_provider.py):
    - AnthropicLLMProvider - Claude via the Messages API
    - OpenAILLMProvider    - gpt-4o-mini, or any OpenAI-compatible API
                             (Gemini, TogetherAI, Groq) via OPENAI_BASE_URL
    - OllamaLLMProvider    - local models via an Ollama server

At startup main.py picks the first provider with credentials configured
(Anthropic, then OpenAI, then Ollama) and stores it on app.state.
"""

from deckrag.providers.llm.anthropic_provider import AnthropicLLMProvider
from deckrag.providers.llm.ollama_provider import OllamaLLMProvider
from deckrag.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["AnthropicLLMProvider", "OllamaLLMProvider", "OpenAILLMProvider"]
