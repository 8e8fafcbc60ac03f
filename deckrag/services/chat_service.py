"""Streaming RAG answers for the chat endpoint.

For each question the service:

  1. RETRIEVE -- embeds the query and fetches the top-k chunks through the
                 vector store (primary index or brute-force fallback).
  2. SOURCES  -- emits one ``sources`` event carrying those chunks as a
                 JSON array, so the client can render citations early.
  3. PROMPT   -- frames the numbered context snippets, the trailing chat
                 history and the question for the LLM.
  4. STREAM   -- forwards each generated text delta as a ``token`` event,
                 unbuffered and in arrival order.
  5. DONE     -- always ends the stream with a ``done`` event.

Failures never escape the stream: a retrieval failure or a generation
failure (even after some tokens) becomes a single ``error`` event, which
is still followed by ``done``.
"""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Sequence

import structlog

from deckrag.interfaces.llm_provider import ILLMProvider
from deckrag.models.chat import ChatEvent, ChatEventType, ChatMessage
from deckrag.models.rag import RetrievedContext
from deckrag.services.retrieval.vector_store import VectorStore
from deckrag.utils.errors import DeckRagError, StreamGenerationFailed
from deckrag.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)


class ChatService:
    """Answers questions over the uploaded documents as an event stream.

    Parameters
    ----------
    vector_store:
        Retrieval facade used to find context for the question.
    llm:
        Generation backend; only :meth:`ILLMProvider.stream` is used.
    top_k:
        Number of context chunks per question (default 5).
    history_messages:
        Trailing history messages included in the prompt (default 6, i.e.
        the last three exchanges).
    """

    _SYSTEM_PROMPT = (
        'You are a helpful AI assistant for "Leave a Mark", a presentation '
        "agency. Answer the user's question based on the provided context "
        "from their uploaded documents."
    )

    _INSTRUCTIONS = (
        "Instructions:\n"
        "- Answer based on the provided context when available\n"
        "- If the context doesn't contain relevant information, say so honestly\n"
        "- Be concise but thorough\n"
        "- When referencing information, mention which source it came from\n"
        "- Format your response in a clear, readable way"
    )

    def __init__(
        self,
        vector_store: VectorStore,
        llm: ILLMProvider,
        top_k: int = 5,
        history_messages: int = 6,
        temperature: float = 0.4,
        max_tokens: int = 2048,
    ) -> None:
        self._vector_store = vector_store
        self._llm = llm
        self._top_k = top_k
        self._history_messages = history_messages
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def stream_answer(
        self,
        query: str,
        history: Sequence[ChatMessage] = (),
    ) -> AsyncIterator[ChatEvent]:
        """Yield ``sources``, then ``token`` events, then ``done``.

        On failure, a single ``error`` event replaces the remaining tokens
        and the stream still ends with ``done``.
        """
        try:
            contexts = await self._vector_store.search_text(query, self._top_k)
        except Exception as exc:
            failure = StreamGenerationFailed(
                message=f"Could not search documents: {_describe(exc)}",
                provider_name=getattr(exc, "provider_name", None),
            )
            logger.error(
                "chat_retrieval_failed",
                error=str(failure),
                error_type=type(exc).__name__,
                query_length=len(query),
            )
            yield ChatEvent(type=ChatEventType.ERROR, data=failure.message)
            yield ChatEvent(type=ChatEventType.DONE)
            return

        yield ChatEvent(
            type=ChatEventType.SOURCES,
            data=json.dumps([c.model_dump() for c in contexts]),
        )

        user_prompt = self.build_prompt(query, contexts, history)
        token_count = 0
        try:
            async for token in self._llm.stream(
                self._SYSTEM_PROMPT,
                user_prompt,
                temperature=self._temperature,
                max_tokens=self._max_tokens,
            ):
                if token:
                    token_count += 1
                    yield ChatEvent(type=ChatEventType.TOKEN, data=token)
        except Exception as exc:
            failure = StreamGenerationFailed(
                message=f"Answer generation failed after {token_count} tokens: {_describe(exc)}",
                provider_name=self._llm.get_provider_name(),
            )
            logger.error(
                "chat_stream_failed",
                error=str(failure),
                error_type=type(exc).__name__,
                tokens_sent=token_count,
            )
            yield ChatEvent(type=ChatEventType.ERROR, data=failure.message)
        else:
            logger.info(
                "chat_answer_streamed",
                sources=len(contexts),
                tokens=token_count,
                provider=self._llm.get_provider_name(),
            )

        yield ChatEvent(type=ChatEventType.DONE)

    def build_prompt(
        self,
        query: str,
        contexts: Sequence[RetrievedContext],
        history: Sequence[ChatMessage] = (),
    ) -> str:
        """Assemble the user prompt: context, recent history, question, instructions.

        The context and history sections are omitted when empty.
        """
        sections: list[str] = []

        if contexts:
            sections.append("CONTEXT FROM DOCUMENTS:\n" + self._format_contexts(contexts))

        history_text = self._format_history(history)
        if history_text:
            sections.append("CONVERSATION HISTORY:\n" + history_text)

        sections.append(f"USER QUESTION: {query}")
        sections.append(self._INSTRUCTIONS)
        return "\n\n".join(sections)

    @staticmethod
    def _format_contexts(contexts: Sequence[RetrievedContext]) -> str:
        return "\n\n".join(
            f"[Source {i}: {c.filename}]\n{c.content}" for i, c in enumerate(contexts, start=1)
        )

    def _format_history(self, history: Sequence[ChatMessage]) -> str:
        if self._history_messages <= 0:
            return ""
        recent = list(history)[-self._history_messages :]
        return "\n".join(
            f"{'User' if m.role == 'user' else 'Assistant'}: {m.content}" for m in recent
        )


def _describe(exc: Exception) -> str:
    """Client-facing text for a failure; falls back to the exception type when blank."""
    if isinstance(exc, DeckRagError):
        return exc.message
    return str(exc) or type(exc).__name__
