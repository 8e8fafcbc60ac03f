"""Text chunking with overlapping, sentence-aligned windows.

Splits extracted document text into :class:`~deckrag.models.rag.TextChunk`
objects of roughly ``target_size`` characters (default 1000) with about
``overlap`` characters (default 200) shared between consecutive chunks.

The chunker first *normalizes* the text: line endings are unified, every
whitespace run collapses to one space and the ends are trimmed.  All
``start_char``/``end_char`` offsets refer to this normalized text, not to
the original bytes; the step is lossy (paragraph breaks and indentation are
gone).

Chunk boundaries always fall between sentences.  A sentence ends at ``.``,
``!`` or ``?`` followed by whitespace; this is a best-effort heuristic
(abbreviations such as "e.g." also split).  A single sentence longer than
``target_size`` is never cut, so such a chunk exceeds the target.

Because normalized text has exactly one space between sentences, every
chunk's content equals ``normalized[start_char:end_char]``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

import structlog

from deckrag.models.rag import ChunkMetadata, TextChunk

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_TARGET_SIZE = 1000
DEFAULT_OVERLAP = 200

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True)
class SourceText:
    """One document's text in a multi-document chunking batch."""

    text: str
    filename: str


def normalize_text(text: str) -> str:
    """Unify line endings, collapse whitespace runs to one space and trim."""
    return _WHITESPACE_RUN.sub(" ", text.replace("\r\n", "\n")).strip()


def split_sentences(text: str) -> list[str]:
    """Split *text* after sentence-ending punctuation followed by whitespace."""
    return [s for s in _SENTENCE_BOUNDARY.split(text) if s.strip()]


class TextChunker:
    """Splits text into overlapping, sentence-aligned character windows.

    The algorithm greedily packs sentences into the current chunk until the
    next one would push it past ``target_size``, closes the chunk, then
    seeds the next chunk with the closed chunk's trailing sentences whose
    combined length fits in ``overlap``.

    Parameters
    ----------
    target_size:
        Target maximum characters per chunk (default 1000).
    overlap:
        Maximum characters carried over between consecutive chunks
        (default 200).
    """

    def __init__(
        self,
        target_size: int = DEFAULT_TARGET_SIZE,
        overlap: int = DEFAULT_OVERLAP,
    ) -> None:
        if target_size <= 0:
            raise ValueError(f"target_size must be positive, got {target_size}")
        if overlap < 0 or overlap >= target_size:
            raise ValueError(
                f"overlap must be in [0, target_size), got {overlap} for target_size {target_size}"
            )
        self._target_size = target_size
        self._overlap = overlap

    @property
    def target_size(self) -> int:
        return self._target_size

    @property
    def overlap(self) -> int:
        return self._overlap

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, source_file: str) -> list[TextChunk]:
        """Split *text* into overlapping :class:`TextChunk` objects.

        Parameters
        ----------
        text:
            Raw extracted text; normalized before splitting.
        source_file:
            Filename recorded in every chunk's metadata.

        Returns
        -------
        list[TextChunk]
            Chunks indexed ``0..n-1``.  Empty (or whitespace-only) input
            returns an empty list.
        """
        normalized = normalize_text(text)
        if not normalized:
            return []

        if len(normalized) <= self._target_size:
            return [self._make_chunk(normalized, 0, 0, source_file)]

        chunks = self._accumulate(split_sentences(normalized), source_file)

        logger.debug(
            "chunking_complete",
            source_file=source_file,
            num_chunks=len(chunks),
            normalized_length=len(normalized),
        )
        return chunks

    def chunk_documents(self, documents: list[SourceText]) -> list[TextChunk]:
        """Chunk several documents independently, then re-index globally.

        The returned sequence is indexed ``0..N-1`` across all documents, in
        input order; offsets stay relative to each document's own
        normalized text.
        """
        combined: list[TextChunk] = []
        for doc in documents:
            combined.extend(self.chunk(doc.text, doc.filename))

        return [
            chunk.model_copy(
                update={
                    "index": i,
                    "metadata": chunk.metadata.model_copy(update={"chunk_index": i}),
                }
            )
            for i, chunk in enumerate(combined)
        ]

    # ------------------------------------------------------------------
    # Sentence accumulation
    # ------------------------------------------------------------------

    def _accumulate(self, sentences: list[str], source_file: str) -> list[TextChunk]:
        chunks: list[TextChunk] = []
        current: list[str] = []
        current_length = 0
        start_char = 0

        for sentence in sentences:
            # +1 for the joining space when the chunk is not empty.
            sentence_length = len(sentence) + (1 if current else 0)

            if current_length + sentence_length > self._target_size and current:
                content = " ".join(current)
                chunks.append(self._make_chunk(content, len(chunks), start_char, source_file))

                current, overlap_length = self._tail_overlap(current)
                current_length = overlap_length
                if current:
                    start_char = start_char + len(content) - overlap_length
                else:
                    # Nothing carried over; skip the space before the next sentence.
                    start_char = start_char + len(content) + 1
                sentence_length = len(sentence) + (1 if current else 0)

            current.append(sentence)
            current_length += sentence_length

        if current:
            content = " ".join(current)
            chunks.append(self._make_chunk(content, len(chunks), start_char, source_file))

        return chunks

    def _tail_overlap(self, sentences: list[str]) -> tuple[list[str], int]:
        """Return trailing *sentences* whose joined length is <= ``overlap``."""
        tail: list[str] = []
        length = 0
        for sentence in reversed(sentences):
            added = len(sentence) + (1 if tail else 0)
            if length + added > self._overlap:
                break
            tail.insert(0, sentence)
            length += added
        return tail, length

    @staticmethod
    def _make_chunk(content: str, index: int, start_char: int, source_file: str) -> TextChunk:
        return TextChunk(
            content=content,
            index=index,
            metadata=ChunkMetadata(
                chunk_index=index,
                source_file=source_file,
                start_char=start_char,
                end_char=start_char + len(content),
            ),
        )
