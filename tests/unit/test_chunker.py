"""Unit tests for the TextChunker: sentence-aligned overlapping character windows."""

from __future__ import annotations

import pytest

from deckrag.services.ingestion.chunker import (
    SourceText,
    TextChunker,
    normalize_text,
    split_sentences,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_chunker(target_size: int = 1000, overlap: int = 200) -> TextChunker:
    return TextChunker(target_size=target_size, overlap=overlap)


def _reconstruct(chunks) -> str:  # noqa: ANN001
    """Stitch chunks back together using their offsets into the normalized text."""
    text = ""
    for chunk in chunks:
        start = chunk.metadata.start_char
        text = text[:start] + chunk.content
    return text


# ---------------------------------------------------------------------------
# Normalization
# ---------------------------------------------------------------------------


class TestNormalization:
    def test_collapses_whitespace_and_trims(self) -> None:
        assert normalize_text("  Hello\r\n\r\n  world\t\tagain.  ") == "Hello world again."

    def test_split_sentences_on_terminal_punctuation(self) -> None:
        assert split_sentences("One. Two! Three? Four") == ["One.", "Two!", "Three?", "Four"]

    def test_abbreviations_also_split(self) -> None:
        # Heuristic boundary: "e.g. " is treated as a sentence end.
        assert len(split_sentences("Use colour e.g. red for emphasis.")) == 2


# ---------------------------------------------------------------------------
# Small inputs
# ---------------------------------------------------------------------------


class TestSmallInputs:
    def test_empty_string_yields_no_chunks(self) -> None:
        assert _make_chunker().chunk("", "empty.txt") == []

    def test_whitespace_only_yields_no_chunks(self) -> None:
        assert _make_chunker().chunk(" \n\t\r\n ", "blank.txt") == []

    def test_short_text_is_one_normalized_chunk(self) -> None:
        text = "Slide 1:\n  Our   mission.\r\nSlide 2:\n  Our team."
        chunks = _make_chunker().chunk(text, "deck.pptx")

        assert len(chunks) == 1
        assert chunks[0].content == normalize_text(text)
        assert chunks[0].index == 0
        assert chunks[0].metadata.start_char == 0
        assert chunks[0].metadata.end_char == len(normalize_text(text))
        assert chunks[0].metadata.source_file == "deck.pptx"

    def test_text_exactly_target_size_is_one_chunk(self) -> None:
        text = "a" * 99 + "."
        chunks = _make_chunker(target_size=100, overlap=20).chunk(text, "exact.txt")
        assert len(chunks) == 1


# ---------------------------------------------------------------------------
# Windowing
# ---------------------------------------------------------------------------


class TestWindowing:
    def test_forty_char_sentences_make_three_chunks(self, forty_char_sentences: str) -> None:
        chunks = _make_chunker().chunk(forty_char_sentences, "brief.txt")

        assert len(chunks) == 3
        assert [c.index for c in chunks] == [0, 1, 2]

    def test_second_chunk_starts_with_tail_of_first(self, forty_char_sentences: str) -> None:
        chunks = _make_chunker().chunk(forty_char_sentences, "brief.txt")

        first_sentences = split_sentences(chunks[0].content)
        second_sentences = split_sentences(chunks[1].content)
        # Four 40-char sentences (163 chars joined) fit in a 200-char overlap.
        assert second_sentences[:4] == first_sentences[-4:]
        assert second_sentences[0].startswith("Sentence 20")

    def test_offsets_index_into_normalized_text(self, forty_char_sentences: str) -> None:
        normalized = normalize_text(forty_char_sentences)
        chunks = _make_chunker().chunk(forty_char_sentences, "brief.txt")

        for chunk in chunks:
            meta = chunk.metadata
            assert normalized[meta.start_char : meta.end_char] == chunk.content
            assert meta.end_char - meta.start_char == len(chunk.content)

    def test_successive_ranges_overlap(self, forty_char_sentences: str) -> None:
        chunks = _make_chunker().chunk(forty_char_sentences, "brief.txt")
        for prev, nxt in zip(chunks, chunks[1:]):
            assert nxt.metadata.start_char < prev.metadata.end_char

    def test_overlap_removal_reconstructs_input(self, forty_char_sentences: str) -> None:
        chunks = _make_chunker().chunk(forty_char_sentences, "brief.txt")
        assert _reconstruct(chunks) == normalize_text(forty_char_sentences)

    def test_chunks_stay_within_target_plus_overlap(self) -> None:
        sentences = [f"Point {i} is about {'audience ' * (i % 7)}focus." for i in range(200)]
        chunks = _make_chunker(target_size=300, overlap=60).chunk(" ".join(sentences), "notes.md")

        assert len(chunks) > 1
        for chunk in chunks:
            assert len(chunk.content) <= 300 + 60

    def test_oversized_sentence_is_kept_whole(self) -> None:
        giant = "word " * 100 + "end."
        text = f"Short opener. {giant} Short closer."
        chunks = _make_chunker(target_size=100, overlap=20).chunk(text, "long.txt")

        assert any(c.content.strip() == giant.strip() or giant.strip() in c.content for c in chunks)
        assert max(len(c.content) for c in chunks) > 100

    def test_zero_overlap_gives_disjoint_ranges(self, forty_char_sentences: str) -> None:
        chunks = _make_chunker(overlap=0).chunk(forty_char_sentences, "brief.txt")
        for prev, nxt in zip(chunks, chunks[1:]):
            assert nxt.metadata.start_char == prev.metadata.end_char + 1


# ---------------------------------------------------------------------------
# Multi-document batches
# ---------------------------------------------------------------------------


class TestChunkDocuments:
    def test_global_reindexing_across_documents(self, forty_char_sentences: str) -> None:
        chunker = _make_chunker()
        chunks = chunker.chunk_documents(
            [
                SourceText(text=forty_char_sentences, filename="a.txt"),
                SourceText(text="A short second document.", filename="b.md"),
            ]
        )

        assert [c.index for c in chunks] == [0, 1, 2, 3]
        assert [c.metadata.chunk_index for c in chunks] == [0, 1, 2, 3]
        assert chunks[3].metadata.source_file == "b.md"
        assert chunks[3].metadata.start_char == 0

    def test_empty_documents_contribute_nothing(self) -> None:
        chunks = _make_chunker().chunk_documents(
            [SourceText(text="", filename="empty.txt"), SourceText(text="Hi.", filename="hi.txt")]
        )
        assert len(chunks) == 1
        assert chunks[0].index == 0


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class TestConfiguration:
    @pytest.mark.parametrize(("target_size", "overlap"), [(0, 0), (100, 100), (100, -1)])
    def test_invalid_configuration_rejected(self, target_size: int, overlap: int) -> None:
        with pytest.raises(ValueError):
            TextChunker(target_size=target_size, overlap=overlap)
