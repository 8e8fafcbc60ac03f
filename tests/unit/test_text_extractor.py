"""Unit tests for TextExtractor routing and the PDF / PPTX / text handlers."""

from __future__ import annotations

import io
from pathlib import Path

import fitz
import pytest
from pptx import Presentation
from pptx.util import Inches

from deckrag.services.ingestion.text_extractor import (
    MARKDOWN_MIME,
    PDF_MIME,
    PPTX_MIME,
    TEXT_MIME,
    TextExtractor,
    guess_mime_type,
    is_supported,
)
from deckrag.utils.errors import ExtractionFailed, UnsupportedFileType

# ---------------------------------------------------------------------------
# Fixture builders
# ---------------------------------------------------------------------------

_BLANK_LAYOUT = 6


def _build_pptx(slides: list[list[str]], notes: dict[int, str] | None = None) -> bytes:
    """Build a deck with one text box per slide; *notes* is keyed by 0-based slide index."""
    prs = Presentation()
    for position, paragraphs in enumerate(slides):
        slide = prs.slides.add_slide(prs.slide_layouts[_BLANK_LAYOUT])
        frame = slide.shapes.add_textbox(Inches(1), Inches(1), Inches(6), Inches(2)).text_frame
        frame.text = paragraphs[0] if paragraphs else ""
        for text in paragraphs[1:]:
            frame.add_paragraph().text = text
        if notes and position in notes:
            slide.notes_slide.notes_text_frame.text = notes[position]
    return _save(prs)


def _save(prs: Presentation) -> bytes:
    buffer = io.BytesIO()
    prs.save(buffer)
    return buffer.getvalue()


def _build_pdf(pages: list[str]) -> bytes:
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


class TestRouting:
    def test_plain_text_returned_unchanged(self) -> None:
        text = "Line one.\n\n   Line   two with  spacing.\n"
        result = TextExtractor().extract(text.encode("utf-8"), "notes.txt", TEXT_MIME)

        assert result.text == text
        assert result.metadata.mime_type == TEXT_MIME
        assert result.metadata.page_count is None

    def test_markdown_by_extension_when_mime_missing(self) -> None:
        result = TextExtractor().extract(b"# Title\n\nBody.", "README.MD", "")
        assert result.metadata.mime_type == MARKDOWN_MIME
        assert result.text.startswith("# Title")

    def test_mime_type_wins_over_extension(self) -> None:
        # Declared text/plain with a misleading extension is decoded as text.
        result = TextExtractor().extract(b"just text", "upload.pdf", TEXT_MIME)
        assert result.text == "just text"
        assert result.metadata.mime_type == TEXT_MIME

    def test_unknown_mime_falls_back_to_extension(self) -> None:
        result = TextExtractor().extract(b"notes", "notes.txt", "application/octet-stream")
        assert result.metadata.mime_type == TEXT_MIME

    def test_invalid_utf8_is_replaced(self) -> None:
        result = TextExtractor().extract(b"caf\xe9 menu", "menu.txt", TEXT_MIME)
        assert result.text == "caf� menu"

    def test_unsupported_type_carries_offending_type(self) -> None:
        with pytest.raises(UnsupportedFileType) as exc_info:
            TextExtractor().extract(b"GIF89a", "logo.gif", "image/gif")
        assert exc_info.value.file_type == "image/gif"

    def test_unsupported_extension_without_mime(self) -> None:
        with pytest.raises(UnsupportedFileType) as exc_info:
            TextExtractor().extract(b"{}", "data.json", "")
        assert exc_info.value.file_type == ".json"


class TestAllowList:
    @pytest.mark.parametrize(
        ("filename", "mime", "expected"),
        [
            ("a.pdf", "", True),
            ("a.PPTX", "", True),
            ("a.md", "", True),
            ("a.bin", PDF_MIME, True),
            ("a.docx", "application/msword", False),
            ("noext", "", False),
        ],
    )
    def test_is_supported(self, filename: str, mime: str, expected: bool) -> None:
        assert is_supported(filename, mime) is expected

    def test_guess_mime_type(self) -> None:
        assert guess_mime_type("deck.pptx") == PPTX_MIME
        assert guess_mime_type("x.zip") == "application/octet-stream"


# ---------------------------------------------------------------------------
# PDF
# ---------------------------------------------------------------------------


class TestPDF:
    def test_extracts_text_and_page_count(self) -> None:
        data = _build_pdf(["Quarterly results", "Next steps"])
        result = TextExtractor().extract(data, "report.pdf", PDF_MIME)

        assert result.metadata.page_count == 2
        assert "Quarterly results" in result.text
        assert "Next steps" in result.text
        assert result.text.index("Quarterly") < result.text.index("Next steps")

    def test_corrupt_pdf_raises_extraction_failed(self) -> None:
        with pytest.raises(ExtractionFailed) as exc_info:
            TextExtractor().extract(b"%PDF-1.4 not really a pdf", "broken.pdf", PDF_MIME)
        assert "broken.pdf" in exc_info.value.message


# ---------------------------------------------------------------------------
# PPTX
# ---------------------------------------------------------------------------


class TestPPTX:
    def test_slides_in_order_with_markers(self) -> None:
        data = _build_pptx([["Intro"], ["Problem"], ["Appendix"]])
        result = TextExtractor().extract(data, "deck.pptx", PPTX_MIME)

        assert result.text.index("Slide 1:\nIntro") < result.text.index("Slide 2:\nProblem")
        assert result.text.index("Slide 2:") < result.text.index("Slide 3:\nAppendix")
        assert result.metadata.slide_count == 3

    def test_reordered_deck_follows_presentation_order(self) -> None:
        prs = Presentation(io.BytesIO(_build_pptx([["Intro"], ["Problem"], ["Appendix"]])))
        slide_ids = prs.slides._sldIdLst
        first = slide_ids[0]
        slide_ids.remove(first)
        slide_ids.append(first)

        result = TextExtractor().extract(_save(prs), "deck.pptx", PPTX_MIME)

        assert "Slide 1:\nProblem" in result.text
        assert "Slide 3:\nIntro" in result.text
        assert result.text.index("Problem") < result.text.index("Appendix") < result.text.index("Intro")

    def test_paragraphs_become_lines(self) -> None:
        data = _build_pptx([["Leave a Mark", "Pricing from 5k"]])
        result = TextExtractor().extract(data, "deck.pptx", PPTX_MIME)
        assert "Leave a Mark\nPricing from 5k" in result.text

    def test_speaker_notes_follow_their_slide(self) -> None:
        data = _build_pptx([["Pricing"], ["Timeline"]], notes={0: "Mention the rush fee"})
        result = TextExtractor().extract(data, "deck.pptx", "")

        assert "Notes 1:\nMention the rush fee" in result.text
        assert result.text.index("Mention the rush fee") < result.text.index("Timeline")

    def test_table_and_group_text_included(self) -> None:
        prs = Presentation()
        slide = prs.slides.add_slide(prs.slide_layouts[_BLANK_LAYOUT])
        table = slide.shapes.add_table(1, 2, Inches(1), Inches(1), Inches(4), Inches(1)).table
        table.cell(0, 0).text = "Tier"
        table.cell(0, 1).text = "Price"
        group = slide.shapes.add_group_shape()
        group.shapes.add_textbox(Inches(1), Inches(3), Inches(2), Inches(1)).text_frame.text = "Grouped caption"

        result = TextExtractor().extract(_save(prs), "deck.pptx", PPTX_MIME)

        assert "Tier\nPrice" in result.text
        assert "Grouped caption" in result.text

    def test_slide_count_is_at_least_one(self) -> None:
        result = TextExtractor().extract(_build_pptx([]), "empty.pptx", PPTX_MIME)
        assert result.metadata.slide_count == 1

    def test_not_a_zip_raises_extraction_failed(self) -> None:
        with pytest.raises(ExtractionFailed) as exc_info:
            TextExtractor().extract(b"plain bytes", "fake.pptx", PPTX_MIME)
        assert "fake.pptx" in exc_info.value.message


# ---------------------------------------------------------------------------
# Files on disk
# ---------------------------------------------------------------------------


class TestExtractFile:
    def test_reads_and_routes_by_extension(self, tmp_path: Path) -> None:
        path = tmp_path / "guide.md"
        path.write_text("# Guide\n\nKeep it short.", encoding="utf-8")

        result = TextExtractor().extract_file(path)

        assert result.metadata.filename == "guide.md"
        assert result.metadata.mime_type == MARKDOWN_MIME
        assert "Keep it short." in result.text
