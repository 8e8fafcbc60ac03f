"""Plain-text extraction from uploaded PDF, PPTX, TXT and Markdown files.

Routing checks the declared MIME type first, then the filename extension
(case-insensitive):

- PDF  -> PyMuPDF (``fitz``), one text block per page, ``page_count`` set.
- PPTX -> python-pptx, slides in presentation order.  Text comes from text
  frames, tables and grouped shapes; speaker notes follow their slide.
  Each slide is prefixed with a ``Slide N:`` marker and ``slide_count`` is
  the number of such markers found in the final text (at least 1).
- TXT/MD -> UTF-8 decode; invalid bytes are replaced, never fatal.
"""

from __future__ import annotations

import io
import re
import zipfile
from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog
from pptx import Presentation
from pptx.exc import PackageNotFoundError
from pptx.shapes.base import BaseShape
from pptx.shapes.group import GroupShape
from pptx.text.text import TextFrame

from deckrag.models.rag import ExtractedContent, ExtractionMetadata
from deckrag.utils.errors import ExtractionFailed, UnsupportedFileType

logger = structlog.get_logger(logger_name=__name__)

PDF_MIME = "application/pdf"
PPTX_MIME = "application/vnd.openxmlformats-officedocument.presentationml.presentation"
TEXT_MIME = "text/plain"
MARKDOWN_MIME = "text/markdown"

SUPPORTED_MIME_TYPES: frozenset[str] = frozenset({PDF_MIME, PPTX_MIME, TEXT_MIME, MARKDOWN_MIME})
SUPPORTED_EXTENSIONS: frozenset[str] = frozenset({".pdf", ".pptx", ".txt", ".md"})

_MIME_BY_EXTENSION: dict[str, str] = {
    ".pdf": PDF_MIME,
    ".pptx": PPTX_MIME,
    ".txt": TEXT_MIME,
    ".md": MARKDOWN_MIME,
}

_SLIDE_MARKER = re.compile(r"Slide \d+|slide\d+", re.IGNORECASE)


def is_supported(filename: str, mime_type: str = "") -> bool:
    """Return ``True`` if *mime_type* or the extension of *filename* is allowed."""
    return mime_type in SUPPORTED_MIME_TYPES or Path(filename).suffix.lower() in SUPPORTED_EXTENSIONS


def guess_mime_type(filename: str) -> str:
    """Map a filename extension to its MIME type (``application/octet-stream`` if unknown)."""
    return _MIME_BY_EXTENSION.get(Path(filename).suffix.lower(), "application/octet-stream")


class TextExtractor:
    """Turns raw upload bytes into :class:`ExtractedContent`.

    Stateless; one instance is shared by the ingestion service and the CLI.
    """

    def extract(self, data: bytes, filename: str, mime_type: str = "") -> ExtractedContent:
        """Extract plain text from *data*.

        Parameters
        ----------
        data:
            Raw file bytes.
        filename:
            Original filename; its extension is the routing fallback.
        mime_type:
            Declared MIME type, may be empty.

        Raises
        ------
        UnsupportedFileType
            If neither the MIME type nor the extension is supported.
        ExtractionFailed
            If a PDF or PPTX cannot be parsed.
        """
        ext = Path(filename).suffix.lower()
        routed = mime_type if mime_type in SUPPORTED_MIME_TYPES else _MIME_BY_EXTENSION.get(ext)

        if routed == PDF_MIME:
            content = self._extract_pdf(data, filename)
        elif routed == PPTX_MIME:
            content = self._extract_pptx(data, filename)
        elif routed in (TEXT_MIME, MARKDOWN_MIME):
            content = self._extract_text(data, filename, routed)
        else:
            raise UnsupportedFileType(file_type=mime_type or ext or filename)

        logger.info(
            "text_extracted",
            filename=filename,
            mime_type=content.metadata.mime_type,
            chars=len(content.text),
            page_count=content.metadata.page_count,
            slide_count=content.metadata.slide_count,
        )
        return content

    def extract_file(self, file_path: str | Path) -> ExtractedContent:
        """Read *file_path* from disk and extract it, guessing the MIME type."""
        path = Path(file_path)
        return self.extract(path.read_bytes(), path.name, guess_mime_type(path.name))

    # ------------------------------------------------------------------
    # Format handlers
    # ------------------------------------------------------------------

    @staticmethod
    def _extract_pdf(data: bytes, filename: str) -> ExtractedContent:
        try:
            with fitz.open(stream=data, filetype="pdf") as doc:
                pages = [page.get_text("text") for page in doc]
        except Exception as exc:
            raise ExtractionFailed(
                message=f"Could not parse PDF {filename}: {exc}",
                provider_name="pymupdf",
            ) from exc

        return ExtractedContent(
            text="\n\n".join(p.strip() for p in pages if p.strip()),
            metadata=ExtractionMetadata(
                filename=filename,
                mime_type=PDF_MIME,
                page_count=len(pages),
            ),
        )

    @staticmethod
    def _extract_pptx(data: bytes, filename: str) -> ExtractedContent:
        try:
            presentation = Presentation(io.BytesIO(data))
            sections: list[str] = []
            # Iterates in the deck's slide order, not by slideN.xml part name.
            for number, slide in enumerate(presentation.slides, start=1):
                lines = [line for shape in slide.shapes for line in _shape_lines(shape)]
                sections.append(f"Slide {number}:\n" + "\n".join(lines))
                notes_frame = slide.notes_slide.notes_text_frame if slide.has_notes_slide else None
                notes = _frame_lines(notes_frame) if notes_frame is not None else []
                if notes:
                    sections.append(f"Notes {number}:\n" + "\n".join(notes))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError, SyntaxError) as exc:
            raise ExtractionFailed(
                message=f"Could not parse PPTX {filename}: {exc}",
                provider_name="python-pptx",
            ) from exc

        text = "\n\n".join(s.rstrip() for s in sections)
        return ExtractedContent(
            text=text,
            metadata=ExtractionMetadata(
                filename=filename,
                mime_type=PPTX_MIME,
                slide_count=len(_SLIDE_MARKER.findall(text)) or 1,
            ),
        )

    @staticmethod
    def _extract_text(data: bytes, filename: str, mime_type: str) -> ExtractedContent:
        return ExtractedContent(
            text=data.decode("utf-8", errors="replace"),
            metadata=ExtractionMetadata(filename=filename, mime_type=mime_type),
        )


# ----------------------------------------------------------------------
# PPTX helpers
# ----------------------------------------------------------------------


def _frame_lines(text_frame: TextFrame) -> list[str]:
    """Non-empty paragraph texts of *text_frame*, runs already joined."""
    return [p.text.strip() for p in text_frame.paragraphs if p.text.strip()]


def _shape_lines(shape: BaseShape) -> list[str]:
    """Text lines of one slide shape, descending into groups and tables."""
    if isinstance(shape, GroupShape):
        return [line for child in shape.shapes for line in _shape_lines(child)]
    if shape.has_text_frame:
        return _frame_lines(shape.text_frame)
    if shape.has_table:
        return [
            line
            for row in shape.table.rows
            for cell in row.cells
            for line in _frame_lines(cell.text_frame)
        ]
    return []
