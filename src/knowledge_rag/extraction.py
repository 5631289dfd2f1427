"""Document text extraction for indexing.

PDFs are read page by page with PyMuPDF. Each page's text is preceded by a standalone
``Page N`` paragraph, which the chunker consumes as a page marker. Markdown and plain
text files are read verbatim and count as a single page.
"""

from dataclasses import dataclass
from pathlib import Path

import fitz  # PyMuPDF

from knowledge_rag.errors import ExtractionError

PDF_EXTENSIONS = frozenset({".pdf"})
TEXT_EXTENSIONS = frozenset({".md", ".markdown", ".txt"})
SUPPORTED_EXTENSIONS = PDF_EXTENSIONS | TEXT_EXTENSIONS


@dataclass(frozen=True)
class ExtractedDocument:
    """Plain text of a document and its page count."""

    text: str
    page_count: int


def extract_pdf(path: Path) -> ExtractedDocument:
    """Extract text from a PDF, inserting ``Page N`` markers between pages."""
    try:
        with fitz.open(str(path)) as doc:
            parts: list[str] = []
            for number, page in enumerate(doc, start=1):
                text = (page.get_text("text") or "").strip()
                parts.append(f"Page {number}\n\n{text}" if text else f"Page {number}")
            page_count = doc.page_count
    except (OSError, RuntimeError, ValueError) as e:
        raise ExtractionError(path, str(e)) from e

    return ExtractedDocument(text="\n\n".join(parts), page_count=page_count)


def extract_text_file(path: Path) -> ExtractedDocument:
    """Read a Markdown or text file as a single page."""
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise ExtractionError(path, str(e)) from e
    return ExtractedDocument(text=text, page_count=1)


def extract_document(path: Path | str) -> ExtractedDocument:
    """Extract text and page count from a supported document.

    Args:
        path: Path to a .pdf, .md, .markdown or .txt file

    Returns:
        ExtractedDocument with the document text and page count

    Raises:
        ExtractionError: If the file is unsupported, unreadable, or corrupt
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix in PDF_EXTENSIONS:
        return extract_pdf(path)
    if suffix in TEXT_EXTENSIONS:
        return extract_text_file(path)
    raise ExtractionError(path, f"unsupported file type {suffix or '(none)'}")
