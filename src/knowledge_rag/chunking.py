"""Paragraph-first text chunking with character overlap and page tracking.

Text is normalized, split on blank lines, and paragraphs are packed into chunks of at
most ``chunk_size`` characters. Paragraphs that are too long on their own are packed
word by word. Consecutive chunks share the trailing ``overlap`` characters of the
previous chunk. All chunking is deterministic: same input + config -> same chunks.

Extracted PDF text carries page breaks as standalone ``Page N`` paragraphs; these update
the page number attached to subsequently emitted chunks and are not emitted as content.
"""

import re
from dataclasses import dataclass
from typing import Protocol

_CRLF = re.compile(r"\r\n")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_HORIZONTAL_SPACE = re.compile(r"[ \t]+")
_PARAGRAPH_BREAK = re.compile(r"\n\n+")
_PAGE_MARKER = re.compile(r"^page\s*\d+", re.IGNORECASE)
_NUMBER = re.compile(r"\d+")


@dataclass(frozen=True)
class ChunkingConfig:
    """Configuration for text chunking.

    Attributes:
        chunk_size: Target chunk size in characters
        overlap: Number of trailing characters carried into the next chunk
        min_chunk_chars: Chunks shorter than this (after stripping) are dropped
    """

    chunk_size: int = 500
    overlap: int = 100
    min_chunk_chars: int = 50

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.overlap < 0:
            raise ValueError(f"overlap must be non-negative, got {self.overlap}")
        if self.min_chunk_chars < 0:
            raise ValueError(f"min_chunk_chars must be non-negative, got {self.min_chunk_chars}")


@dataclass(frozen=True)
class Chunk:
    """A single text chunk with position information.

    Attributes:
        content: Chunk text content (stripped)
        page: 1-indexed page the chunk was emitted on
        index: Position of the chunk within its document, in emission order
    """

    content: str
    page: int
    index: int

    def __post_init__(self) -> None:
        """Validate chunk properties."""
        if not self.content:
            raise ValueError("Chunk content cannot be empty")
        if self.page < 1:
            raise ValueError(f"page must be positive, got {self.page}")
        if self.index < 0:
            raise ValueError(f"index must be non-negative, got {self.index}")


class Chunker(Protocol):
    """Protocol for text chunking implementations."""

    def chunk(self, text: str) -> list[Chunk]:
        """Split text into overlapping chunks.

        Args:
            text: Input text to chunk

        Returns:
            List of Chunk objects in order
        """
        ...


def normalize_text(text: str) -> str:
    """Collapse line endings, blank-line runs and horizontal whitespace.

    Example:
        >>> normalize_text("a\\r\\n\\n\\n\\nb   c")
        'a\\n\\nb c'
    """
    text = _CRLF.sub("\n", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    text = _HORIZONTAL_SPACE.sub(" ", text)
    return text.strip()


def _tail(text: str, overlap: int) -> str:
    return text[max(0, len(text) - overlap) :]


class ParagraphChunker:
    """Paragraph-aware character chunker.

    Keeps paragraphs intact where they fit, falls back to greedy word packing for
    paragraphs longer than ``chunk_size``.
    """

    def __init__(self, config: ChunkingConfig):
        """Initialize chunker with configuration.

        Args:
            config: Chunking configuration
        """
        self.config = config

    def chunk(self, text: str) -> list[Chunk]:
        """Split text into overlapping chunks.

        Args:
            text: Input text to chunk

        Returns:
            List of Chunk objects in order. Empty or whitespace-only input
            yields an empty list.
        """
        chunk_size = self.config.chunk_size
        overlap = self.config.overlap

        chunks: list[Chunk] = []
        current = ""
        page = 1
        index = 0

        def flush(content: str) -> None:
            nonlocal index
            chunks.append(Chunk(content=content.strip(), page=page, index=index))
            index += 1

        for paragraph in _PARAGRAPH_BREAK.split(normalize_text(text)):
            paragraph = paragraph.strip()
            if not paragraph:
                continue

            if _PAGE_MARKER.match(paragraph):
                number = _NUMBER.search(paragraph)
                if number:
                    page = max(1, int(number.group()))
                continue

            if len(current) + len(paragraph) + 1 <= chunk_size:
                current = f"{current}\n\n{paragraph}" if current else paragraph
                continue

            if current:
                flush(current)

            if len(paragraph) > chunk_size:
                current = ""
                for word in paragraph.split():
                    if len(current) + len(word) + 1 <= chunk_size:
                        current = f"{current} {word}" if current else word
                        continue
                    if current:
                        flush(current)
                    carried = _tail(current, overlap)
                    current = f"{carried} {word}" if carried else word
            else:
                carried = _tail(current, overlap)
                current = f"{carried}\n\n{paragraph}" if carried else paragraph

        if current.strip():
            flush(current)

        return [c for c in chunks if len(c.content) >= self.config.min_chunk_chars]


def chunk_text(text: str, chunk_size: int = 500, overlap: int = 100) -> list[Chunk]:
    """Convenience function to chunk text with default config.

    Args:
        text: Input text to chunk
        chunk_size: Maximum characters per chunk before a flush
        overlap: Characters carried over between consecutive chunks; values at or above
            ``chunk_size`` carry the whole previous chunk

    Returns:
        List of Chunk objects

    Example:
        >>> chunks = chunk_text("Long text here...", chunk_size=500, overlap=100)
        >>> len(chunks)
        0
    """
    config = ChunkingConfig(chunk_size=chunk_size, overlap=overlap)
    return ParagraphChunker(config).chunk(text)
