"""Exception types raised by the retrieval backend.

Callers distinguish three failure families:
    - ExtractionError: a document could not be turned into text
    - ProviderError: the embedding endpoint failed or returned garbage
    - StoreError: the SQLite store could not complete an operation

Empty search results and empty stores are not errors.
"""

from __future__ import annotations

from pathlib import Path


class KnowledgeRAGError(Exception):
    """Base class for all knowledge_rag failures."""


class ExtractionError(KnowledgeRAGError):
    """Document text could not be read or parsed."""

    def __init__(self, path: Path | str, reason: str):
        self.path = Path(path)
        self.reason = reason
        super().__init__(f"Failed to extract {self.path.name}: {reason}")


class ProviderError(KnowledgeRAGError):
    """Embedding request failed (transport error or non-success status)."""

    def __init__(self, message: str, status_code: int | None = None, body: str | None = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


class StoreError(KnowledgeRAGError):
    """Storage operation failed."""
