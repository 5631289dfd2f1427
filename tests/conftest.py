"""Pytest configuration for test discovery, env, and fixtures.

This file ensures that:
- `src/` is importable
- Embedding endpoint environment variables do not leak into config tests
- Tests share a deterministic in-process embedding provider
"""

from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest

# Ensure src directory is in path for imports
repo_root = Path(__file__).parent.parent
src_path = repo_root / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

from knowledge_rag.store import VectorStore  # noqa: E402


class KeywordEmbedding:
    """Deterministic embedding provider: counts topic keywords.

    Not real embeddings obviously, but good enough for testing the
    pipeline wiring and ranking.
    """

    KEYWORDS = (
        ("python", "code", "programming"),
        ("cooking", "food", "recipe"),
        ("music", "song", "band"),
    )

    def __init__(self, dimensions: int = 8) -> None:
        self.dimensions = dimensions
        self.base_url = "http://fake-embeddings"
        self.calls: list[str] = []
        self.closed = False

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        words = text.lower().split()
        vector = [float(sum(words.count(w) for w in group)) for group in self.KEYWORDS]
        vector.append(len(words) / 100)
        return vector + [0.0] * (self.dimensions - len(vector))

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed(text) for text in texts]

    async def health_check(self) -> bool:
        return True

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def _isolate_embedding_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OLLAMA_EMBED_MODEL", raising=False)
    monkeypatch.delenv("OLLAMA_BASE_URL", raising=False)


@pytest.fixture
def keyword_embedding() -> KeywordEmbedding:
    return KeywordEmbedding()


@pytest.fixture
def store(tmp_path: Path) -> Iterator[VectorStore]:
    """Initialized 8-dimension store in a temporary SQLite file."""
    vector_store = VectorStore(tmp_path / "knowledge.db", dimensions=8)
    vector_store.initialize()
    yield vector_store
    vector_store.close()
