"""Integration tests for the SQLite vector store.

These tests create real database files in a temporary directory.

Run with: pytest tests/test_knowledge_rag/integration/test_sqlite_store.py -v
"""

# mypy: disable-error-code="no-untyped-def"

import math
from pathlib import Path

import pytest

from knowledge_rag.errors import StoreError
from knowledge_rag.store import VectorStore

pytestmark = pytest.mark.integration


def _axis(i: int, dims: int = 8) -> list[float]:
    vector = [0.0] * dims
    vector[i] = 1.0
    return vector


class TestSearch:
    def test_identical_vector_scores_full_relevance(self, tmp_path: Path) -> None:
        """Given one stored 768-d chunk, when querying with the same vector,
        then distance is ~0 and relevance ~1."""
        with VectorStore(tmp_path / "kb.db", dimensions=768) as store:
            store.initialize()
            chunk_id = store.insert_chunk("content " * 10, "doc.pdf", 1, 0, [0.1] * 768)

            results = store.search([0.1] * 768, top_k=5)

        assert len(results) == 1
        assert results[0].id == chunk_id
        assert results[0].distance == pytest.approx(0.0, abs=1e-6)
        assert results[0].relevance == pytest.approx(1.0, abs=1e-6)

    def test_results_sorted_and_truncated(self, store: VectorStore) -> None:
        store.insert_chunks(
            [
                ("far", "a.md", 1, 0, _axis(1)),
                ("closest", "a.md", 1, 1, [1.0, 0.1] + [0.0] * 6),
                ("middle", "b.md", 2, 0, [1.0, 1.0] + [0.0] * 6),
            ]
        )

        results = store.search(_axis(0), top_k=2)

        assert [r.content for r in results] == ["closest", "middle"]
        assert results[0].distance <= results[1].distance
        assert results[1].page == 2

    def test_top_k_larger_than_store(self, store: VectorStore) -> None:
        store.insert_chunk("only", "a.md", 1, 0, _axis(0))

        assert len(store.search(_axis(0), top_k=10)) == 1

    def test_top_k_must_be_positive(self, store: VectorStore) -> None:
        with pytest.raises(ValueError, match="top_k must be at least 1"):
            store.search(_axis(0), top_k=0)

    def test_source_filter(self, store: VectorStore) -> None:
        store.insert_chunks(
            [
                ("in a", "a.md", 1, 0, _axis(0)),
                ("in b", "b.md", 1, 0, _axis(0)),
                ("in c", "c.md", 1, 0, _axis(0)),
            ]
        )

        results = store.search(_axis(0), top_k=5, sources=["a.md", "c.md"])

        assert {r.source for r in results} == {"a.md", "c.md"}
        assert store.search(_axis(0), sources=["missing.md"]) == []

    def test_empty_store(self, store: VectorStore) -> None:
        assert store.search(_axis(0)) == []

    def test_new_chunks_visible_after_cached_search(self, store: VectorStore) -> None:
        store.insert_chunk("first", "a.md", 1, 0, _axis(0))
        store.search(_axis(0))
        assert store.cache.is_loaded

        store.insert_chunk("second", "a.md", 1, 1, _axis(1))

        assert not store.cache.is_loaded
        assert [r.content for r in store.search(_axis(1))][0] == "second"

    def test_chunk_missing_from_cache_sorts_last(self, store: VectorStore) -> None:
        store.insert_chunk("uncached", "a.md", 1, 0, _axis(0))
        store.cache.invalidate()
        store.cache.ensure_loaded(lambda: [])

        results = store.search(_axis(0))

        assert len(results) == 1
        assert math.isinf(results[0].distance)
        assert results[0].relevance == 0.0


class TestWrites:
    def test_dimension_mismatch_rejected(self, store: VectorStore) -> None:
        with pytest.raises(StoreError, match="store expects 8"):
            store.insert_chunk("bad", "a.md", 1, 0, [0.1] * 4)

        with pytest.raises(StoreError):
            store.insert_chunks([("ok", "a.md", 1, 0, _axis(0)), ("bad", "a.md", 1, 1, [1.0])])

        assert store.get_stats().total_chunks == 0

    def test_invalid_position_rejected(self, store: VectorStore) -> None:
        """Rows that could not be read back are refused before the write."""
        with pytest.raises(StoreError, match="page must be at least 1"):
            store.insert_chunk("zero page chunk", "a.md", 0, 0, _axis(0))

        with pytest.raises(StoreError, match="chunk_index must be non-negative"):
            store.insert_chunks([("ok", "a.md", 1, 0, _axis(0)), ("bad", "a.md", 1, -1, _axis(0))])

        assert store.get_stats().total_chunks == 0
        assert store.search(_axis(0)) == []

    def test_insert_chunks_returns_ids_in_order(self, store: VectorStore) -> None:
        ids = store.insert_chunks(
            [("one", "a.md", 1, 0, _axis(0)), ("two", "a.md", 1, 1, _axis(1))]
        )

        assert ids == sorted(ids)
        assert len(set(ids)) == 2

    def test_insert_source_replaces_without_cascade(self, store: VectorStore) -> None:
        store.insert_source("a.md", "/old/a.md", 1)
        store.insert_chunk("old chunk", "a.md", 1, 0, _axis(0))

        store.insert_source("a.md", "/new/a.md", 3)

        sources = store.list_sources()
        assert len(sources) == 1
        assert sources[0].path == "/new/a.md"
        assert sources[0].pages == 3
        assert sources[0].chunks == 1
        assert store.get_stats().total_sources == 1

    def test_clear(self, store: VectorStore) -> None:
        store.insert_source("a.md", "/a.md", 1)
        store.insert_chunk("text", "a.md", 1, 0, _axis(0))
        store.search(_axis(0))

        store.clear()

        stats = store.get_stats()
        assert (stats.total_chunks, stats.total_sources) == (0, 0)
        assert store.search(_axis(0)) == []


class TestListing:
    def test_live_counts_and_orphans(self, store: VectorStore) -> None:
        """Sources report live chunk counts; chunks without a source row are
        searchable but not listed."""
        store.insert_source("RAG Guide.pdf", "/docs/RAG Guide.pdf", 12)
        store.insert_source("empty.md", "/docs/empty.md", 1)
        store.insert_chunks(
            [
                ("rag one", "RAG Guide.pdf", 1, 0, _axis(0)),
                ("rag two", "RAG Guide.pdf", 2, 1, _axis(0)),
                ("orphan", "orphan.md", 1, 0, _axis(0)),
            ]
        )

        sources = store.list_sources()

        assert [(s.name, s.chunks) for s in sources] == [("RAG Guide.pdf", 2), ("empty.md", 0)]
        assert sources[0].topics == ["RAG"]
        assert sources[0].indexed_at is not None
        assert "orphan" in [r.content for r in store.search(_axis(0))]
        assert store.get_stats().total_chunks == 3


class TestLifecycle:
    def test_persists_across_reopen(self, tmp_path: Path) -> None:
        db_path = tmp_path / "kb.db"
        with VectorStore(db_path, dimensions=8) as store:
            store.initialize()
            store.insert_source("a.md", "/a.md", 1)
            store.insert_chunk("persisted", "a.md", 1, 0, _axis(2))

        with VectorStore(db_path, dimensions=8) as reopened:
            reopened.initialize()
            results = reopened.search(_axis(2))

        assert results[0].content == "persisted"
        assert results[0].distance == pytest.approx(0.0)

    def test_initialize_is_idempotent(self, store: VectorStore) -> None:
        store.insert_chunk("kept", "a.md", 1, 0, _axis(0))

        store.initialize()

        assert store.get_stats().total_chunks == 1

    def test_operations_after_close_raise_store_error(self, tmp_path: Path) -> None:
        store = VectorStore(tmp_path / "kb.db", dimensions=8)
        store.initialize()
        store.close()

        with pytest.raises(StoreError, match="get_stats failed"):
            store.get_stats()

    def test_unopenable_path(self, tmp_path: Path) -> None:
        with pytest.raises(StoreError, match="Cannot open knowledge base"):
            VectorStore(tmp_path / "missing" / "dir" / "kb.db")
