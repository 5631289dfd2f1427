"""End-to-end tests: index a folder of documents, then query it.

Uses real extraction, chunking and SQLite storage with a deterministic keyword
embedding provider in place of the HTTP service.
"""

from pathlib import Path

import fitz
import pytest

from knowledge_rag.chunking import ChunkingConfig, chunk_text
from knowledge_rag.extraction import extract_document
from knowledge_rag.indexer import KnowledgeIndexer
from knowledge_rag.query import KnowledgeSearch
from knowledge_rag_mcp.formatting import format_search_results, format_source_list

pytestmark = pytest.mark.integration

PAGE_ONE = [("python code " * 25).strip(), ("programming notes " * 17).strip()]
PAGE_TWO = [("music band " * 27).strip(), ("song lyrics " * 25).strip()]
GUIDE_TEXT = "\n\n".join([*PAGE_ONE, "Page 2", *PAGE_TWO])


@pytest.fixture
def knowledge_dir(tmp_path: Path) -> Path:
    root = tmp_path / "knowledge"
    root.mkdir()
    (root / "Python Guide.txt").write_text(GUIDE_TEXT, encoding="utf-8")

    doc = fitz.open()
    for text in ("cooking food recipe\n" * 4, "dessert recipe food\n" * 4):
        doc.new_page().insert_text((72, 72), text)
    doc.save(str(root / "recipes.pdf"))
    doc.close()
    return root


def test_page_tracking_over_long_document() -> None:
    """A chunk flushed before the marker is page 1; chunks holding page-two
    words are page 2."""
    chunks = chunk_text(GUIDE_TEXT, chunk_size=500, overlap=100)

    assert chunks[0].page == 1
    assert chunks[0].content == PAGE_ONE[0]
    assert len(chunks) == 4
    for chunk in chunks:
        if "music" in chunk.content or "song" in chunk.content:
            assert chunk.page == 2


@pytest.mark.asyncio
async def test_index_then_search(store, keyword_embedding, knowledge_dir: Path) -> None:
    indexer = KnowledgeIndexer(store, keyword_embedding)

    summary = await indexer.index_directory(knowledge_dir)

    assert summary.indexed == 2
    assert summary.failed == []
    assert summary.total_chunks == 5

    knowledge = KnowledgeSearch(store, keyword_embedding)

    music = await knowledge.search("music band", top_k=3)
    assert music.results[0].source == "Python Guide.txt"
    assert music.results[0].page == 2

    recipes = await knowledge.search("recipe food", top_k=1)
    assert recipes.total == 1
    assert recipes.results[0].source == "recipes.pdf"
    assert "**Source:** recipes.pdf (page 2)" in format_search_results(recipes)

    listing = knowledge.list_sources()
    assert [(s.name, s.pages, s.chunks) for s in listing.sources] == [
        ("Python Guide.txt", 1, 4),
        ("recipes.pdf", 2, 1),
    ]
    assert "**Total:** 2 documents, 5 chunks" in format_source_list(listing)


@pytest.mark.asyncio
async def test_reindex_is_full_rebuild(store, keyword_embedding, knowledge_dir: Path) -> None:
    indexer = KnowledgeIndexer(store, keyword_embedding)
    await indexer.index_directory(knowledge_dir)

    (knowledge_dir / "recipes.pdf").unlink()
    summary = await indexer.index_directory(knowledge_dir)

    assert summary.documents == 1
    stats = store.get_stats()
    assert (stats.total_sources, stats.total_chunks) == (1, 4)
    results = await KnowledgeSearch(store, keyword_embedding).search("recipe food", top_k=10)
    assert {hit.source for hit in results.results} == {"Python Guide.txt"}


@pytest.mark.asyncio
async def test_two_page_pdf_counts_match_chunker(store, keyword_embedding, tmp_path: Path) -> None:
    """Given a two-page PDF of about 1200 characters, when it is indexed with
    500/100 chunking, then the source reports two pages and exactly the chunks
    the chunker produces, tagged page 1 before the marker and page 2 after it."""
    root = tmp_path / "pdfs"
    root.mkdir()
    doc = fitz.open()
    for line in ("python code and programming notes", "music band and song writing notes"):
        doc.new_page().insert_text((72, 72), f"{line}\n" * 18)
    doc.save(str(root / "Handbook.pdf"))
    doc.close()

    extracted = extract_document(root / "Handbook.pdf")
    expected = chunk_text(extracted.text, chunk_size=500, overlap=100)
    assert extracted.page_count == 2
    assert 1000 < len(extracted.text) < 1500

    summary = await KnowledgeIndexer(
        store, keyword_embedding, chunking_config=ChunkingConfig(chunk_size=500, overlap=100)
    ).index_directory(root)

    [source] = store.list_sources()
    assert (source.name, source.pages, source.chunks) == ("Handbook.pdf", 2, len(expected))
    assert summary.total_chunks == len(expected)

    assert expected[0].page == 1
    assert "music" not in expected[0].content
    assert expected[-1].page == 2
    pages = [chunk.page for chunk in expected]
    assert pages == sorted(pages)
    for chunk in expected:
        if "music" in chunk.content:
            assert chunk.page == 2

    music = await KnowledgeSearch(store, keyword_embedding).search("music band", top_k=1)
    assert music.results[0].page == 2
