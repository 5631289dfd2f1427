"""Local retrieval backend for the knowledge base MCP server.

This package provides document chunking, embedding, storage, and retrieval
independent of the MCP server interface. The MCP server in `knowledge_rag_mcp`
consumes this backend as a service layer.

Architecture:
    - chunking: Paragraph-first character chunking with overlap and page tracking
    - embedding: Embedding provider protocol with an Ollama implementation
    - store: SQLite chunk/source storage with brute-force cosine search
    - extraction: PDF/Markdown/text to plain text
    - indexer: Full-rebuild indexing pipeline
    - query: Search and source listing pipeline
    - models: Pydantic schemas for records, results, and summaries

Usage:
    >>> from knowledge_rag import VectorStore
    >>> store = VectorStore("knowledge.db")
    >>> store.initialize()
    >>> results = store.search(query_vector, top_k=5)
"""

__version__ = "1.0.0"

from knowledge_rag.models import (
    ChunkRecord,
    IndexSummary,
    SearchHit,
    SearchResponse,
    SearchResult,
    SourceInfo,
    SourceListing,
    StoreStats,
)
from knowledge_rag.store import VectorStore

__all__ = [
    "ChunkRecord",
    "IndexSummary",
    "SearchHit",
    "SearchResponse",
    "SearchResult",
    "SourceInfo",
    "SourceListing",
    "StoreStats",
    "VectorStore",
]
