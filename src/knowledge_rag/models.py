"""Pydantic models for knowledge base data structures.

Rows read from the store, search results, and the public shapes returned by the
query and indexing pipelines are all validated against these schemas.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class ChunkRecord(BaseModel):
    """A stored chunk, without its embedding.

    Attributes:
        id: Row id assigned by the store
        content: Chunk text
        source: Source document name (filename)
        page: 1-indexed page number
        chunk_index: Position of the chunk within its source
    """

    id: int
    content: str
    source: str
    page: int = Field(ge=1)
    chunk_index: int = Field(ge=0)


class SearchResult(ChunkRecord):
    """A stored chunk ranked against a query vector.

    Attributes:
        distance: Cosine distance to the query (0 = same direction, up to 2;
            infinity when the chunk has no cached embedding)
        relevance: 1 - distance (0 when distance is infinite)
    """

    distance: float
    relevance: float


class SourceInfo(BaseModel):
    """An indexed source document with its live chunk count.

    Attributes:
        name: Unique source name (filename)
        path: Original location of the document
        pages: Number of pages in the document
        chunks: Number of chunk rows currently stored under this name
        topics: Heuristic topic labels derived from the filename
        indexed_at: When the source row was last written
    """

    name: str
    path: str
    pages: int = Field(ge=0)
    chunks: int = Field(ge=0)
    topics: list[str]
    indexed_at: datetime | None = None


class StoreStats(BaseModel):
    """Row counts for the store."""

    total_chunks: int = Field(ge=0)
    total_sources: int = Field(ge=0)


class SearchRequest(BaseModel):
    """A knowledge base search request.

    Attributes:
        query: Natural language search query
        top_k: Maximum number of results to return (default 5)
        sources: Optional list of source names to restrict the search to
    """

    query: str = Field(min_length=1)
    top_k: int = Field(default=5, ge=1, le=10)
    sources: list[str] | None = None


class SearchHit(BaseModel):
    """Public shape of a single search result."""

    content: str
    source: str
    page: int
    relevance: float


class SearchResponse(BaseModel):
    """Public shape of a search call.

    Attributes:
        query: The query that was searched
        results: Ranked hits, best first
        total: Number of hits returned (never more than top_k)
    """

    query: str
    results: list[SearchHit]
    total: int = Field(ge=0)


class SourceListing(BaseModel):
    """Public shape of a source listing call."""

    sources: list[SourceInfo]
    stats: StoreStats


class FileIndexResult(BaseModel):
    """Outcome of indexing a single document."""

    name: str
    pages: int = Field(ge=0)
    chunks: int = Field(ge=0)
    characters: int = Field(ge=0)


class IndexSummary(BaseModel):
    """Totals for a full indexing run.

    Attributes:
        source_dir: Directory that was indexed
        documents: Number of eligible files found
        indexed: Number of files stored successfully
        failed: Names of files skipped because of extraction or embedding errors
        total_chunks: Number of chunks stored
        estimated_tokens: Rough token count of the extracted text (characters / 4)
    """

    source_dir: str
    documents: int = Field(default=0, ge=0)
    indexed: int = Field(default=0, ge=0)
    failed: list[str] = Field(default_factory=list)
    total_chunks: int = Field(default=0, ge=0)
    estimated_tokens: int = Field(default=0, ge=0)
