"""SQLite-backed chunk storage and exact nearest-neighbor search.

Provides:
- Schema creation for the ``chunks`` and ``sources`` tables
- Chunk and source inserts (embeddings stored as little-endian float32 blobs)
- Brute-force cosine search with an optional source filter
- Source listing with live chunk counts and filename-derived topics

Search scans every candidate chunk and sorts by distance. That scan is adequate for
hundreds to low thousands of chunks and is the one place an approximate index could be
substituted behind the same ``search`` contract.

Replacing a source row does not delete the chunks stored under its name; callers that
re-index a single document must clear its chunks themselves.
"""

import sqlite3
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime
from pathlib import Path

import numpy as np
from loguru import logger

from knowledge_rag.errors import StoreError
from knowledge_rag.models import ChunkRecord, SearchResult, SourceInfo, StoreStats

_EMBEDDING_DTYPE = np.dtype("<f4")

_SCHEMA = """
CREATE TABLE IF NOT EXISTS chunks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content TEXT NOT NULL,
    source TEXT NOT NULL,
    page INTEGER NOT NULL,
    chunk_index INTEGER NOT NULL,
    embedding BLOB NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_chunks_source ON chunks(source);

CREATE TABLE IF NOT EXISTS sources (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT UNIQUE NOT NULL,
    path TEXT NOT NULL,
    pages INTEGER NOT NULL,
    indexed_at TEXT NOT NULL
);
"""

# (label, keywords) in declaration order; every matching label is reported.
TOPIC_KEYWORDS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("RAG", ("rag", "retrieval")),
    ("MLOps", ("mlops", "ml operations")),
    ("Vector DB", ("vector", "embedding")),
    ("Microservices", ("microservice",)),
    ("CQRS", ("cqrs", "command")),
    ("Event-Driven", ("event",)),
    ("SOLID", ("solid",)),
    ("Design Patterns", ("design pattern",)),
    ("API", ("api", "rest", "graphql")),
    ("Authentication", ("auth",)),
    ("Database", ("database", "sql")),
    ("Caching", ("cache", "cdn")),
    ("AI/LLM", ("ai", "llm")),
    ("Agents", ("agent", "manus")),
)

ChunkRow = tuple[str, str, int, int, Sequence[float]]


def encode_embedding(embedding: Sequence[float]) -> bytes:
    """Encode a vector as fixed-width little-endian float32 bytes."""
    return np.asarray(embedding, dtype=_EMBEDDING_DTYPE).tobytes()


def decode_embedding(blob: bytes) -> np.ndarray:
    """Decode a float32 blob written by ``encode_embedding``."""
    return np.frombuffer(blob, dtype=_EMBEDDING_DTYPE)


def cosine_distance(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Return 1 - cosine similarity of two vectors.

    A zero-magnitude vector on either side yields 1.0.

    Raises:
        ValueError: If the vectors have different lengths
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"Vector length mismatch: {va.shape[0]} vs {vb.shape[0]}")

    magnitude = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if magnitude == 0.0:
        return 1.0
    return 1.0 - float(np.dot(va, vb)) / magnitude


def extract_topics(filename: str) -> list[str]:
    """Label a source with topics guessed from its filename.

    Example:
        >>> extract_topics("RAG and Vector Databases.pdf")
        ['RAG', 'Vector DB', 'Database']
    """
    lower = filename.lower()
    topics = [
        label for label, keywords in TOPIC_KEYWORDS if any(word in lower for word in keywords)
    ]
    return topics or ["General"]


class EmbeddingCache:
    """Read-through cache mapping chunk id to decoded embedding.

    ``invalidate()`` drops the map; ``ensure_loaded()`` rebuilds it from a loader on
    first use after invalidation. A lock guards both so a reader never observes a
    half-populated map.
    """

    def __init__(self) -> None:
        self._vectors: dict[int, np.ndarray] | None = None
        self._lock = threading.Lock()

    @property
    def is_loaded(self) -> bool:
        return self._vectors is not None

    def invalidate(self) -> None:
        with self._lock:
            self._vectors = None

    def ensure_loaded(
        self, loader: Callable[[], Iterable[tuple[int, np.ndarray]]]
    ) -> dict[int, np.ndarray]:
        with self._lock:
            if self._vectors is None:
                self._vectors = dict(loader())
                logger.debug(f"Loaded {len(self._vectors)} embeddings into cache")
            return self._vectors

    def get(self, chunk_id: int) -> np.ndarray | None:
        with self._lock:
            if self._vectors is None:
                return None
            return self._vectors.get(chunk_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._vectors) if self._vectors is not None else 0


class VectorStore:
    """Persistent chunk/source store with brute-force cosine search."""

    def __init__(self, db_path: Path | str, dimensions: int = 768):
        """Open (or create) the SQLite database.

        Args:
            db_path: Database file path, or ":memory:"
            dimensions: Required embedding width for inserted chunks
        """
        self.db_path = str(db_path)
        self.dimensions = dimensions
        self.cache = EmbeddingCache()
        try:
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA journal_mode = WAL")
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open knowledge base at {self.db_path}: {e}") from e

    def __enter__(self) -> "VectorStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @contextmanager
    def _guard(self, operation: str) -> Iterator[sqlite3.Connection]:
        try:
            yield self._conn
        except sqlite3.Error as e:
            raise StoreError(f"{operation} failed: {e}") from e

    def initialize(self) -> None:
        """Create tables and indexes if they do not exist."""
        with self._guard("initialize"):
            self._conn.executescript(_SCHEMA)

    def _check_row(self, page: int, chunk_index: int, embedding: Sequence[float]) -> None:
        if page < 1:
            raise StoreError(f"page must be at least 1, got {page}")
        if chunk_index < 0:
            raise StoreError(f"chunk_index must be non-negative, got {chunk_index}")
        if len(embedding) != self.dimensions:
            raise StoreError(
                f"Embedding has {len(embedding)} dimensions, store expects {self.dimensions}"
            )

    def insert_chunk(
        self,
        content: str,
        source: str,
        page: int,
        chunk_index: int,
        embedding: Sequence[float],
    ) -> int:
        """Append one chunk row.

        Returns:
            The new row id
        """
        self._check_row(page, chunk_index, embedding)
        with self._guard("insert_chunk"), self._conn:
            cursor = self._conn.execute(
                "INSERT INTO chunks (content, source, page, chunk_index, embedding) "
                "VALUES (?, ?, ?, ?, ?)",
                (content, source, page, chunk_index, encode_embedding(embedding)),
            )
        self.cache.invalidate()
        return int(cursor.lastrowid)  # type: ignore[arg-type]

    def insert_chunks(self, rows: Sequence[ChunkRow]) -> list[int]:
        """Append many chunk rows in one transaction.

        Args:
            rows: (content, source, page, chunk_index, embedding) tuples

        Returns:
            Row ids in input order
        """
        for _, _, page, chunk_index, embedding in rows:
            self._check_row(page, chunk_index, embedding)

        ids: list[int] = []
        with self._guard("insert_chunks"), self._conn:
            for content, source, page, chunk_index, embedding in rows:
                cursor = self._conn.execute(
                    "INSERT INTO chunks (content, source, page, chunk_index, embedding) "
                    "VALUES (?, ?, ?, ?, ?)",
                    (content, source, page, chunk_index, encode_embedding(embedding)),
                )
                ids.append(int(cursor.lastrowid))  # type: ignore[arg-type]
        self.cache.invalidate()
        return ids

    def insert_source(self, name: str, path: str, pages: int) -> None:
        """Insert or replace the source row for ``name`` with a fresh timestamp."""
        indexed_at = datetime.now(UTC).isoformat()
        with self._guard("insert_source"), self._conn:
            self._conn.execute(
                "INSERT OR REPLACE INTO sources (name, path, pages, indexed_at) "
                "VALUES (?, ?, ?, ?)",
                (name, path, pages, indexed_at),
            )

    def _load_embeddings(self) -> Iterator[tuple[int, np.ndarray]]:
        with self._guard("load_embeddings"):
            rows = self._conn.execute("SELECT id, embedding FROM chunks").fetchall()
        for row in rows:
            yield row["id"], decode_embedding(row["embedding"])

    def _candidate_chunks(self, sources: Sequence[str] | None) -> list[ChunkRecord]:
        query = "SELECT id, content, source, page, chunk_index FROM chunks"
        params: list[str] = []
        if sources:
            placeholders = ",".join("?" for _ in sources)
            query += f" WHERE source IN ({placeholders})"
            params.extend(sources)

        with self._guard("search"):
            rows = self._conn.execute(query, params).fetchall()
        return [ChunkRecord(**dict(row)) for row in rows]

    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int = 5,
        sources: Sequence[str] | None = None,
    ) -> list[SearchResult]:
        """Rank stored chunks by cosine distance to ``query_embedding``.

        Args:
            query_embedding: Query vector
            top_k: Maximum number of results
            sources: Optional source names to restrict candidates to

        Returns:
            At most ``top_k`` results, closest first. Chunks without a cached
            embedding sort last with relevance 0.
        """
        if top_k < 1:
            raise ValueError(f"top_k must be at least 1, got {top_k}")

        vectors = self.cache.ensure_loaded(self._load_embeddings)
        candidates = self._candidate_chunks(sources)

        scored: list[SearchResult] = []
        for chunk in candidates:
            embedding = vectors.get(chunk.id)
            if embedding is None:
                distance, relevance = float("inf"), 0.0
            else:
                distance = cosine_distance(query_embedding, embedding)
                relevance = 1.0 - distance
            scored.append(
                SearchResult(**chunk.model_dump(), distance=distance, relevance=relevance)
            )

        scored.sort(key=lambda result: result.distance)
        return scored[:top_k]

    def list_sources(self) -> list[SourceInfo]:
        """List sources ordered by name with live chunk counts."""
        with self._guard("list_sources"):
            rows = self._conn.execute(
                """
                SELECT s.name, s.path, s.pages, s.indexed_at, COUNT(c.id) AS chunks
                FROM sources s
                LEFT JOIN chunks c ON c.source = s.name
                GROUP BY s.name
                ORDER BY s.name
                """
            ).fetchall()

        return [
            SourceInfo(
                name=row["name"],
                path=row["path"],
                pages=row["pages"],
                chunks=row["chunks"],
                topics=extract_topics(row["name"]),
                indexed_at=row["indexed_at"],
            )
            for row in rows
        ]

    def get_stats(self) -> StoreStats:
        """Count chunk and source rows."""
        with self._guard("get_stats"):
            chunks = self._conn.execute("SELECT COUNT(*) FROM chunks").fetchone()[0]
            sources = self._conn.execute("SELECT COUNT(*) FROM sources").fetchone()[0]
        return StoreStats(total_chunks=chunks, total_sources=sources)

    def clear(self) -> None:
        """Delete every chunk and source."""
        with self._guard("clear"), self._conn:
            self._conn.execute("DELETE FROM chunks")
            self._conn.execute("DELETE FROM sources")
        self.cache.invalidate()

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
