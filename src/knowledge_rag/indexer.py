"""End-to-end document indexing workflow.

Combines text extraction, chunking, embedding, and vector storage. Every run is a full
rebuild: the store is cleared before the first document is processed.
"""

import math
from collections.abc import Iterable
from pathlib import Path

from loguru import logger

from knowledge_rag.chunking import ChunkingConfig, ParagraphChunker
from knowledge_rag.embedding import EmbeddingProvider
from knowledge_rag.errors import KnowledgeRAGError
from knowledge_rag.extraction import SUPPORTED_EXTENSIONS, extract_document
from knowledge_rag.models import FileIndexResult, IndexSummary
from knowledge_rag.store import VectorStore


def estimate_tokens(characters: int) -> int:
    """Rough token estimate used for run summaries (4 characters per token)."""
    return math.ceil(characters / 4)


class KnowledgeIndexer:
    """Indexes a directory of documents into the vector store.

    Handles the complete workflow:
    1. Clear the store
    2. Extract text from each eligible file
    3. Chunk the text
    4. Generate embeddings
    5. Store chunks, then the source row
    """

    def __init__(
        self,
        store: VectorStore,
        embedding_provider: EmbeddingProvider,
        chunking_config: ChunkingConfig | None = None,
        extensions: Iterable[str] | None = None,
    ):
        """Initialize the indexer.

        Args:
            store: Vector store to write into
            embedding_provider: Provider used to embed chunk contents
            chunking_config: Configuration for text chunking (uses defaults if None)
            extensions: Eligible file suffixes (defaults to pdf/markdown/text)
        """
        self.store = store
        self.embedding_provider = embedding_provider
        self.chunker = ParagraphChunker(chunking_config or ChunkingConfig())
        if extensions is None:
            extensions = SUPPORTED_EXTENSIONS
        self.extensions = frozenset(ext.lower() for ext in extensions)

    def eligible_files(self, source_dir: Path) -> list[Path]:
        """Return indexable files in ``source_dir``, sorted by name."""
        return sorted(
            (
                path
                for path in source_dir.iterdir()
                if path.is_file() and path.suffix.lower() in self.extensions
            ),
            key=lambda path: path.name,
        )

    async def index_file(self, path: Path) -> tuple[FileIndexResult, int]:
        """Index a single document.

        Chunks are only written once every embedding for the file has been
        generated, so an embedding failure leaves nothing behind for this file.

        Args:
            path: Document to index

        Returns:
            Tuple of (per-file result, estimated token count)

        Raises:
            ExtractionError: If the document cannot be read
            ProviderError: If any embedding request fails
            StoreError: If the chunks cannot be written
        """
        document = extract_document(path)
        logger.info(
            f"Processing {path.name}: {document.page_count} pages, "
            f"{len(document.text)} characters"
        )

        chunks = self.chunker.chunk(document.text)
        vectors = await self.embedding_provider.embed_batch([c.content for c in chunks])

        self.store.insert_chunks(
            [
                (chunk.content, path.name, chunk.page, chunk.index, vector)
                for chunk, vector in zip(chunks, vectors, strict=True)
            ]
        )
        self.store.insert_source(path.name, str(path), document.page_count)

        logger.info(f"Indexed {len(chunks)} chunks from {path.name}")
        result = FileIndexResult(
            name=path.name,
            pages=document.page_count,
            chunks=len(chunks),
            characters=len(document.text),
        )
        return result, estimate_tokens(len(document.text))

    async def index_directory(self, source_dir: Path | str) -> IndexSummary:
        """Rebuild the knowledge base from every eligible file in ``source_dir``.

        Any per-file failure is logged and the file skipped; the run continues
        with the next file.

        Args:
            source_dir: Directory containing the documents

        Returns:
            Summary of the run

        Raises:
            FileNotFoundError: If ``source_dir`` is not a directory
        """
        source_dir = Path(source_dir)
        if not source_dir.is_dir():
            raise FileNotFoundError(f"Source directory not found: {source_dir}")

        logger.info(f"Clearing existing knowledge base before indexing {source_dir}")
        self.store.clear()

        files = self.eligible_files(source_dir)
        logger.info(f"Found {len(files)} documents to index")

        summary = IndexSummary(source_dir=str(source_dir), documents=len(files))
        for path in files:
            try:
                result, tokens = await self.index_file(path)
            except KnowledgeRAGError as e:
                logger.error(f"Skipping {path.name}: {e}")
                summary.failed.append(path.name)
                continue
            except Exception:
                logger.exception(f"Unexpected error indexing {path.name}, skipping")
                summary.failed.append(path.name)
                continue

            summary.indexed += 1
            summary.total_chunks += result.chunks
            summary.estimated_tokens += tokens

        logger.success(
            f"Indexed {summary.indexed}/{summary.documents} documents, "
            f"{summary.total_chunks} chunks (~{summary.estimated_tokens} tokens)"
        )
        return summary
