"""Query pipeline: embed a question, rank stored chunks, shape the response."""

from loguru import logger

from knowledge_rag.embedding import EmbeddingProvider
from knowledge_rag.models import (
    SearchHit,
    SearchRequest,
    SearchResponse,
    SourceListing,
)
from knowledge_rag.store import VectorStore


class KnowledgeSearch:
    """Read-side facade over the store used by the tool layer."""

    def __init__(self, store: VectorStore, embedding_provider: EmbeddingProvider):
        self.store = store
        self.embedding_provider = embedding_provider

    async def search(
        self, query: str, top_k: int = 5, sources: list[str] | None = None
    ) -> SearchResponse:
        """Search the knowledge base.

        Args:
            query: Natural language query
            top_k: Maximum number of results (1-10)
            sources: Optional source names to restrict the search to

        Returns:
            SearchResponse with relevance rounded to two decimals. No matches is
            a normal, empty response.

        Raises:
            pydantic.ValidationError: If the request is out of bounds
            ProviderError: If the query cannot be embedded
        """
        request = SearchRequest(query=query, top_k=top_k, sources=sources)

        query_vector = await self.embedding_provider.embed(request.query)
        results = self.store.search(query_vector, top_k=request.top_k, sources=request.sources)
        logger.debug(f"Query {request.query!r} matched {len(results)} chunks")

        hits = [
            SearchHit(
                content=r.content,
                source=r.source,
                page=r.page,
                relevance=round(r.relevance, 2),
            )
            for r in results
        ]
        return SearchResponse(query=request.query, results=hits, total=len(hits))

    def list_sources(self) -> SourceListing:
        """List indexed sources along with store totals."""
        return SourceListing(sources=self.store.list_sources(), stats=self.store.get_stats())
