"""MCP server entry point exposing the knowledge base as agent tools."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable, Coroutine
from importlib import metadata
from pathlib import Path
from typing import Any, cast

from loguru import logger

from knowledge_rag.config import KnowledgeConfig, load_config
from knowledge_rag.embedding import create_embedding_provider
from knowledge_rag.location import resolve_location
from knowledge_rag.query import KnowledgeSearch
from knowledge_rag.store import VectorStore

from .formatting import format_search_results, format_source_list

FastMCP: type[Any] | None = None

__all__ = [
    "run_server",
    "run",
    "register_tools",
    "__version__",
    "FastMCP",
]

SERVER_INSTRUCTIONS = (
    "Semantic search over a local knowledge base of indexed PDF, Markdown and text "
    "documents. Call list_knowledge_sources to see what is available, then "
    "search_knowledge with a natural language query."
)


def _resolve_version() -> str:
    """Return the installed distribution version or fall back to the project default."""

    try:
        return metadata.version("knowledge-rag")
    except metadata.PackageNotFoundError:
        return "1.0.0"


__version__ = _resolve_version()


def _import_fastmcp() -> type[Any]:
    """Import FastMCP lazily so tests can stub the implementation."""

    global FastMCP
    if FastMCP is not None:
        return FastMCP

    try:
        import fastmcp
        from fastmcp import FastMCP as FastMCPClass

        # Disable banner for stdio transport compatibility
        fastmcp.settings.show_cli_banner = False
    except ModuleNotFoundError as exc:  # pragma: no cover - exercised in tests
        raise ImportError(
            "FastMCP is required to run the knowledge base MCP server. "
            "Install `fastmcp` to proceed."
        ) from exc

    FastMCP = cast(type[Any], FastMCPClass)
    return FastMCP


def register_tools(server: Any, knowledge: KnowledgeSearch) -> None:
    """Register the knowledge base tools on a FastMCP server.

    Tool failures are logged and re-raised; FastMCP reports them to the client as
    error results instead of tearing down the session.
    """

    @server.tool()  # type: ignore[misc]
    async def search_knowledge(
        query: str, top_k: int = 5, sources: list[str] | None = None
    ) -> str:
        """Search the knowledge base for relevant information.

        The knowledge base holds indexed reference documents (PDF, Markdown, text)
        on topics such as RAG, MLOps, vector databases, microservices, CQRS and
        event-driven architecture, SOLID, design patterns, API design,
        authentication, database scaling, caching and AI/LLM engineering.

        Args:
            query: Natural language query to search for
            top_k: Maximum number of results to return (default 5, max 10)
            sources: Optional list of document names to restrict the search to

        Returns:
            Markdown listing each matching chunk with its source, page and
            relevance percentage.
        """
        logger.info(
            f"search_knowledge called: query='{query}', top_k={top_k}, sources={sources}"
        )
        try:
            response = await knowledge.search(query, top_k=top_k, sources=sources)
        except Exception as exc:
            logger.error(f"Failed to search knowledge base: {exc}")
            raise

        logger.info(f"Found {response.total} results")
        return format_search_results(response)

    @server.tool()  # type: ignore[misc]
    async def list_knowledge_sources() -> str:
        """List all documents in the knowledge base.

        Returns a markdown table with each document's name, page count, number of
        indexed chunks and main topics. Use this to discover what knowledge is
        available before searching.
        """
        try:
            listing = knowledge.list_sources()
        except Exception as exc:
            logger.error(f"Failed to list knowledge sources: {exc}")
            raise
        return format_source_list(listing)


async def run_server(config: KnowledgeConfig | None = None, cwd: Path | None = None) -> None:
    """Run the MCP server event loop.

    Args:
        config: Loaded configuration (defaults to conf/knowledge_rag/default.yaml)
        cwd: Project directory used for knowledge base location detection
    """

    config = config or load_config()
    fastmcp_class = _import_fastmcp()

    location = resolve_location(
        cwd, app_name=config.store.app_name, db_path=config.store.db_path
    )
    embedding_provider = create_embedding_provider(config.embedding)
    store = VectorStore(location.db_path, dimensions=embedding_provider.dimensions)

    try:
        store.initialize()
        logger.info(f"Using {location.kind} knowledge base")
        logger.info(f"DB: {location.db_path}")

        stats = store.get_stats()
        if stats.total_chunks == 0:
            logger.warning(
                "Knowledge base is empty. Run `knowledge-rag index` to index documents."
            )
        else:
            logger.info(
                f"Loaded {stats.total_chunks} chunks from {stats.total_sources} sources"
            )

        if not await embedding_provider.health_check():
            logger.warning(f"Embedding service not responding at {embedding_provider.base_url}")
            logger.warning("Search will fail until the service is started: ollama serve")

        server = _instantiate_fastmcp(
            fastmcp_class,
            server_id="knowledge-rag",
            name="knowledge-rag",
            version=__version__,
            instructions=SERVER_INSTRUCTIONS,
        )
        register_tools(server, KnowledgeSearch(store, embedding_provider))

        await server.run_async()
    finally:
        store.close()
        await embedding_provider.aclose()


def run(main: Callable[[], Coroutine[Any, Any, None]] | None = None) -> None:
    """Synchronous helper for CLI entry points."""
    entry = main or run_server
    try:
        asyncio.run(entry())
    except KeyboardInterrupt:
        logger.warning("MCP server interrupted by user.")
    except Exception as exc:  # noqa: BLE001
        logger.exception("Unhandled MCP server failure: {}", exc)
        raise


def _instantiate_fastmcp(class_: type[Any], **metadata: Any) -> Any:
    signature = inspect.signature(class_.__init__)
    parameters = signature.parameters

    filtered: dict[str, Any] = {key: value for key, value in metadata.items() if key in parameters}

    if "server_id" in metadata and "server_id" not in filtered and "id" in parameters:
        filtered["id"] = metadata["server_id"]

    if not filtered and any(
        param.kind == inspect.Parameter.VAR_KEYWORD for param in parameters.values()
    ):
        filtered = metadata

    return class_(**filtered)
