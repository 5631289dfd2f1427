"""Command line entry point: serve the MCP tools, rebuild the index, show stats.

Usage:
    knowledge-rag serve
    knowledge-rag index [SOURCE_DIR]
    knowledge-rag stats

Logs go to stderr; stdout is reserved for the MCP stdio transport and for
command output.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from loguru import logger

from knowledge_rag.config import KnowledgeConfig, load_config
from knowledge_rag.embedding import create_embedding_provider, dimensions_for_model
from knowledge_rag.indexer import KnowledgeIndexer
from knowledge_rag.location import KnowledgeLocation, resolve_location
from knowledge_rag.models import IndexSummary, SourceListing
from knowledge_rag.store import VectorStore

from .formatting import format_source_list
from .mcp_server import run, run_server


def configure_logging(level: str = "INFO") -> None:
    """Send loguru output to stderr at ``level``."""
    logger.remove()
    logger.add(
        sys.stderr, level=level, format="<green>{time:HH:mm:ss}</green> | <level>{message}</level>"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="knowledge-rag",
        description="Local RAG knowledge base exposed as MCP tools.",
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Hydra config directory (default: conf/knowledge_rag)",
    )
    parser.add_argument(
        "--config-name", default="default", help="Config file name without .yaml"
    )
    parser.add_argument(
        "--cwd",
        type=Path,
        default=None,
        help="Project directory used to locate the knowledge base (default: current)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )

    subparsers = parser.add_subparsers(dest="command", required=True)
    subparsers.add_parser("serve", help="Run the MCP server over stdio")

    index_parser = subparsers.add_parser("index", help="Rebuild the knowledge base")
    index_parser.add_argument(
        "source_dir",
        nargs="?",
        type=Path,
        default=None,
        help="Directory of documents (default: configured or detected knowledge folder)",
    )

    subparsers.add_parser("stats", help="List indexed sources")
    return parser


def _location(config: KnowledgeConfig, cwd: Path | None) -> KnowledgeLocation:
    return resolve_location(cwd, app_name=config.store.app_name, db_path=config.store.db_path)


def print_summary(summary: IndexSummary) -> None:
    print("=" * 60)
    print("Indexing Complete")
    print("=" * 60)
    print(f"Source directory: {summary.source_dir}")
    print(f"Total documents: {summary.documents}")
    print(f"Indexed: {summary.indexed}")
    if summary.failed:
        print(f"Failed: {', '.join(summary.failed)}")
    print(f"Total chunks: {summary.total_chunks}")
    print(f"Estimated tokens embedded: ~{summary.estimated_tokens:,}")


async def index_command(
    config: KnowledgeConfig, cwd: Path | None, source_dir: Path | None
) -> int:
    """Run a full rebuild and print its summary.

    Returns:
        Process exit code
    """
    location = _location(config, cwd)
    if source_dir is None:
        configured = config.indexing.source_dir
        source_dir = Path(configured).expanduser() if configured else location.knowledge_dir

    embedding_provider = create_embedding_provider(config.embedding)
    try:
        if not await embedding_provider.health_check():
            logger.error(f"Embedding service not responding at {embedding_provider.base_url}")
            return 1

        with VectorStore(location.db_path, dimensions=embedding_provider.dimensions) as store:
            store.initialize()
            logger.info(f"Using {location.kind} knowledge base at {location.db_path}")
            indexer = KnowledgeIndexer(
                store,
                embedding_provider,
                chunking_config=config.chunking,
                extensions=config.indexing.extensions,
            )
            try:
                summary = await indexer.index_directory(source_dir)
            except FileNotFoundError as e:
                logger.error(str(e))
                return 1
    finally:
        await embedding_provider.aclose()

    print_summary(summary)
    return 0


def stats_command(config: KnowledgeConfig, cwd: Path | None) -> int:
    location = _location(config, cwd)
    dimensions = config.embedding.dimensions or dimensions_for_model(config.embedding.model)
    with VectorStore(location.db_path, dimensions=dimensions) as store:
        store.initialize()
        listing = SourceListing(sources=store.list_sources(), stats=store.get_stats())
    print(format_source_list(listing))
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch to a subcommand."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    config = load_config(args.config_name, config_path=args.config_dir)

    if args.command == "serve":
        run(lambda: run_server(config, cwd=args.cwd))
        return 0
    if args.command == "index":
        return asyncio.run(index_command(config, args.cwd, args.source_dir))
    return stats_command(config, args.cwd)


if __name__ == "__main__":
    sys.exit(main())
