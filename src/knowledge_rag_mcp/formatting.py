"""Markdown rendering of knowledge base responses for MCP tool output."""

from __future__ import annotations

from knowledge_rag.models import SearchResponse, SourceListing


def format_search_results(response: SearchResponse) -> str:
    """Render search hits as markdown, best match first."""
    if response.total == 0:
        return f'No results found for query: "{response.query}"'

    lines = [
        "## Knowledge Base Search Results",
        f"**Query:** {response.query}",
        f"**Found:** {response.total} relevant chunks",
        "",
    ]
    for i, hit in enumerate(response.results, start=1):
        lines += [
            f"### Result {i} ({hit.relevance:.0%} match)",
            f"**Source:** {hit.source} (page {hit.page})",
            "",
            hit.content,
            "",
            "---",
            "",
        ]
    return "\n".join(lines)


def format_source_list(listing: SourceListing) -> str:
    """Render the source listing as a markdown table."""
    stats = listing.stats
    lines = [
        "## Knowledge Base Sources",
        f"**Total:** {stats.total_sources} documents, {stats.total_chunks} chunks",
        "",
        "| Document | Pages | Chunks | Topics |",
        "|----------|-------|--------|--------|",
    ]
    for source in listing.sources:
        topics = ", ".join(source.topics)
        lines.append(f"| {source.name} | {source.pages} | {source.chunks} | {topics} |")
    return "\n".join(lines)
