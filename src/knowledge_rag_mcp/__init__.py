"""MCP tool server for the local knowledge base."""

from .mcp_server import register_tools, run_server

__all__ = [
    "register_tools",
    "run_server",
]
