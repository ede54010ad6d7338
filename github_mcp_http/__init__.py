"""GitHub tools served as an MCP server over stateless streamable HTTP.

The ASGI application lives in the top-level ``main`` module; this package
holds the pieces it wires together.
"""

from github_mcp_http.config import SERVER_NAME, SERVER_VERSION

__version__ = SERVER_VERSION

__all__ = ["SERVER_NAME", "SERVER_VERSION", "__version__"]
