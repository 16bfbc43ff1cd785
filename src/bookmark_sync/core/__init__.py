"""HTTP client and thread helpers shared between the CLI and the MCP server."""

from .async_utils import run_sync
from .client import BookmarkClient

__all__ = ["BookmarkClient", "run_sync"]
