"""ToolSpec and ToolRegistry for MCP tool dispatch.

- ToolSpec: Immutable dataclass linking a Tool definition and an async
  handler with standardized signature (client, args) -> CallToolResult.
- ToolRegistry: Optionally drops tools that write to disk
  (``read_only=True``), then provides list_tools() and call_tool()
  dispatch with error translation.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import mcp.types as types

from ...core.client import BookmarkClient
from ...errors import BookmarkSyncError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ToolSpec:
    """One MCP tool definition and its handler.

    Attributes:
        tool: The MCP Tool definition (name, description, inputSchema).
        handler: Async handler with signature (client, args) -> CallToolResult.
        writes: True when the tool writes notes or the watermark.
    """

    tool: types.Tool
    handler: Callable[[BookmarkClient, dict], Awaitable[types.CallToolResult]]
    writes: bool = False


class ToolRegistry:
    """Registry of ToolSpecs, optionally restricted to read-only tools."""

    def __init__(self, specs: list[ToolSpec], read_only: bool = False):
        self._specs: dict[str, ToolSpec] = {
            spec.tool.name: spec
            for spec in specs
            if not (read_only and spec.writes)
        }

    def list_tools(self) -> list[types.Tool]:
        return [spec.tool for spec in self._specs.values()]

    def tool_count(self) -> int:
        return len(self._specs)

    async def call_tool(
        self,
        name: str,
        arguments: dict | None,
        client: BookmarkClient,
    ) -> types.CallToolResult:
        """Dispatch tool call to registered handler.

        Raises:
            ValueError: If tool name is not registered (unknown or filtered out).
        """
        from .errors import translate_sync_error

        spec = self._specs.get(name)
        if spec is None:
            raise ValueError(f"Unknown tool: {name}")
        try:
            return await spec.handler(client, arguments or {})
        except BookmarkSyncError as e:
            logger.warning("%s failed: %s", name, e)
            return translate_sync_error(e)
        except ValueError as e:
            return translate_sync_error(e)
        except Exception as e:
            logger.exception("Unexpected error in tool %s", name)
            return translate_sync_error(e)
