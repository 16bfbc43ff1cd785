"""MCP tool handlers for the bookmark mirror.

Defines three tools:

- ``bookmarks_sync`` -- incremental (or forced) sync of the collection.
- ``bookmarks_sync_tag`` -- sync one tag into ``#tag/``.
- ``bookmarks_sync_status`` -- last sync time and local counts.

Only one sync runs at a time; a second request while one is in flight
gets a ``busy`` error instead of racing on the same files.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any

import mcp.types as types

from ...config_loader import load_hierarchical_config
from ...config_schema import SyncConfig, build_config
from ...core.async_utils import run_sync
from ...core.client import BookmarkClient
from ...sync.engine import SyncEngine, local_status
from ...sync.reporter import format_status, format_sync_report, report_to_json
from .errors import build_error_response
from .registry import ToolSpec

logger = logging.getLogger(__name__)

_sync_lock = threading.Lock()


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="bookmarks_sync",
        description=(
            "Mirror the remote bookmark collection into local Org/Markdown "
            "notes. Incremental by default: only bookmarks modified since "
            "the last successful sync are rewritten."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "force": {
                    "type": "boolean",
                    "default": False,
                    "description": "Ignore the last sync time and process every bookmark",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="bookmarks_sync_tag",
        description=(
            "Mirror every bookmark carrying one tag into the '#<tag>' "
            "folder of the sync root. Does not change the last sync time."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=True,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "tag": {
                    "type": "string",
                    "description": "Tag name, without the leading '#'",
                },
            },
            "required": ["tag"],
        },
    ),
    types.Tool(
        name="bookmarks_sync_status",
        description=(
            "Show the sync root, the last successful sync time and how many "
            "notes are on disk."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {},
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


def _load_sync_settings() -> SyncConfig:
    """Re-read the sync section so config edits apply without a restart."""
    return build_config(load_hierarchical_config()).sync


def _busy() -> types.CallToolResult:
    return build_error_response(
        "busy",
        "A sync is already running.",
        "Wait for it to finish, then call bookmarks_sync_status.",
    )


def _run_locked(fn, *args, **kwargs):
    """Run *fn* and release the sync lock from the worker thread."""
    try:
        return fn(*args, **kwargs)
    finally:
        _sync_lock.release()


async def _run_engine(
    client: BookmarkClient, tag: str | None = None, force: bool = False
) -> types.CallToolResult:
    if not _sync_lock.acquire(blocking=False):
        return _busy()
    cancel = threading.Event()
    try:
        engine = SyncEngine(
            client=client, settings=_load_sync_settings(), cancel_event=cancel
        )
    except BaseException:
        _sync_lock.release()
        raise

    # The lock stays held until the worker thread actually stops, even
    # when the awaiting request is cancelled.
    if tag is None:
        work = run_sync(_run_locked, engine.run, force=force)
    else:
        work = run_sync(_run_locked, engine.run_tag, tag)
    task = asyncio.ensure_future(work)
    task.add_done_callback(lambda t: t.cancelled() or t.exception())
    try:
        report = await asyncio.shield(task)
    except asyncio.CancelledError:
        logger.warning("Sync request cancelled; stopping the running sync")
        cancel.set()
        raise

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_sync_report(report))],
        structuredContent=report_to_json(report),
        isError=bool(report.errors),
    )


async def _handle_sync(
    client: BookmarkClient, args: dict[str, Any]
) -> types.CallToolResult:
    return await _run_engine(client, force=bool(args.get("force", False)))


async def _handle_sync_tag(
    client: BookmarkClient, args: dict[str, Any]
) -> types.CallToolResult:
    tag = str(args.get("tag") or "").strip().lstrip("#")
    if not tag:
        return build_error_response(
            "validation_error",
            "tag is required",
            "Provide the 'tag' parameter with a tag name.",
        )
    return await _run_engine(client, tag=tag)


async def _handle_sync_status(
    client: BookmarkClient, args: dict[str, Any]
) -> types.CallToolResult:
    status = await run_sync(local_status, _load_sync_settings())
    status["running"] = _sync_lock.locked()
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=format_status(status))],
        structuredContent=status,
    )


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=SYNC_TOOLS[0], handler=_handle_sync, writes=True),
    ToolSpec(tool=SYNC_TOOLS[1], handler=_handle_sync_tag, writes=True),
    ToolSpec(tool=SYNC_TOOLS[2], handler=_handle_sync_status),
]
