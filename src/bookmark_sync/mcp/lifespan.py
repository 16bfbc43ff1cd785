"""Startup and shutdown of the MCP server.

The server refuses to start without a working connection: configuration
is resolved and the API token is checked against ``/users/me`` before
the stdio transport is opened.
"""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from ..config import Config, load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config
from ..core.async_utils import run_sync
from ..core.client import BookmarkClient

logger = logging.getLogger(__name__)

_CREDENTIALS_HINT = "Check BOOKMARK_SYNC_URL and BOOKMARK_SYNC_TOKEN."


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


def _announce(msg: str) -> None:
    logger.info(msg.strip())
    _stderr_print(msg)


def _resolve_config(overrides: dict[str, Any]) -> Config:
    """Merge CLI overrides, environment (.env included) and YAML."""
    load_dotenv()

    yaml_fallbacks: dict[str, Any] | None = None
    sources = ["environment variables"]
    config_files = discover_config_files()
    if config_files:
        server = build_config(load_hierarchical_config()).server
        yaml_fallbacks = {
            k: v for k, v in server.model_dump().items() if v is not None
        }
        sources.append(f"config file: {config_files[0]}")
    if any(overrides.get(k) for k in ("url", "token", "insecure")):
        sources.insert(0, "CLI arguments")

    config = load_config(
        url=overrides.get("url"),
        token=overrides.get("token"),
        insecure=overrides.get("insecure", False),
        debug=overrides.get("debug", False),
        yaml_fallbacks=yaml_fallbacks,
    )
    _announce(f"  Configuration loaded from: {', '.join(sources)}")
    _announce(f"  Server URL: {config.server_url}")
    return config


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Yield ``{"client": BookmarkClient}`` once the server is usable.

    Args:
        config_overrides: Values from the command line (url, token, insecure).

    Raises:
        RuntimeError: If configuration is invalid or the token is rejected.
    """
    _announce("Bookmark Sync MCP Server starting...")

    try:
        config = _resolve_config(config_overrides or {})
    except (ValueError, ValidationError) as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        raise RuntimeError(
            f"Configuration error: {e}. {_CREDENTIALS_HINT}"
        ) from e

    client = BookmarkClient(config)
    _announce("  Validating connection...")
    try:
        user = await run_sync(client.validate_connection)
    except Exception as e:
        logger.error("Failed to connect: %s", e)
        _stderr_print(f"ERROR: Connection failed.\n  {e}")
        raise RuntimeError(f"Connection failed: {e}. {_CREDENTIALS_HINT}") from e

    _announce(f"  Connected as {user or '<unnamed user>'}")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    try:
        yield {"client": client}
    finally:
        _announce("Bookmark Sync MCP Server shutting down.")
