"""Unified configuration schema for bookmark_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for the server connection, the sync behaviour and logging.
The ``server`` section feeds ``config.load_config()`` as YAML fallbacks;
the ``sync`` section is handed to the sync engine as-is.

Usage:
    from bookmark_sync.config_schema import build_config

    unified = build_config(load_hierarchical_config())
    settings = apply_sync_overrides(unified.sync, {"file_format": "markdown"})
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    """Bookmark server connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(default=None, description="Bookmark server URL")
    token: str | None = Field(default=None, description="API token")
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    timeout: float = Field(
        default=60.0,
        ge=1,
        le=600,
        description="Read timeout for API requests in seconds",
    )
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries for transient HTTP failures (0-10)",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """How bookmarks are mirrored to disk.

    Attributes:
        sync_root: Directory receiving one file per bookmark.
        attachments_root: Directory for downloaded images. Defaults to
            ``{sync_root}/attachments``.
        file_format: ``org`` or ``markdown``.
        update_existing_files: Re-render files that already exist.
        exclude_archived: Only fetch bookmarks that are not archived.
        only_favourites: Only fetch favourited bookmarks.
        download_assets: Download image assets next to the notes.
        page_size: Bookmarks requested per page (API maximum is 100).
        fail_fast: Abort the run on the first failed bookmark instead of
            recording the failure and moving on.
        disambiguate_filenames: Append the bookmark id to file names so
            equal title + date pairs no longer collide.
        legacy_asset_names: Name images after the bookmark title only.
    """

    sync_root: str = Field(default="~/bookmarks")
    attachments_root: str | None = None
    file_format: Literal["org", "markdown"] = "org"
    update_existing_files: bool = False
    exclude_archived: bool = False
    only_favourites: bool = False
    download_assets: bool = False
    page_size: int = Field(default=100, ge=1, le=100)
    fail_fast: bool = False
    disambiguate_filenames: bool = False
    legacy_asset_names: bool = False

    model_config = {"frozen": True}

    @property
    def sync_root_path(self) -> Path:
        return Path(self.sync_root).expanduser()

    @property
    def attachments_root_path(self) -> Path:
        if self.attachments_root:
            return Path(self.attachments_root).expanduser()
        return self.sync_root_path / "attachments"


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully: anything absent gets defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def apply_sync_overrides(
    sync: SyncConfig, overrides: dict | None
) -> SyncConfig:
    """Return a copy of *sync* with non-``None`` CLI overrides applied."""
    if not overrides:
        return sync
    changes = {k: v for k, v in overrides.items() if v is not None}
    if not changes:
        return sync
    return SyncConfig(**{**sync.model_dump(), **changes})
