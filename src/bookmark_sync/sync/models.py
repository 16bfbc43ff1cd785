"""Pydantic models for the bookmark sync engine.

Defines the data contracts used across all sync modules:

- API payloads: ``Tag``, ``BookmarkContent``, ``Asset``, ``Highlight``,
  ``Bookmark``, ``BookmarkPage``, ``HighlightList``, ``TagList``.
- Run bookkeeping: ``SyncPhase``, ``SyncAction``, ``SyncResult``,
  ``SyncReport``.

API models accept the server's camelCase field names, ignore unknown
fields, and are frozen.  Timestamps are kept as the raw strings the
server sent; ``parse_timestamp()`` turns them into aware datetimes on
demand so that an unparsable value never breaks model validation.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

UNTITLED = "Untitled"

_API_MODEL_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "extra": "ignore",
}


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    A trailing ``Z`` is accepted and naive values are assumed to be UTC.

    Returns:
        The parsed datetime, or ``None`` when *value* is empty or
        cannot be parsed.
    """
    if not value:
        return None
    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class Tag(BaseModel):
    """A tag attached to a bookmark, or one entry of ``GET /tags``."""

    id: str
    name: str

    model_config = _API_MODEL_CONFIG


class BookmarkContent(BaseModel):
    """Type-tagged bookmark payload.

    ``type`` is ``link``, ``text`` or ``asset``.  Only the fields the
    renderer and the asset fetcher consume are modelled.
    """

    type: str = "link"
    url: str | None = None
    title: str | None = None
    image_url: str | None = Field(default=None, alias="imageUrl")
    text: str | None = None

    model_config = _API_MODEL_CONFIG


class Asset(BaseModel):
    id: str
    asset_type: str = Field(alias="assetType")
    file_name: str | None = Field(default=None, alias="fileName")

    model_config = _API_MODEL_CONFIG


class Highlight(BaseModel):
    text: str | None = None
    note: str | None = None

    model_config = _API_MODEL_CONFIG


class Bookmark(BaseModel):
    """One remote bookmark.

    ``highlights`` is empty in listing payloads; the materializer fills
    it from ``GET /bookmarks/{id}/highlights`` via ``with_highlights()``.
    """

    id: str
    created_at: str | None = Field(default=None, alias="createdAt")
    modified_at: str | None = Field(default=None, alias="modifiedAt")
    title: str | None = None
    archived: bool = False
    favourited: bool = False
    tags: list[Tag] = Field(default_factory=list)
    content: BookmarkContent = Field(default_factory=BookmarkContent)
    assets: list[Asset] = Field(default_factory=list)
    note: str | None = None
    highlights: list[Highlight] = Field(default_factory=list)

    model_config = _API_MODEL_CONFIG

    @property
    def resolved_title(self) -> str:
        """Bookmark title, then content title, then ``"Untitled"``."""
        return resolve_title(self)

    @property
    def image_assets(self) -> list[Asset]:
        return [a for a in self.assets if a.asset_type == "image"]

    def with_highlights(self, highlights: Iterable[Highlight]) -> Bookmark:
        """Return the merged record: a copy carrying *highlights*."""
        return self.model_copy(update={"highlights": list(highlights)})


def resolve_title(bookmark: Bookmark) -> str:
    for candidate in (bookmark.title, bookmark.content.title):
        if candidate:
            return candidate
    return UNTITLED


class BookmarkPage(BaseModel):
    """One page of ``GET /bookmarks`` or ``GET /tags/{id}/bookmarks``."""

    bookmarks: list[Bookmark] = Field(default_factory=list)
    next_cursor: str | None = Field(default=None, alias="nextCursor")

    model_config = _API_MODEL_CONFIG


class HighlightList(BaseModel):
    highlights: list[Highlight] = Field(default_factory=list)

    model_config = _API_MODEL_CONFIG


class TagList(BaseModel):
    tags: list[Tag] = Field(default_factory=list)

    model_config = _API_MODEL_CONFIG


# ---------------------------------------------------------------------------
# Run bookkeeping
# ---------------------------------------------------------------------------


class SyncPhase(str, Enum):
    """States of the sync orchestrator."""

    IDLE = "idle"
    LOADING_WATERMARK = "loading_watermark"
    ENUMERATING = "enumerating"
    FILTERING = "filtering"
    MATERIALIZING = "materializing"
    PERSISTING_WATERMARK = "persisting_watermark"
    DONE = "done"
    FAILED = "failed"


class SyncAction(str, Enum):
    """What happened to one bookmark's file."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"


class SyncResult(BaseModel):
    """Result of materializing one bookmark.

    Attributes:
        bookmark_id: Remote bookmark id.
        title: Resolved title.
        path: Target file path (absolute).
        action: What was (or would have been) done to the file.
        success: Whether materialization succeeded.
        error: Error message if it failed.
        assets: Paths of images downloaded for this bookmark.
    """

    bookmark_id: str
    title: str = ""
    path: str = ""
    action: SyncAction
    success: bool = True
    error: str | None = None
    assets: list[str] = []

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one sync run.

    Attributes:
        scope: ``"all"`` for the full collection or ``"#tag"``.
        forced: Whether the incremental filter was bypassed.
        results: Per-bookmark results, in processing order.
        fetched: Bookmarks returned by the API.
        filtered_out: Bookmarks dropped by the incremental filter.
        watermark_before: Watermark in effect at the start, if any.
        watermark_after: Watermark persisted at the end, if any.
        started_at: ISO 8601 timestamp when the run started.
        completed_at: ISO 8601 timestamp when the run ended.
    """

    scope: str = "all"
    forced: bool = False
    results: list[SyncResult] = []
    fetched: int = 0
    filtered_out: int = 0
    watermark_before: str | None = None
    watermark_after: str | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def created(self) -> list[SyncResult]:
        return [
            r
            for r in self.results
            if r.success and r.action == SyncAction.CREATE
        ]

    @property
    def updated(self) -> list[SyncResult]:
        return [
            r
            for r in self.results
            if r.success and r.action == SyncAction.UPDATE
        ]

    @property
    def skipped(self) -> list[SyncResult]:
        return [
            r
            for r in self.results
            if r.success and r.action == SyncAction.SKIP
        ]

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def assets_downloaded(self) -> int:
        return sum(len(r.assets) for r in self.results)

    def summary(self) -> str:
        """One-line summary of the run."""
        return (
            f"{len(self.results)} bookmarks: "
            f"{len(self.created)} created, {len(self.updated)} updated, "
            f"{len(self.skipped)} skipped, {len(self.errors)} failed"
        )
