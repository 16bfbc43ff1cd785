"""Sync orchestrator: mirror the remote collection into the sync root.

A run moves through these phases (``SyncEngine.phase``)::

    IDLE -> LOADING_WATERMARK -> ENUMERATING -> FILTERING
         -> MATERIALIZING -> PERSISTING_WATERMARK -> DONE

and lands in ``FAILED`` from any phase when a fatal error escapes.

1. Load the watermark (skipped for forced runs; absence means full sync).
2. Enumerate every page of the collection with the configured filters.
3. Keep bookmarks whose ``modifiedAt`` is missing, unparsable, or not
   earlier than the watermark (skipped for forced runs).
4. Materialize the survivors in fetch order, reporting ``k of n``.
5. Persist the current time as the new watermark, but only for an
   incremental run in which every bookmark succeeded.

Error handling is per-bookmark: one failing bookmark is logged and
recorded without aborting the rest, unless ``fail_fast`` is set.  Page
fetch failures and cancellation abort the run.  In every failure case
the previous watermark is left in place so the next incremental run
covers the same window again.

Tag-scoped runs (``run_tag``) enumerate ``/tags/{id}/bookmarks`` into
``{sync_root}/#{tag}/`` and never read or write the watermark.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

from bookmark_sync.errors import (
    BookmarkSyncError,
    RecordError,
    SyncCancelledError,
)
from bookmark_sync.sync.filenames import sanitize
from bookmark_sync.sync.materializer import BookmarkMaterializer
from bookmark_sync.sync.models import (
    Bookmark,
    SyncAction,
    SyncPhase,
    SyncReport,
    SyncResult,
    parse_timestamp,
)
from bookmark_sync.sync.pagination import BookmarkPager
from bookmark_sync.sync.state import WatermarkStore, format_watermark

if TYPE_CHECKING:
    from bookmark_sync.config_schema import SyncConfig
    from bookmark_sync.core.client import BookmarkClient

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, Bookmark], None]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def filter_since(
    bookmarks: Iterable[Bookmark], watermark: datetime | None
) -> list[Bookmark]:
    """Return the bookmarks an incremental sync must process.

    A bookmark is kept when its ``modifiedAt`` is missing, cannot be
    parsed, or is at or after *watermark*.  With no watermark every
    bookmark is kept.
    """
    if watermark is None:
        return list(bookmarks)

    kept = []
    for bookmark in bookmarks:
        modified = parse_timestamp(bookmark.modified_at)
        if modified is None:
            if bookmark.modified_at:
                logger.debug(
                    "Keeping %s: unparsable modifiedAt %r",
                    bookmark.id,
                    bookmark.modified_at,
                )
            kept.append(bookmark)
        elif modified >= watermark:
            kept.append(bookmark)
    return kept


def tag_folder(sync_root: Path, tag_name: str) -> Path:
    # One folder level per tag, whatever characters the tag name holds.
    return sync_root / f"#{sanitize(tag_name, 'tag')}"


def local_status(settings: SyncConfig) -> dict:
    """Summarise the local mirror without touching the network."""
    sync_root = settings.sync_root_path
    watermark = WatermarkStore(sync_root).load()
    suffix = ".org" if settings.file_format == "org" else ".md"
    notes = 0
    tag_folders = 0
    if sync_root.is_dir():
        notes = sum(1 for _ in sync_root.glob(f"*{suffix}"))
        for folder in sync_root.glob("#*"):
            if folder.is_dir():
                tag_folders += 1
                notes += sum(1 for _ in folder.glob(f"*{suffix}"))
    return {
        "sync_root": str(sync_root),
        "attachments_root": str(settings.attachments_root_path),
        "file_format": settings.file_format,
        "last_sync": format_watermark(watermark) if watermark else None,
        "notes": notes,
        "tag_folders": tag_folders,
    }


class SyncEngine:
    """Run full, incremental and tag-scoped syncs for one sync root.

    Args:
        client: API client.
        settings: Sync configuration.
        cancel_event: When set, the run stops before the next page or
            bookmark with ``SyncCancelledError``.
        progress: Called as ``progress(k, n, bookmark)`` before each
            bookmark is materialized.
        clock: Source of the current UTC time (used for the watermark).
        materializer: Override the default ``BookmarkMaterializer``.
    """

    def __init__(
        self,
        client: BookmarkClient,
        settings: SyncConfig,
        *,
        cancel_event: threading.Event | None = None,
        progress: ProgressCallback | None = None,
        clock: Callable[[], datetime] = _utcnow,
        materializer: BookmarkMaterializer | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.cancel_event = cancel_event
        self.progress = progress
        self.clock = clock

        self.sync_root = settings.sync_root_path
        self.watermark_store = WatermarkStore(self.sync_root)
        self.materializer = materializer or BookmarkMaterializer(
            client, settings
        )
        self.phase = SyncPhase.IDLE

    # ------------------------------------------------------------------
    # Main entry points
    # ------------------------------------------------------------------

    def run(self, force: bool = False) -> SyncReport:
        """Sync the whole collection into the sync root.

        Args:
            force: Ignore the watermark: process every fetched bookmark
                and leave the stored watermark untouched.

        Returns:
            A ``SyncReport`` describing the run.

        Raises:
            TransportError: If a page cannot be fetched.
            SyncCancelledError: If the run was cancelled.
            RecordError: For a malformed bookmark with ``fail_fast``.
            BookmarkSyncError: For a bookmark failure with ``fail_fast``.
        """
        started_at = self.clock().isoformat()
        self.phase = SyncPhase.IDLE
        try:
            watermark: datetime | None = None
            if not force:
                self.phase = SyncPhase.LOADING_WATERMARK
                watermark = self.watermark_store.load()
                if watermark is None:
                    logger.info("No watermark found, syncing everything")
                else:
                    logger.info(
                        "Syncing bookmarks modified since %s",
                        format_watermark(watermark),
                    )

            self.phase = SyncPhase.ENUMERATING
            fetched = BookmarkPager.from_settings(
                self.client, self.settings, cancel_event=self.cancel_event
            ).collect()

            selected = fetched
            if not force:
                self.phase = SyncPhase.FILTERING
                selected = filter_since(fetched, watermark)
                logger.info(
                    "%d of %d bookmarks changed since last sync",
                    len(selected),
                    len(fetched),
                )

            self.phase = SyncPhase.MATERIALIZING
            results = self._materialize_all(selected, self.sync_root)

            watermark_after = None
            failures = [r for r in results if not r.success]
            if not force:
                if failures:
                    logger.warning(
                        "%d bookmarks failed; keeping the previous watermark",
                        len(failures),
                    )
                else:
                    self._check_cancelled(f"after {len(results)} bookmarks")
                    self.phase = SyncPhase.PERSISTING_WATERMARK
                    watermark_after = self.watermark_store.save(self.clock())

            self.phase = SyncPhase.DONE
        except Exception as exc:
            self._fail(exc, "sync")
            raise

        return SyncReport(
            scope="all",
            forced=force,
            results=results,
            fetched=len(fetched),
            filtered_out=len(fetched) - len(selected),
            watermark_before=format_watermark(watermark) if watermark else None,
            watermark_after=watermark_after,
            started_at=started_at,
            completed_at=self.clock().isoformat(),
        )

    def run_tag(self, tag_name: str) -> SyncReport:
        """Sync every bookmark carrying *tag_name* into ``#tag_name/``.

        Raises:
            NotFoundError: If no tag has that name.
            TransportError: If the tag list or a page cannot be fetched.
            SyncCancelledError: If the run was cancelled.
        """
        started_at = self.clock().isoformat()
        self.phase = SyncPhase.IDLE
        try:
            self.phase = SyncPhase.ENUMERATING
            tag_id = self.client.find_tag_id(tag_name)
            logger.info(
                "Syncing tag '%s' (id %s)", tag_name, tag_id, extra={"tag": tag_name}
            )
            fetched = BookmarkPager.from_settings(
                self.client,
                self.settings,
                tag_id=tag_id,
                cancel_event=self.cancel_event,
            ).collect()

            self.phase = SyncPhase.MATERIALIZING
            results = self._materialize_all(
                fetched, tag_folder(self.sync_root, tag_name)
            )
            self.phase = SyncPhase.DONE
        except Exception as exc:
            self._fail(exc, f"tag sync '{tag_name}'")
            raise

        return SyncReport(
            scope=f"#{tag_name}",
            results=results,
            fetched=len(fetched),
            started_at=started_at,
            completed_at=self.clock().isoformat(),
        )

    def status(self) -> dict:
        """Summarise the local mirror: watermark and note file count."""
        return local_status(self.settings)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _materialize_all(
        self, bookmarks: list[Bookmark], folder: Path
    ) -> list[SyncResult]:
        results: list[SyncResult] = []
        total = len(bookmarks)

        for index, bookmark in enumerate(bookmarks, start=1):
            self._check_cancelled(f"after {index - 1} of {total} bookmarks")

            logger.info(
                "Syncing bookmark %d of %d: %s",
                index,
                total,
                bookmark.resolved_title,
                extra={"bookmark_id": bookmark.id},
            )
            if self.progress is not None:
                self.progress(index, total, bookmark)

            try:
                results.append(self.materializer.materialize(bookmark, folder))
            except Exception as exc:
                if self.settings.fail_fast:
                    logger.error(
                        "Stopping at bookmark %s (%s): %s",
                        bookmark.id,
                        bookmark.resolved_title,
                        exc,
                        extra={"bookmark_id": bookmark.id},
                    )
                    if isinstance(exc, BookmarkSyncError):
                        raise
                    raise RecordError(
                        f"Bookmark {bookmark.id} ({bookmark.resolved_title}): {exc}",
                        bookmark_id=bookmark.id,
                    ) from exc
                logger.error(
                    "Error syncing bookmark %s (%s): %s",
                    bookmark.id,
                    bookmark.resolved_title,
                    exc,
                    extra={"bookmark_id": bookmark.id},
                )
                results.append(
                    SyncResult(
                        bookmark_id=bookmark.id,
                        title=bookmark.resolved_title,
                        action=SyncAction.SKIP,
                        success=False,
                        error=str(exc),
                    )
                )

        return results

    def _check_cancelled(self, where: str) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise SyncCancelledError(f"Cancelled {where}")

    def _fail(self, exc: Exception, what: str) -> None:
        failed_in = self.phase
        self.phase = SyncPhase.FAILED
        if isinstance(exc, SyncCancelledError):
            logger.warning(
                "%s cancelled during %s: %s",
                what,
                failed_in.value,
                exc,
                extra={"phase": failed_in.value},
            )
        else:
            logger.error(
                "%s failed during %s: %s",
                what,
                failed_in.value,
                exc,
                extra={"phase": failed_in.value},
            )
