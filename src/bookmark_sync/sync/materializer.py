"""Turn one remote bookmark into one local note file.

For each bookmark the materializer:

1. derives the target file name from title, creation date and format,
2. returns early (no network, no write) when the file exists and
   existing files are not being updated,
3. fetches the highlights sub-resource and merges it into the record,
4. downloads image assets when enabled: each one from the server's asset
   endpoint, or the preview image once when legacy names are in use,
5. renders the merged record and replaces the file in one atomic write.

Any failure raises; isolating it from sibling bookmarks is the engine's
job.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from bookmark_sync.sync.assets import AssetFetcher
from bookmark_sync.sync.filenames import asset_filename, bookmark_filename
from bookmark_sync.sync.models import Bookmark, SyncAction, SyncResult

if TYPE_CHECKING:
    from bookmark_sync.config_schema import SyncConfig
    from bookmark_sync.core.client import BookmarkClient

logger = logging.getLogger(__name__)


class BookmarkMaterializer:
    """Materialize bookmarks according to one ``SyncConfig``.

    Args:
        client: API client (highlights and asset downloads).
        settings: Sync configuration.
        assets: Asset fetcher; defaults to one rooted at the configured
            attachments directory.
    """

    def __init__(
        self,
        client: BookmarkClient,
        settings: SyncConfig,
        assets: AssetFetcher | None = None,
    ) -> None:
        self.client = client
        self.settings = settings
        self.assets = assets or AssetFetcher(
            client, settings.attachments_root_path
        )

    def target_path(self, bookmark: Bookmark, folder: Path) -> Path:
        name = bookmark_filename(
            bookmark.resolved_title,
            bookmark.created_at,
            self.settings.file_format,
            bookmark_id=bookmark.id,
            disambiguate=self.settings.disambiguate_filenames,
        )
        return folder / name

    def materialize(self, bookmark: Bookmark, target_folder: Path) -> SyncResult:
        """Write *bookmark* into *target_folder*.

        Raises:
            ValueError: If no file name can be derived (no creation date).
            TransportError: If highlights or an asset cannot be fetched.
            FilesystemError: If the note or an asset cannot be written.
        """
        from bookmark_sync.converters import render
        from bookmark_sync.file_handler import write_file

        title = bookmark.resolved_title
        path = self.target_path(bookmark, target_folder)
        existed = path.exists()

        if existed and not self.settings.update_existing_files:
            logger.debug("Keeping existing file %s", path)
            return SyncResult(
                bookmark_id=bookmark.id,
                title=title,
                path=str(path),
                action=SyncAction.SKIP,
            )

        highlights = self.client.get_highlights(bookmark.id)
        record = bookmark.with_highlights(highlights)

        downloaded: list[str] = []
        if self.settings.download_assets:
            downloaded = self._fetch_assets(record)

        write_file(path, render(record, self.settings.file_format))
        logger.debug(
            "%s %s (%d highlights)",
            "Updated" if existed else "Created",
            path,
            len(highlights),
        )

        return SyncResult(
            bookmark_id=bookmark.id,
            title=title,
            path=str(path),
            action=SyncAction.UPDATE if existed else SyncAction.CREATE,
            assets=downloaded,
        )

    def _fetch_assets(self, record: Bookmark) -> list[str]:
        images = record.image_assets
        if not images:
            return []

        if self.settings.legacy_asset_names:
            # every image shares the title-only name, so one fetch suffices
            sources = [
                (
                    record.content.image_url,
                    asset_filename(record.resolved_title, legacy=True),
                )
            ]
        else:
            sources = [
                (
                    self.client.asset_url(asset.id),
                    asset_filename(
                        record.resolved_title,
                        url=asset.file_name,
                        bookmark_id=record.id,
                        asset_id=asset.id,
                    ),
                )
                for asset in images
            ]

        downloaded: list[str] = []
        for url, filename in sources:
            written = self.assets.fetch_image(url, filename)
            if written is not None:
                downloaded.append(str(written))
        return downloaded
