"""Image asset downloads.

Downloads are presence-checked only: once a file exists at the
destination it is never fetched again, whatever its content.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from bookmark_sync.file_handler import ensure_dir

if TYPE_CHECKING:
    from bookmark_sync.core.client import BookmarkClient

logger = logging.getLogger(__name__)


class AssetFetcher:
    """Materialize image assets under one attachments directory.

    Args:
        client: API client used for the actual byte transfer.
        attachments_root: Directory receiving the images.
    """

    def __init__(self, client: BookmarkClient, attachments_root: Path) -> None:
        self.client = client
        self.attachments_root = attachments_root

    def fetch_image(self, url: str | None, filename: str) -> Path | None:
        """Download *url* to ``attachments_root / filename`` once.

        Returns:
            The written path, or ``None`` when there is no URL or the
            file already exists (no network call is made in either case).

        Raises:
            TransportError: If the download fails.
            FilesystemError: If the file cannot be written.
        """
        if not url:
            return None

        dest = self.attachments_root / filename
        if dest.exists():
            logger.debug("Asset already present, skipping: %s", dest)
            return None

        ensure_dir(self.attachments_root)
        size = self.client.download(url, dest)
        logger.info("Downloaded %s (%d bytes) -> %s", url, size, dest)
        return dest
