"""Sync watermark persistence.

The watermark is the UTC time of the last completed incremental sync.
It lives in a one-line sidecar file, ``.last-sync-time``, at the root
of the synced tree, written in a human-readable ISO 8601 form such as
``2024-03-20T12:00:00Z``.

Key design choices:

* **Explicit value** -- ``load()`` returns the watermark and ``save()``
  takes one; the engine decides when to persist.
* **Atomic writes** -- ``save()`` goes through ``write_file()`` (temp file
  + ``os.replace()``) so a crash never leaves a truncated timestamp.
* **Absence is normal** -- a missing or unreadable sidecar means "no
  watermark", i.e. a full sync.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from bookmark_sync.file_handler import read_file_with_encoding, write_file
from bookmark_sync.sync.models import parse_timestamp

logger = logging.getLogger(__name__)

WATERMARK_FILENAME = ".last-sync-time"


def format_watermark(value: datetime) -> str:
    """Render *value* as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class WatermarkStore:
    """Load and save the sync watermark for one sync root.

    Args:
        sync_root: Directory holding the ``.last-sync-time`` sidecar.
    """

    def __init__(self, sync_root: Path) -> None:
        self._sync_root = sync_root

    @property
    def path(self) -> Path:
        return self._sync_root / WATERMARK_FILENAME

    def load(self) -> datetime | None:
        """Return the persisted watermark, or ``None`` if there is none."""
        path = self.path
        if not path.exists():
            return None
        try:
            content, _ = read_file_with_encoding(path)
        except OSError as exc:
            logger.warning("Cannot read watermark %s: %s", path, exc)
            return None

        value = parse_timestamp(content.strip())
        if value is None:
            logger.warning(
                "Ignoring unparsable watermark in %s: %r", path, content
            )
        return value

    def save(self, value: datetime) -> str:
        """Persist *value* and return the string that was written."""
        text = format_watermark(value)
        write_file(self.path, text + "\n")
        logger.debug("Watermark %s written to %s", text, self.path)
        return text
