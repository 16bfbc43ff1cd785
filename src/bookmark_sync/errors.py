"""Exception hierarchy shared by the client, the sync engine and the CLI.

Every error raised on purpose by this package derives from
``BookmarkSyncError`` so callers can catch the whole family at once.
"""

from __future__ import annotations

from pathlib import Path


class BookmarkSyncError(Exception):
    """Base class for all bookmark-sync errors."""


class ConfigurationError(BookmarkSyncError, ValueError):
    """Missing or invalid configuration (server URL, API token, ...)."""


class TransportError(BookmarkSyncError):
    """An API request failed or returned a non-2xx status.

    Attributes:
        endpoint: API endpoint (or absolute URL) that was requested.
        status_code: HTTP status, or ``None`` for connection-level failures.
    """

    def __init__(
        self,
        message: str,
        endpoint: str = "",
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code


class NotFoundError(BookmarkSyncError):
    """A named remote entity (e.g. a tag) does not exist."""

    def __init__(self, message: str, name: str = "") -> None:
        super().__init__(message)
        self.name = name


class FilesystemError(BookmarkSyncError):
    """Writing or copying a local file failed."""

    def __init__(self, message: str, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class SyncCancelledError(BookmarkSyncError):
    """The run was cancelled between pages or between bookmarks."""


class RecordError(BookmarkSyncError):
    """One bookmark could not be materialized (e.g. it has no creation date).

    Attributes:
        bookmark_id: Id of the offending bookmark.
    """

    def __init__(self, message: str, bookmark_id: str = "") -> None:
        super().__init__(message)
        self.bookmark_id = bookmark_id
