"""Shared pytest fixtures for bookmark-sync tests."""

from __future__ import annotations

from typing import Any
from unittest.mock import MagicMock

import pytest

from bookmark_sync.config import Config
from bookmark_sync.errors import NotFoundError, TransportError
from bookmark_sync.sync.models import (
    Bookmark,
    BookmarkPage,
    Highlight,
    Tag,
)


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a live bookmark server",
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep the developer's env vars and config files out of every test."""
    for key in (
        "BOOKMARK_SYNC_URL",
        "BOOKMARK_SYNC_TOKEN",
        "BOOKMARK_SYNC_INSECURE",
        "BOOKMARK_SYNC_DEBUG",
        "BOOKMARK_SYNC_TIMEOUT",
        "BOOKMARK_SYNC_MAX_RETRIES",
        "BOOKMARK_SYNC_CONFIG",
        "LOG_LEVEL",
        "LOG_FILE",
    ):
        monkeypatch.delenv(key, raising=False)
    home = tmp_path / "home"
    monkeypatch.setenv("HOME", str(home))


@pytest.fixture
def mock_config():
    """Create a Config instance for testing."""
    return Config(
        server_url="https://bookmarks.example.com",
        api_token="secret-token",
        insecure=False,
        max_retries=0,
    )


@pytest.fixture
def mock_client(mock_config):
    """Create a mock BookmarkClient instance for testing."""
    from bookmark_sync.core.client import BookmarkClient

    client = MagicMock(spec=BookmarkClient)
    client.config = mock_config
    return client


def make_bookmark(
    bookmark_id: str,
    title: str | None = None,
    created: str = "2024-03-20T12:00:00.000Z",
    modified: str | None = "2024-03-20T12:00:00.000Z",
    **fields: Any,
) -> Bookmark:
    """Build a Bookmark from API-shaped (camelCase) data."""
    data: dict[str, Any] = {
        "id": bookmark_id,
        "createdAt": created,
        "modifiedAt": modified,
        "title": title if title is not None else f"Bookmark {bookmark_id}",
        "content": {"type": "link", "url": f"https://example.com/{bookmark_id}"},
    }
    data.update(fields)
    return Bookmark.model_validate(data)


class FakeBookmarkClient:
    """Minimal BookmarkClient replacement backed by in-memory data.

    ``bookmarks`` is served in pages of the requested ``limit`` with
    numeric cursors.  Every call is recorded so tests can assert on the
    queries that were sent.
    """

    def __init__(
        self,
        bookmarks: list[Bookmark] | None = None,
        highlights: dict[str, list[Highlight]] | None = None,
        tags: dict[str, str] | None = None,
        tag_bookmarks: dict[str, list[Bookmark]] | None = None,
        fail_highlights_for: set[str] | None = None,
        fail_page: int | None = None,
    ) -> None:
        self.bookmarks = bookmarks or []
        self.highlights = highlights or {}
        self.tags = tags or {}
        self.tag_bookmarks = tag_bookmarks or {}
        self.fail_highlights_for = fail_highlights_for or set()
        self.fail_page = fail_page
        self.page_calls: list[dict[str, Any]] = []
        self.highlight_calls: list[str] = []
        self.downloads: list[tuple[str, str]] = []

    def _page(self, items: list[Bookmark], limit: int, cursor: str | None) -> BookmarkPage:
        start = int(cursor) if cursor else 0
        end = start + limit
        return BookmarkPage(
            bookmarks=items[start:end],
            next_cursor=str(end) if end < len(items) else None,
        )

    def get_bookmarks_page(self, limit=100, cursor=None, archived=None, favourited=None):
        self.page_calls.append(
            {
                "endpoint": "/bookmarks",
                "limit": limit,
                "cursor": cursor,
                "archived": archived,
                "favourited": favourited,
            }
        )
        if self.fail_page is not None and len(self.page_calls) == self.fail_page:
            raise TransportError(
                "GET /bookmarks returned HTTP 500", endpoint="/bookmarks", status_code=500
            )
        items = self.bookmarks
        if archived is False:
            items = [b for b in items if not b.archived]
        if favourited is True:
            items = [b for b in items if b.favourited]
        return self._page(items, limit, cursor)

    def get_tag_bookmarks_page(
        self, tag_id, limit=100, cursor=None, archived=None, favourited=None
    ):
        self.page_calls.append(
            {
                "endpoint": f"/tags/{tag_id}/bookmarks",
                "limit": limit,
                "cursor": cursor,
                "archived": archived,
                "favourited": favourited,
            }
        )
        return self._page(self.tag_bookmarks.get(tag_id, []), limit, cursor)

    def get_highlights(self, bookmark_id: str) -> list[Highlight]:
        self.highlight_calls.append(bookmark_id)
        if bookmark_id in self.fail_highlights_for:
            raise TransportError(
                f"GET /bookmarks/{bookmark_id}/highlights returned HTTP 500",
                endpoint=f"/bookmarks/{bookmark_id}/highlights",
                status_code=500,
            )
        return list(self.highlights.get(bookmark_id, []))

    def list_tags(self) -> list[Tag]:
        return [Tag(id=tag_id, name=name) for name, tag_id in self.tags.items()]

    def find_tag_id(self, name: str) -> str:
        if name not in self.tags:
            raise NotFoundError(f"Tag '{name}' not found", name=name)
        return self.tags[name]

    def asset_url(self, asset_id: str) -> str:
        return f"https://bookmarks.example.com/api/assets/{asset_id}"

    def download(self, url, dest):
        self.downloads.append((url, str(dest)))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"\x89PNG fake")
        return 9

    def validate_connection(self) -> str:
        return "Test User"


@pytest.fixture
def fake_client_factory():
    return FakeBookmarkClient


@pytest.fixture
def bookmark_factory():
    return make_bookmark
