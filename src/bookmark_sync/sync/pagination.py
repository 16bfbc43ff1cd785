"""Cursor-based enumeration of a bookmark collection.

``BookmarkPager`` walks ``GET /bookmarks`` (or ``GET /tags/{id}/bookmarks``)
page by page until the server stops returning a ``nextCursor``.  The pager
is lazy and restartable: every ``iter()`` starts again from the first
page, and nothing is requested until iteration begins.

Query filters are fixed for the lifetime of a pager:

* ``archived=false`` when archived bookmarks are excluded,
* ``favourited=true`` when only favourites are wanted.

A failed page request propagates and ends the enumeration; there is no
partial-page recovery (the HTTP client already retries transient errors).
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from typing import TYPE_CHECKING

from bookmark_sync.errors import SyncCancelledError, TransportError
from bookmark_sync.sync.models import Bookmark, BookmarkPage

if TYPE_CHECKING:
    from bookmark_sync.config_schema import SyncConfig
    from bookmark_sync.core.client import BookmarkClient

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 100


class BookmarkPager:
    """Finite, restartable sequence of bookmarks fetched page by page.

    Args:
        client: API client.
        page_size: ``limit`` sent with every page request.
        archived: ``archived`` filter, or ``None`` to leave it out.
        favourited: ``favourited`` filter, or ``None`` to leave it out.
        tag_id: When set, enumerate ``/tags/{tag_id}/bookmarks``.
        cancel_event: Checked before each page request.
        on_page: Called with ``(page_number, page)`` after each page.
    """

    def __init__(
        self,
        client: BookmarkClient,
        page_size: int = DEFAULT_PAGE_SIZE,
        archived: bool | None = None,
        favourited: bool | None = None,
        tag_id: str | None = None,
        cancel_event: threading.Event | None = None,
        on_page: Callable[[int, BookmarkPage], None] | None = None,
    ) -> None:
        self.client = client
        self.page_size = page_size
        self.archived = archived
        self.favourited = favourited
        self.tag_id = tag_id
        self.cancel_event = cancel_event
        self.on_page = on_page

    @classmethod
    def from_settings(
        cls,
        client: BookmarkClient,
        settings: SyncConfig,
        tag_id: str | None = None,
        cancel_event: threading.Event | None = None,
    ) -> BookmarkPager:
        """Build a pager whose filters follow the sync configuration."""
        return cls(
            client,
            page_size=settings.page_size,
            archived=False if settings.exclude_archived else None,
            favourited=True if settings.only_favourites else None,
            tag_id=tag_id,
            cancel_event=cancel_event,
        )

    @property
    def endpoint(self) -> str:
        if self.tag_id is not None:
            return f"/tags/{self.tag_id}/bookmarks"
        return "/bookmarks"

    def _fetch(self, cursor: str | None) -> BookmarkPage:
        if self.tag_id is not None:
            return self.client.get_tag_bookmarks_page(
                self.tag_id,
                limit=self.page_size,
                cursor=cursor,
                archived=self.archived,
                favourited=self.favourited,
            )
        return self.client.get_bookmarks_page(
            limit=self.page_size,
            cursor=cursor,
            archived=self.archived,
            favourited=self.favourited,
        )

    def pages(self) -> Iterator[BookmarkPage]:
        """Yield pages until the server returns no ``nextCursor``.

        Raises:
            TransportError: If a page request fails, or the server hands
                back a cursor it already returned.
            SyncCancelledError: If the cancel event is set between pages.
        """
        cursor: str | None = None
        seen: set[str] = set()
        number = 0

        while True:
            if self.cancel_event is not None and self.cancel_event.is_set():
                raise SyncCancelledError(
                    f"Cancelled while enumerating {self.endpoint} "
                    f"after {number} pages"
                )

            number += 1
            logger.debug(
                "Fetching %s page %d (cursor=%s)",
                self.endpoint,
                number,
                cursor,
            )
            page = self._fetch(cursor)
            if self.on_page is not None:
                self.on_page(number, page)
            yield page

            cursor = page.next_cursor
            if not cursor:
                return
            if cursor in seen:
                raise TransportError(
                    f"{self.endpoint} returned cursor {cursor!r} twice",
                    endpoint=self.endpoint,
                )
            seen.add(cursor)

    def __iter__(self) -> Iterator[Bookmark]:
        for page in self.pages():
            yield from page.bookmarks

    def collect(self) -> list[Bookmark]:
        """Fetch every page and return all bookmarks in fetch order."""
        bookmarks = list(self)
        logger.info(
            "Fetched %d bookmarks from %s", len(bookmarks), self.endpoint
        )
        return bookmarks
