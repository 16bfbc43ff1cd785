"""Tests for cursor-based enumeration."""

import threading

import pytest

from bookmark_sync.config_schema import SyncConfig
from bookmark_sync.errors import SyncCancelledError, TransportError
from bookmark_sync.sync.models import BookmarkPage
from bookmark_sync.sync.pagination import BookmarkPager


class TestBookmarkPager:
    def test_walks_all_pages(self, fake_client_factory, bookmark_factory):
        client = fake_client_factory(
            bookmarks=[bookmark_factory(str(i)) for i in range(250)]
        )

        bookmarks = BookmarkPager(client).collect()

        assert [b.id for b in bookmarks] == [str(i) for i in range(250)]
        assert [c["cursor"] for c in client.page_calls] == [None, "100", "200"]
        assert {c["limit"] for c in client.page_calls} == {100}

    def test_empty_collection(self, fake_client_factory):
        client = fake_client_factory()

        assert BookmarkPager(client).collect() == []
        assert len(client.page_calls) == 1

    def test_filters_from_settings(self, fake_client_factory):
        client = fake_client_factory()
        settings = SyncConfig(
            exclude_archived=True, only_favourites=True, page_size=25
        )

        BookmarkPager.from_settings(client, settings).collect()

        call = client.page_calls[0]
        assert call["archived"] is False
        assert call["favourited"] is True
        assert call["limit"] == 25

    def test_no_filters_by_default(self, fake_client_factory):
        client = fake_client_factory()

        BookmarkPager.from_settings(client, SyncConfig()).collect()

        assert client.page_calls[0]["archived"] is None
        assert client.page_calls[0]["favourited"] is None

    def test_tag_endpoint(self, fake_client_factory, bookmark_factory):
        client = fake_client_factory(
            tag_bookmarks={"42": [bookmark_factory("t1")]}
        )

        pager = BookmarkPager(client, tag_id="42")

        assert pager.endpoint == "/tags/42/bookmarks"
        assert [b.id for b in pager.collect()] == ["t1"]

    def test_lazy_and_restartable(self, fake_client_factory, bookmark_factory):
        client = fake_client_factory(bookmarks=[bookmark_factory("1")])
        pager = BookmarkPager(client)

        assert client.page_calls == []
        first = list(pager)
        second = list(pager)

        assert first == second
        assert len(client.page_calls) == 2

    def test_page_failure_propagates(self, fake_client_factory, bookmark_factory):
        client = fake_client_factory(
            bookmarks=[bookmark_factory(str(i)) for i in range(150)],
            fail_page=2,
        )

        with pytest.raises(TransportError):
            BookmarkPager(client).collect()

    def test_repeated_cursor_detected(self, mock_client):
        mock_client.get_bookmarks_page.return_value = BookmarkPage(
            bookmarks=[], next_cursor="same"
        )

        with pytest.raises(TransportError, match="twice"):
            BookmarkPager(mock_client).collect()

        assert mock_client.get_bookmarks_page.call_count == 2

    def test_cancel_before_first_page(self, fake_client_factory):
        client = fake_client_factory()
        event = threading.Event()
        event.set()

        with pytest.raises(SyncCancelledError):
            BookmarkPager(client, cancel_event=event).collect()

        assert client.page_calls == []

    def test_on_page_callback(self, fake_client_factory, bookmark_factory):
        client = fake_client_factory(
            bookmarks=[bookmark_factory(str(i)) for i in range(3)]
        )
        seen = []

        BookmarkPager(
            client,
            page_size=2,
            on_page=lambda n, page: seen.append((n, len(page.bookmarks))),
        ).collect()

        assert seen == [(1, 2), (2, 1)]
