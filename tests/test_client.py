"""Tests for BookmarkClient and retry_with_backoff."""

from unittest.mock import MagicMock, patch

import pytest
import requests

from bookmark_sync.config import Config
from bookmark_sync.core.client import (
    BookmarkClient,
    retry_with_backoff,
)
from bookmark_sync.errors import (
    FilesystemError,
    NotFoundError,
    TransportError,
)


def _response(status=200, json_data=None, content=b"{}", chunks=None):
    response = MagicMock()
    response.status_code = status
    response.ok = 200 <= status < 300
    response.text = str(json_data)
    response.content = content if json_data is None else b"x"
    response.json.return_value = json_data
    response.iter_content.return_value = iter(chunks or [])
    response.__enter__.return_value = response
    return response


@pytest.fixture
def client(mock_config):
    return BookmarkClient(mock_config)


@pytest.fixture
def session(client):
    fake = MagicMock()
    client._thread_local.session = fake
    return fake


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------


class TestSession:
    def test_bearer_header_and_verify(self, mock_config):
        client = BookmarkClient(mock_config)

        session = client.session

        assert session.headers["Authorization"] == "Bearer secret-token"
        assert session.headers["Accept"] == "application/json"
        assert session.verify is True

    def test_insecure_disables_verification(self):
        client = BookmarkClient(
            Config(
                server_url="https://b.example.com",
                api_token="t",
                insecure=True,
            )
        )

        assert client.session.verify is False

    def test_session_reused_per_thread(self, client):
        assert client.session is client.session

    def test_api_url(self, client):
        assert client.api_url == "https://bookmarks.example.com/api/v1"


# ---------------------------------------------------------------------------
# Generic requests
# ---------------------------------------------------------------------------


class TestRequest:
    def test_get_decodes_json(self, client, session):
        session.request.return_value = _response(json_data={"ok": True})

        assert client.get("/users/me") == {"ok": True}
        args, kwargs = session.request.call_args
        assert args == ("GET", "https://bookmarks.example.com/api/v1/users/me")
        assert kwargs["timeout"] == (10.0, 60.0)

    def test_post_sends_body(self, client, session):
        session.request.return_value = _response(json_data={"id": "b1"})

        client.post("/bookmarks", body={"type": "link"})

        assert session.request.call_args[1]["json"] == {"type": "link"}

    def test_empty_body_is_none(self, client, session):
        session.request.return_value = _response(content=b"")

        assert client.get("/anything") is None

    def test_http_error(self, client, session):
        session.request.return_value = _response(status=404, json_data={})

        with pytest.raises(TransportError) as exc_info:
            client.get("/bookmarks/x/highlights")

        assert exc_info.value.status_code == 404
        assert exc_info.value.endpoint == "/bookmarks/x/highlights"

    def test_connection_error(self, client, session):
        session.request.side_effect = requests.ConnectionError("refused")

        with pytest.raises(TransportError, match="refused") as exc_info:
            client.get("/bookmarks")

        assert exc_info.value.status_code is None

    def test_invalid_json(self, client, session):
        response = _response(json_data={})
        response.json.side_effect = ValueError("Expecting value")
        session.request.return_value = response

        with pytest.raises(TransportError, match="invalid JSON"):
            client.get("/bookmarks")

    def test_transient_error_retried(self, session):
        client = BookmarkClient(
            Config(
                server_url="https://b.example.com",
                api_token="t",
                max_retries=2,
            )
        )
        client._thread_local.session = session
        session.request.side_effect = [
            _response(status=503, json_data={}),
            _response(json_data={"name": "Ada"}),
        ]

        with patch("bookmark_sync.core.client.time.sleep") as sleep:
            assert client.validate_connection() == "Ada"

        assert session.request.call_count == 2
        sleep.assert_called_once()


# ---------------------------------------------------------------------------
# Typed endpoints
# ---------------------------------------------------------------------------


class TestBookmarkEndpoints:
    def test_bookmarks_page_query(self, client, session):
        session.request.return_value = _response(
            json_data={
                "bookmarks": [
                    {
                        "id": "b1",
                        "createdAt": "2024-03-20T12:00:00.000Z",
                        "content": {"type": "link", "url": "https://e.com"},
                    }
                ],
                "nextCursor": "c2",
            }
        )

        page = client.get_bookmarks_page(
            limit=100, cursor="c1", archived=False, favourited=True
        )

        assert [b.id for b in page.bookmarks] == ["b1"]
        assert page.next_cursor == "c2"
        assert session.request.call_args[1]["params"] == {
            "limit": 100,
            "cursor": "c1",
            "archived": "false",
            "favourited": "true",
        }

    def test_filters_omitted_when_unset(self, client, session):
        session.request.return_value = _response(json_data={"bookmarks": []})

        page = client.get_bookmarks_page()

        assert page.next_cursor is None
        assert session.request.call_args[1]["params"] == {"limit": 100}

    def test_tag_bookmarks_endpoint(self, client, session):
        session.request.return_value = _response(
            json_data={"bookmarks": [], "nextCursor": None}
        )

        client.get_tag_bookmarks_page("42", archived=False)

        args, kwargs = session.request.call_args
        assert args[1].endswith("/api/v1/tags/42/bookmarks")
        assert kwargs["params"] == {"limit": 100, "archived": "false"}

    def test_highlights(self, client, session):
        session.request.return_value = _response(
            json_data={
                "highlights": [
                    {"text": "first", "note": None},
                    {"text": "second", "note": "mine"},
                ]
            }
        )

        highlights = client.get_highlights("b1")

        assert [h.text for h in highlights] == ["first", "second"]
        assert highlights[1].note == "mine"


class TestTags:
    def test_find_tag_id(self, client, session):
        session.request.return_value = _response(
            json_data={
                "tags": [
                    {"id": "7", "name": "python"},
                    {"id": "42", "name": "reading"},
                ]
            }
        )

        assert client.find_tag_id("reading") == "42"

    def test_find_tag_id_is_exact(self, client, session):
        session.request.return_value = _response(
            json_data={"tags": [{"id": "42", "name": "Reading"}]}
        )

        with pytest.raises(NotFoundError) as exc_info:
            client.find_tag_id("reading")

        assert exc_info.value.name == "reading"


# ---------------------------------------------------------------------------
# Downloads
# ---------------------------------------------------------------------------


class TestDownload:
    def test_same_server_uses_session(self, client, session, tmp_path):
        session.get.return_value = _response(chunks=[b"ab", b"cd"])
        dest = tmp_path / "att" / "img.png"

        size = client.download(
            "https://bookmarks.example.com/api/assets/a1", dest
        )

        assert size == 4
        assert dest.read_bytes() == b"abcd"
        session.get.assert_called_once()

    def test_foreign_host_gets_no_token(self, client, session, tmp_path):
        dest = tmp_path / "img.png"

        with patch(
            "bookmark_sync.core.client.requests.get",
            return_value=_response(chunks=[b"img"]),
        ) as plain_get:
            client.download("https://cdn.example.org/img.png", dest)

        session.get.assert_not_called()
        assert "headers" not in plain_get.call_args[1]
        assert dest.read_bytes() == b"img"

    @pytest.mark.parametrize(
        "url",
        [
            "https://bookmarks.example.com.attacker.net/steal.png",
            "https://bookmarks.example.com@evil.example.net/steal.png",
            "http://bookmarks.example.com/downgraded.png",
            "https://bookmarks.example.com:8443/other-port.png",
        ],
    )
    def test_lookalike_hosts_get_no_token(self, client, session, tmp_path, url):
        with patch(
            "bookmark_sync.core.client.requests.get",
            return_value=_response(chunks=[b"img"]),
        ) as plain_get:
            client.download(url, tmp_path / "img.png")

        session.get.assert_not_called()
        plain_get.assert_called_once()

    def test_explicit_default_port_is_same_server(self, client, session, tmp_path):
        session.get.return_value = _response(chunks=[b"img"])

        client.download(
            "https://BOOKMARKS.example.com:443/api/assets/a1", tmp_path / "img.png"
        )

        session.get.assert_called_once()

    def test_asset_url(self, client):
        assert client.asset_url("a1") == (
            "https://bookmarks.example.com/api/assets/a1"
        )

    def test_http_error_writes_nothing(self, client, session, tmp_path):
        session.get.return_value = _response(status=403)
        dest = tmp_path / "img.png"

        with pytest.raises(TransportError) as exc_info:
            client.download("https://bookmarks.example.com/x.png", dest)

        assert exc_info.value.status_code == 403
        assert not dest.exists()

    def test_mid_stream_failure_is_transport_error(
        self, client, session, tmp_path
    ):
        def broken():
            yield b"part"
            raise requests.ConnectionError("reset")

        response = _response()
        response.iter_content.return_value = broken()
        session.get.return_value = response
        dest = tmp_path / "img.png"

        with pytest.raises(TransportError, match="mid-stream"):
            client.download("https://bookmarks.example.com/x.png", dest)

        assert not dest.exists()

    def test_unwritable_destination(self, client, session, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        session.get.return_value = _response(chunks=[b"x"])

        with pytest.raises(FilesystemError):
            client.download(
                "https://bookmarks.example.com/x.png", blocker / "img.png"
            )


# ---------------------------------------------------------------------------
# retry_with_backoff
# ---------------------------------------------------------------------------


class TestRetryWithBackoff:
    def test_returns_first_success(self):
        assert retry_with_backoff(lambda: 5, max_retries=3) == 5

    def test_retries_then_raises(self):
        calls = []
        delays = []

        def failing():
            calls.append(1)
            raise TransportError("down", status_code=502)

        with pytest.raises(TransportError):
            retry_with_backoff(
                failing,
                max_retries=2,
                base_delay=1.0,
                jitter=0.0,
                sleep=delays.append,
            )

        assert len(calls) == 3
        assert delays == [1.0, 2.0]

    def test_client_errors_not_retried(self):
        calls = []

        def unauthorized():
            calls.append(1)
            raise TransportError("nope", status_code=401)

        with pytest.raises(TransportError):
            retry_with_backoff(unauthorized, max_retries=5, sleep=lambda _: None)

        assert len(calls) == 1

    def test_delay_capped(self):
        delays = []

        def failing():
            raise TransportError("timeout")

        with pytest.raises(TransportError):
            retry_with_backoff(
                failing,
                max_retries=4,
                base_delay=10.0,
                max_delay=15.0,
                jitter=0.0,
                sleep=delays.append,
            )

        assert delays == [10.0, 15.0, 15.0, 15.0]
