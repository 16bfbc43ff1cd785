import logging
import random
import threading
import time
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, TypeVar
from urllib.parse import urlsplit

import requests

from ..config import Config
from ..errors import NotFoundError, TransportError
from ..file_handler import write_chunks_atomic
from ..sync.models import BookmarkPage, Highlight, HighlightList, Tag, TagList

logger = logging.getLogger(__name__)

T = TypeVar("T")

API_PREFIX = "/api/v1"

# HTTP status codes that should trigger a retry
RETRYABLE_STATUS_CODES = {408, 429, 500, 502, 503, 504}

DEFAULT_BASE_DELAY = 1.0  # seconds
DEFAULT_MAX_DELAY = 30.0  # seconds
DEFAULT_JITTER = 0.1  # 10% jitter

CONNECT_TIMEOUT = 10.0
ASSET_PATH = "/api/assets"
_DEFAULT_PORTS = {"http": 80, "https": 443}
DOWNLOAD_CHUNK_SIZE = 64 * 1024


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, TransportError):
        return (
            exc.status_code is None
            or exc.status_code in RETRYABLE_STATUS_CODES
        )
    return False


def _calculate_delay(
    attempt: int, base_delay: float, max_delay: float, jitter: float
) -> float:
    """Exponential backoff for *attempt* (0-indexed) plus random jitter."""
    delay = min(base_delay * (2**attempt), max_delay)
    return delay + delay * jitter * random.random()


def retry_with_backoff(
    func: Callable[[], T],
    *,
    max_retries: int,
    base_delay: float = DEFAULT_BASE_DELAY,
    max_delay: float = DEFAULT_MAX_DELAY,
    jitter: float = DEFAULT_JITTER,
    operation_name: str = "operation",
    sleep: Callable[[float], None] | None = None,
) -> T:
    """Call *func*, retrying transient ``TransportError``s with backoff.

    Connection failures, timeouts and 408/429/5xx responses are retried
    up to *max_retries* times; anything else propagates immediately, as
    does the last error once retries are exhausted.
    """
    for attempt in range(max_retries + 1):
        try:
            return func()
        except TransportError as exc:
            if not _is_retryable(exc) or attempt == max_retries:
                raise
            delay = _calculate_delay(attempt, base_delay, max_delay, jitter)
            logger.warning(
                "%s failed (attempt %d/%d), retrying in %.1fs: %s",
                operation_name,
                attempt + 1,
                max_retries + 1,
                delay,
                exc,
            )
            (sleep or time.sleep)(delay)
    raise AssertionError("unreachable")


class BookmarkClient:
    """Blocking client for the bookmark server's REST API.

    All endpoints are relative to ``{server_url}/api/v1`` and authenticated
    with the configured API token as a bearer credential.
    """

    def __init__(self, config: Config):
        self.config = config
        self._thread_local = threading.local()
        self.api_url = f"{config.server_url.rstrip('/')}{API_PREFIX}"

    @property
    def session(self) -> requests.Session:
        """The current thread's session."""
        return self._get_session()

    def _get_session(self) -> requests.Session:
        """Get or create a thread-local requests.Session."""
        if not hasattr(self._thread_local, "session"):
            self._thread_local.session = self._create_session()
        return self._thread_local.session

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.headers.update(
            {
                "Authorization": f"Bearer {self.config.api_token}",
                "Accept": "application/json",
            }
        )
        session.verify = not self.config.insecure
        return session

    @property
    def _timeout(self) -> tuple[float, float]:
        return (CONNECT_TIMEOUT, self.config.timeout)

    # ------------------------------------------------------------------
    # Generic request helpers
    # ------------------------------------------------------------------

    def _request_once(
        self,
        method: str,
        endpoint: str,
        query: dict[str, Any] | None,
        body: Any,
    ) -> Any:
        url = f"{self.api_url}{endpoint}"
        try:
            response = self._get_session().request(
                method,
                url,
                params=query,
                json=body,
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(
                f"{method} {endpoint} failed: {exc}", endpoint=endpoint
            ) from exc

        if not response.ok:
            raise TransportError(
                f"{method} {endpoint} returned HTTP {response.status_code}: "
                f"{response.text[:200]}",
                endpoint=endpoint,
                status_code=response.status_code,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise TransportError(
                f"{method} {endpoint} returned invalid JSON: {exc}",
                endpoint=endpoint,
                status_code=response.status_code,
            ) from exc

    def request(
        self,
        method: str,
        endpoint: str,
        query: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """Send one API request (with retries) and return the decoded JSON.

        Raises:
            TransportError: On connection failure, non-2xx status or a
                body that is not JSON.
        """
        logger.debug("%s %s %s", method, endpoint, query or "")
        return retry_with_backoff(
            lambda: self._request_once(method, endpoint, query, body),
            max_retries=self.config.max_retries,
            operation_name=f"{method} {endpoint}",
        )

    def get(self, endpoint: str, query: dict[str, Any] | None = None) -> Any:
        return self.request("GET", endpoint, query=query)

    def post(
        self,
        endpoint: str,
        query: dict[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        return self.request("POST", endpoint, query=query, body=body)

    # ------------------------------------------------------------------
    # Bookmarks
    # ------------------------------------------------------------------

    @staticmethod
    def _page_query(
        limit: int,
        cursor: str | None,
        archived: bool | None,
        favourited: bool | None,
    ) -> dict[str, Any]:
        # Booleans are sent as lowercase strings, as the API expects.
        query: dict[str, Any] = {"limit": limit}
        if cursor:
            query["cursor"] = cursor
        if archived is not None:
            query["archived"] = "true" if archived else "false"
        if favourited is not None:
            query["favourited"] = "true" if favourited else "false"
        return query

    def get_bookmarks_page(
        self,
        limit: int = 100,
        cursor: str | None = None,
        archived: bool | None = None,
        favourited: bool | None = None,
    ) -> BookmarkPage:
        """Fetch one page of ``GET /bookmarks``."""
        data = self.get(
            "/bookmarks",
            self._page_query(limit, cursor, archived, favourited),
        )
        return BookmarkPage.model_validate(data or {})

    def get_tag_bookmarks_page(
        self,
        tag_id: str,
        limit: int = 100,
        cursor: str | None = None,
        archived: bool | None = None,
        favourited: bool | None = None,
    ) -> BookmarkPage:
        """Fetch one page of ``GET /tags/{id}/bookmarks``."""
        data = self.get(
            f"/tags/{tag_id}/bookmarks",
            self._page_query(limit, cursor, archived, favourited),
        )
        return BookmarkPage.model_validate(data or {})

    def get_highlights(self, bookmark_id: str) -> list[Highlight]:
        """Fetch the highlights of one bookmark, in server order."""
        data = self.get(f"/bookmarks/{bookmark_id}/highlights")
        return HighlightList.model_validate(data or {}).highlights

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def list_tags(self) -> list[Tag]:
        data = self.get("/tags")
        return TagList.model_validate(data or {}).tags

    def find_tag_id(self, name: str) -> str:
        """Resolve a tag name to its id.

        Raises:
            NotFoundError: If no tag has exactly that name.
        """
        for tag in self.list_tags():
            if tag.name == name:
                return tag.id
        raise NotFoundError(f"Tag '{name}' not found", name=name)

    # ------------------------------------------------------------------
    # Misc
    # ------------------------------------------------------------------

    def validate_connection(self) -> str:
        """Check credentials with ``GET /users/me``; return the user name."""
        data = self.get("/users/me") or {}
        return str(data.get("name") or data.get("email") or data.get("id") or "")

    @staticmethod
    def _origin(url: str) -> tuple[str, str, int] | None:
        try:
            parts = urlsplit(url)
            scheme = parts.scheme.lower()
            port = parts.port or _DEFAULT_PORTS.get(scheme)
        except ValueError:
            return None
        if not parts.hostname or port is None:
            return None
        return scheme, parts.hostname.lower(), port

    def is_own_server(self, url: str) -> bool:
        """True when *url* has the configured server's scheme, host and port."""
        origin = self._origin(url)
        return origin is not None and origin == self._origin(self.config.server_url)

    def asset_url(self, asset_id: str) -> str:
        """Absolute URL serving the stored file of one asset."""
        return f"{self.config.server_url.rstrip('/')}{ASSET_PATH}/{asset_id}"

    def download(self, url: str, dest: Path) -> int:
        """Stream *url* to *dest* byte-for-byte.

        The bearer token is only sent when *url* points at the configured
        server; third-party image hosts get a plain request.

        Returns:
            Number of bytes written.

        Raises:
            TransportError: If the request fails.
            FilesystemError: If *dest* cannot be written.
        """

        def _chunks(response: requests.Response) -> Iterator[bytes]:
            # RequestException is an OSError; keep it from reading as a disk error
            try:
                yield from response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE)
            except requests.RequestException as exc:
                raise TransportError(
                    f"GET {url} failed mid-stream: {exc}", endpoint=url
                ) from exc

        def _fetch() -> int:
            try:
                if self.is_own_server(url):
                    response = self._get_session().get(
                        url, stream=True, timeout=self._timeout
                    )
                else:
                    response = requests.get(
                        url,
                        stream=True,
                        timeout=self._timeout,
                        verify=not self.config.insecure,
                    )
            except requests.RequestException as exc:
                raise TransportError(
                    f"GET {url} failed: {exc}", endpoint=url
                ) from exc

            with response:
                if not response.ok:
                    raise TransportError(
                        f"GET {url} returned HTTP {response.status_code}",
                        endpoint=url,
                        status_code=response.status_code,
                    )
                return write_chunks_atomic(dest, _chunks(response))

        return retry_with_backoff(
            _fetch,
            max_retries=self.config.max_retries,
            operation_name=f"download {url}",
        )
