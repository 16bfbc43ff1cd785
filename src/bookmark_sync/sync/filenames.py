"""Deterministic file names for bookmark notes and downloaded images.

Note names are ``{YYYYMMDD}-{title}{ext}``: the creation date of the
bookmark followed by its title with filesystem-reserved characters
removed.  Two bookmarks that share a title and a creation date map to
the same file; ``disambiguate=True`` appends the bookmark id to avoid
that at the cost of a different layout.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath
from urllib.parse import urlparse

from bookmark_sync.sync.models import parse_timestamp

_RESERVED_CHARS = re.compile(r'[/\\:*?"<>|]')
_IMAGE_SUFFIX = re.compile(r"^\.[A-Za-z0-9]{1,5}$")

FORMAT_EXTENSIONS: dict[str, str] = {
    "org": ".org",
    "markdown": ".md",
}


def sanitize(title: str | None, fallback: str) -> str:
    """Strip ``/ \\ : * ? " < > |`` from *title*; other Unicode is kept."""
    cleaned = _RESERVED_CHARS.sub("", title or "")
    return cleaned if cleaned else fallback


def extension_for(fmt: str) -> str:
    try:
        return FORMAT_EXTENSIONS[fmt]
    except KeyError:
        raise ValueError(
            f"Unknown file format '{fmt}': expected one of {sorted(FORMAT_EXTENSIONS)}"
        ) from None


def date_prefix(created_at: str | None) -> str:
    """Format the creation timestamp as ``YYYYMMDD`` (UTC).

    Raises:
        ValueError: If *created_at* is missing or not ISO-8601.
    """
    parsed = parse_timestamp(created_at)
    if parsed is None:
        raise ValueError(
            f"Cannot derive a file name from creation timestamp {created_at!r}"
        )
    return parsed.strftime("%Y%m%d")


def bookmark_filename(
    title: str | None,
    created_at: str | None,
    fmt: str,
    bookmark_id: str | None = None,
    disambiguate: bool = False,
) -> str:
    """Return the note file name for a bookmark.

    >>> bookmark_filename("My/Bad:Name?", "2024-03-20T12:00:00Z", "org")
    '20240320-MyBadName.org'
    """
    stem = f"{date_prefix(created_at)}-{sanitize(title, 'untitled')}"
    if disambiguate and bookmark_id:
        stem = f"{stem}-{sanitize(bookmark_id, 'id')}"
    return stem + extension_for(fmt)


def asset_filename(
    title: str | None,
    url: str | None = None,
    bookmark_id: str | None = None,
    asset_id: str | None = None,
    legacy: bool = False,
) -> str:
    """Return the attachment file name for an image asset.

    The legacy form is the sanitized title alone, which makes every
    image of one bookmark share a path.  The default appends the
    bookmark and asset ids, plus the URL's file extension when it has
    a plausible one.
    """
    name = sanitize(title, "asset")
    if legacy:
        return name
    for part in (bookmark_id, asset_id):
        if part:
            name = f"{name}-{sanitize(part, '')}"
    if url:
        suffix = PurePosixPath(urlparse(url).path).suffix
        if _IMAGE_SUFFIX.match(suffix):
            name += suffix.lower()
    return name
