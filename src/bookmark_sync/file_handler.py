"""File handler module: atomic writes and encoding-aware reads.

Provides the local filesystem layer used by the sync engine.  Writes go
through a temp file in the target directory followed by ``os.replace()``
so a reader never observes a half-written note or image.
"""

import os
import tempfile
from collections.abc import Iterable
from pathlib import Path

from charset_normalizer import from_bytes

from bookmark_sync.errors import FilesystemError

# =============================================================================
# Directories
# =============================================================================


def ensure_dir(path: Path) -> Path:
    """Create *path* and any missing parents (``mkdir -p``).

    Raises:
        FilesystemError: If the directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise FilesystemError(
            f"Cannot create directory {path}: {exc}", path=path
        ) from exc
    return path


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def write_chunks_atomic(path: Path, chunks: Iterable[bytes]) -> int:
    """Write byte *chunks* to *path* atomically, creating parents.

    Returns:
        Number of bytes written.

    Raises:
        FilesystemError: If the write or the final rename fails.  The
            temp file is removed and any previous *path* is left intact.
    """
    ensure_dir(path.parent)
    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent), prefix=".", suffix=".tmp"
        )
    except OSError as exc:
        raise FilesystemError(
            f"Cannot write {path}: {exc}", path=path
        ) from exc

    written = 0
    try:
        with os.fdopen(fd, "wb") as fh:
            for chunk in chunks:
                fh.write(chunk)
                written += len(chunk)
        os.replace(tmp_path, path)
    except BaseException as exc:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        if isinstance(exc, OSError):
            raise FilesystemError(
                f"Cannot write {path}: {exc}", path=path
            ) from exc
        raise
    return written


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write text content to a file atomically, creating parent directories.

    Returns:
        Number of bytes written.
    """
    return write_chunks_atomic(path, [content.encode(encoding)])
