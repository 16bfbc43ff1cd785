"""One-way bookmark mirror engine.

Public API for mirroring a remote bookmark collection into a local tree
of Org or Markdown notes.

Architecture
------------
The engine keeps a **watermark** (time of the last complete incremental
sync) next to the notes.  Each run pages through the whole collection,
drops bookmarks not modified since the watermark, and rewrites one note
per remaining bookmark.  Nothing is ever pushed back or deleted remotely.

Modules:

- ``engine``       -- ``SyncEngine``: phases, incremental filter, tag sync.
- ``pagination``   -- ``BookmarkPager``: cursor-based enumeration.
- ``materializer`` -- ``BookmarkMaterializer``: one bookmark -> one file.
- ``assets``       -- ``AssetFetcher``: presence-checked image downloads.
- ``filenames``    -- deterministic note and image file names.
- ``state``        -- ``WatermarkStore``: the ``.last-sync-time`` sidecar.
- ``models``       -- API payload models and run bookkeeping.
- ``reporter``     -- human-readable and JSON report formatting.

Usage example
-------------
::

    from bookmark_sync.config_schema import SyncConfig
    from bookmark_sync.core.client import BookmarkClient
    from bookmark_sync.sync import SyncEngine, format_sync_report

    settings = SyncConfig(sync_root="~/org/bookmarks", exclude_archived=True)
    engine = SyncEngine(client=BookmarkClient(config), settings=settings)

    report = engine.run()
    print(format_sync_report(report))
"""

from .engine import SyncEngine, filter_since, local_status
from .materializer import BookmarkMaterializer
from .models import (
    Bookmark,
    Highlight,
    SyncAction,
    SyncPhase,
    SyncReport,
    SyncResult,
)
from .pagination import BookmarkPager
from .reporter import format_status, format_sync_report, report_to_json
from .state import WatermarkStore

__all__ = [
    "Bookmark",
    "BookmarkMaterializer",
    "BookmarkPager",
    "Highlight",
    "SyncAction",
    "SyncEngine",
    "SyncPhase",
    "SyncReport",
    "SyncResult",
    "WatermarkStore",
    "filter_since",
    "local_status",
    "format_status",
    "format_sync_report",
    "report_to_json",
]
