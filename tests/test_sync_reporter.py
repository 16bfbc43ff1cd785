"""Tests for sync reporter formatting functions.

Covers:
- format_sync_report with various result combinations
- format_status output
- report_to_json structure and counts
"""

from __future__ import annotations

import json

from bookmark_sync.sync.models import SyncAction, SyncReport, SyncResult
from bookmark_sync.sync.reporter import (
    format_status,
    format_sync_report,
    report_to_json,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_report(results: list[SyncResult] | None = None, **kwargs) -> SyncReport:
    defaults = {
        "started_at": "2024-04-01T09:30:00+00:00",
        "completed_at": "2024-04-01T09:31:00+00:00",
    }
    defaults.update(kwargs)
    return SyncReport(results=results or [], **defaults)


def _result(
    action: SyncAction,
    bookmark_id: str = "b1",
    success: bool = True,
    error: str | None = None,
    assets: list[str] | None = None,
) -> SyncResult:
    return SyncResult(
        bookmark_id=bookmark_id,
        title=f"Title {bookmark_id}",
        path=f"/notes/20240320-Title {bookmark_id}.org",
        action=action,
        success=success,
        error=error,
        assets=assets or [],
    )


# ---------------------------------------------------------------------------
# format_sync_report
# ---------------------------------------------------------------------------


class TestFormatSyncReport:
    def test_mixed_results(self):
        report = _make_report(
            [
                _result(SyncAction.CREATE, "b1", assets=["/a/1.png"]),
                _result(SyncAction.UPDATE, "b2"),
                _result(SyncAction.SKIP, "b3"),
                _result(SyncAction.SKIP, "b4", success=False, error="HTTP 500"),
            ],
            fetched=6,
            filtered_out=2,
            watermark_before="2024-03-20T12:00:00Z",
        )

        text = format_sync_report(report)

        assert "Sync report for all" in text
        assert "Changes since: 2024-03-20T12:00:00Z" in text
        assert "Fetched 6 bookmarks (2 unchanged since last sync)" in text
        assert "4 bookmarks: 1 created, 1 updated, 1 skipped, 1 failed" in text
        assert "Downloaded 1 images" in text
        assert "Created:\n  /notes/20240320-Title b1.org" in text
        assert "Errors:\n  b4 (Title b4): HTTP 500" in text
        assert "Skipped: 1 existing files" in text
        assert text.endswith("Watermark not updated")

    def test_watermark_saved(self):
        report = _make_report(
            [_result(SyncAction.CREATE)], watermark_after="2024-04-01T09:31:00Z"
        )

        assert format_sync_report(report).endswith(
            "Watermark saved: 2024-04-01T09:31:00Z"
        )

    def test_forced_header_no_watermark_line(self):
        text = format_sync_report(_make_report(forced=True))

        assert text.startswith("Sync report for all (forced)")
        assert "Watermark" not in text

    def test_tag_scope_has_no_watermark_line(self):
        text = format_sync_report(_make_report(scope="#reading"))

        assert "Sync report for #reading" in text
        assert "Watermark" not in text

    def test_empty_sections_omitted(self):
        text = format_sync_report(_make_report([_result(SyncAction.SKIP)]))

        assert "Created:" not in text
        assert "Updated:" not in text
        assert "Errors:" not in text


# ---------------------------------------------------------------------------
# format_status
# ---------------------------------------------------------------------------


class TestFormatStatus:
    def test_never_synced(self):
        text = format_status(
            {
                "sync_root": "/notes",
                "attachments_root": "/notes/attachments",
                "file_format": "markdown",
                "last_sync": None,
                "notes": 0,
                "tag_folders": 0,
            }
        )

        assert "Last sync:    never" in text
        assert "Format:       markdown" in text


# ---------------------------------------------------------------------------
# report_to_json
# ---------------------------------------------------------------------------


class TestReportToJson:
    def test_structure(self):
        report = _make_report(
            [
                _result(SyncAction.CREATE, "b1", assets=["/a/1.png"]),
                _result(SyncAction.SKIP, "b2", success=False, error="boom"),
            ],
            fetched=2,
        )

        data = report_to_json(report)

        assert data["scope"] == "all"
        assert data["counts"] == {
            "fetched": 2,
            "filtered_out": 0,
            "total": 2,
            "created": 1,
            "updated": 0,
            "skipped": 0,
            "errors": 1,
            "assets": 1,
        }
        assert data["results"][0]["assets"] == ["/a/1.png"]
        assert "error" not in data["results"][0]
        assert data["results"][1]["error"] == "boom"
        assert data["results"][1]["action"] == "skip"

    def test_json_serialisable(self):
        json.dumps(report_to_json(_make_report([_result(SyncAction.UPDATE)])))
