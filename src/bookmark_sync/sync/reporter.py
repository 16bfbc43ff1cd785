"""Sync report formatting functions.

- ``format_sync_report`` -- human-readable post-sync summary.
- ``format_status`` -- human-readable ``SyncEngine.status()`` output.
- ``report_to_json`` -- structured dict for ``--json`` and MCP output.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import SyncReport


def format_sync_report(report: SyncReport) -> str:
    """Format a complete sync report as human-readable text.

    Sections are only included when they contain at least one result.
    Skipped bookmarks are summarised by count only.
    """
    lines: list[str] = []

    header = f"Sync report for {report.scope}"
    if report.forced:
        header += " (forced)"
    lines.append(header)
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    if report.watermark_before:
        lines.append(f"Changes since: {report.watermark_before}")
    lines.append("")

    lines.append(
        f"Fetched {report.fetched} bookmarks"
        + (
            f" ({report.filtered_out} unchanged since last sync)"
            if report.filtered_out
            else ""
        )
    )
    lines.append(report.summary())
    if report.assets_downloaded:
        lines.append(f"Downloaded {report.assets_downloaded} images")
    lines.append("")

    if report.created:
        lines.append("Created:")
        for r in report.created:
            lines.append(f"  {r.path}")
        lines.append("")

    if report.updated:
        lines.append("Updated:")
        for r in report.updated:
            lines.append(f"  {r.path}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.bookmark_id} ({r.title}): {r.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Skipped: {len(report.skipped)} existing files")
        lines.append("")

    if report.watermark_after:
        lines.append(f"Watermark saved: {report.watermark_after}")
    elif report.scope == "all" and not report.forced:
        lines.append("Watermark not updated")

    return "\n".join(lines).rstrip()


def format_status(status: dict) -> str:
    lines = [
        f"Sync root:    {status['sync_root']}",
        f"Attachments:  {status['attachments_root']}",
        f"Format:       {status['file_format']}",
        f"Last sync:    {status['last_sync'] or 'never'}",
        f"Notes:        {status['notes']}",
        f"Tag folders:  {status['tag_folders']}",
    ]
    return "\n".join(lines)


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation."""
    results_list = []
    for r in report.results:
        entry: dict = {
            "bookmark_id": r.bookmark_id,
            "title": r.title,
            "path": r.path,
            "action": r.action.value,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        if r.assets:
            entry["assets"] = list(r.assets)
        results_list.append(entry)

    return {
        "scope": report.scope,
        "forced": report.forced,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "watermark_before": report.watermark_before,
        "watermark_after": report.watermark_after,
        "counts": {
            "fetched": report.fetched,
            "filtered_out": report.filtered_out,
            "total": len(report.results),
            "created": len(report.created),
            "updated": len(report.updated),
            "skipped": len(report.skipped),
            "errors": len(report.errors),
            "assets": report.assets_downloaded,
        },
        "results": results_list,
    }
