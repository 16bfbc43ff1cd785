"""Command-line entry point: ``bookmark-sync``.

Subcommands:
    sync [--force]   Mirror the whole collection (incremental by default).
    tag NAME         Mirror the bookmarks carrying one tag into ``#NAME/``.
    status           Show the watermark and what is on disk.
    init-config      Write a starter config file if none exists.

Exit codes: 0 success, 1 sync/runtime failure, 2 configuration error,
130 interrupted.
"""

import argparse
import json
import logging
import sys
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import ValidationError

from . import __version__
from .config import Config, load_config
from .config_loader import (
    discover_config_files,
    ensure_config,
    load_hierarchical_config,
)
from .config_schema import (
    SyncConfig,
    UnifiedConfig,
    apply_sync_overrides,
    build_config,
)
from .core.client import BookmarkClient
from .errors import BookmarkSyncError, ConfigurationError
from .logger import setup_logging
from .sync.engine import SyncEngine, local_status
from .sync.reporter import format_status, format_sync_report, report_to_json

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="bookmark-sync",
        description="Mirror a remote bookmark collection into Org or Markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Incremental sync using .env / config.yml settings
  bookmark-sync sync

  # Re-render everything, ignoring the last sync time
  bookmark-sync sync --force

  # Mirror one tag into <sync_root>/#reading/
  bookmark-sync tag reading

  # Markdown into a custom folder
  bookmark-sync --format markdown --sync-root ~/notes/bookmarks sync
        """,
    )
    parser.add_argument(
        "--url",
        help="Override server URL (takes precedence over BOOKMARK_SYNC_URL and config files)",
    )
    parser.add_argument(
        "--token",
        help="Override API token (visible in process list -- prefer BOOKMARK_SYNC_TOKEN)",
    )
    parser.add_argument(
        "--insecure",
        action="store_true",
        help="Skip SSL certificate verification (use only for development)",
    )
    parser.add_argument("--sync-root", help="Directory receiving the notes")
    parser.add_argument(
        "--format",
        choices=["org", "markdown"],
        help="Note format (default from config: org)",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )
    parser.add_argument("--log-file", help="Also write logs to this file")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print machine-readable JSON instead of text",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"bookmark-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sync_cmd = sub.add_parser("sync", help="Sync the whole collection")
    sync_cmd.add_argument(
        "--force",
        action="store_true",
        help="Ignore the last sync time and process every bookmark",
    )
    sync_cmd.add_argument(
        "--update-existing",
        action="store_true",
        default=None,
        help="Rewrite notes that already exist on disk",
    )

    tag_cmd = sub.add_parser("tag", help="Sync the bookmarks of one tag")
    tag_cmd.add_argument("name", help="Tag name, without '#'")
    tag_cmd.add_argument(
        "--update-existing",
        action="store_true",
        default=None,
        help="Rewrite notes that already exist on disk",
    )

    sub.add_parser("status", help="Show last sync time and local counts")
    sub.add_parser("init-config", help="Create a starter config file")
    return parser


def _load_unified_config() -> UnifiedConfig:
    return build_config(load_hierarchical_config())


def _sync_settings(unified: UnifiedConfig, args: argparse.Namespace) -> SyncConfig:
    return apply_sync_overrides(
        unified.sync,
        {
            "sync_root": args.sync_root,
            "file_format": args.format,
            "update_existing_files": getattr(args, "update_existing", None),
        },
    )


def _connection(unified: UnifiedConfig, args: argparse.Namespace) -> Config:
    yaml_fallbacks = {
        k: v for k, v in unified.server.model_dump().items() if v is not None
    }
    return load_config(
        url=args.url,
        token=args.token,
        insecure=args.insecure,
        debug=args.debug,
        yaml_fallbacks=yaml_fallbacks,
    )


def _emit(args: argparse.Namespace, text: str, data: Any) -> None:
    if args.json:
        print(json.dumps(data, indent=2))
    else:
        print(text)


def run_command(args: argparse.Namespace, unified: UnifiedConfig) -> int:
    """Execute the parsed command and return the process exit code."""
    if args.command == "init-config":
        path = ensure_config()
        _emit(args, f"Config file: {path}", {"config_file": str(path)})
        return EXIT_OK

    settings = _sync_settings(unified, args)

    if args.command == "status":
        status = local_status(settings)
        _emit(args, format_status(status), status)
        return EXIT_OK

    client = BookmarkClient(_connection(unified, args))
    engine = SyncEngine(client=client, settings=settings)

    if args.command == "tag":
        report = engine.run_tag(args.name.lstrip("#"))
    else:
        report = engine.run(force=args.force)

    _emit(args, format_sync_report(report), report_to_json(report))
    return EXIT_FAILURE if report.errors else EXIT_OK


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    load_dotenv()
    try:
        unified = _load_unified_config()
    except (ValueError, OSError, yaml.YAMLError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    setup_logging(
        mode="cli",
        debug=args.debug,
        log_file=args.log_file or unified.logging.file,
        level=unified.logging.level,
    )
    for path in discover_config_files():
        logger.debug("Using config file %s", path)

    try:
        return run_command(args, unified)
    except (ConfigurationError, ValidationError) as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    except BookmarkSyncError as exc:
        print(f"Sync failed: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    except KeyboardInterrupt:
        print("\nInterrupted. Watermark not updated.", file=sys.stderr)
        return EXIT_INTERRUPTED


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
