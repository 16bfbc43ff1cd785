import json
import logging
import os
import sys

DEFAULT_MCP_LOG_FILE = "/tmp/bookmark-sync.log"

_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
_DEFAULT_LEVELS = {"mcp": "WARNING", "cli": "INFO"}

# LogRecord attributes copied into JSON output when a caller passes them
# through ``extra=``.
_CONTEXT_FIELDS = ("bookmark_id", "tag", "phase")

_NOISY_LOGGERS = ("urllib3", "charset_normalizer", "mcp")


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, msg.

    Sync context passed via ``extra`` (``bookmark_id``, ``tag``, ``phase``)
    and formatted exceptions (``exc``) are added when present.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        for field in _CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                entry[field] = value
        if record.exc_info:
            entry["exc"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _formatter(debug_format: str, with_name: bool) -> logging.Formatter:
    if debug_format == "json":
        return JsonFormatter(datefmt=_DATE_FORMAT)
    name = " %(name)s" if with_name else ""
    return logging.Formatter(
        f"[%(asctime)s] [%(levelname)s]{name} %(message)s", datefmt=_DATE_FORMAT
    )


def _resolve_level(mode: str, debug: bool, level: str | None) -> int:
    if debug:
        return logging.DEBUG
    name = os.getenv("LOG_LEVEL") or level or _DEFAULT_LEVELS.get(mode, "INFO")
    return getattr(logging, name.upper(), logging.INFO)


def setup_logging(
    mode: str = "cli",
    debug: bool = False,
    log_file: str | None = None,
    debug_format: str = "text",
    level: str | None = None,
) -> None:
    """
    Configure root logging for the CLI or the MCP server.

    In ``cli`` mode records go to stderr, plus *log_file* when given. In
    ``mcp`` mode stdout carries JSON-RPC, so records only go to a file:
    *log_file*, else ``LOG_FILE``, else ``/tmp/bookmark-sync.log``.

    Level precedence: *debug* > ``LOG_LEVEL`` > *level* (the ``logging``
    config section) > WARNING for mcp, INFO for cli.
    """
    log_level = _resolve_level(mode, debug, level)

    handlers: list[logging.Handler] = []
    if mode == "mcp":
        path = log_file or os.getenv("LOG_FILE") or DEFAULT_MCP_LOG_FILE
        handlers.append(logging.FileHandler(path, mode="a"))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))
        if log_file:
            handlers.append(logging.FileHandler(log_file, mode="a"))

    for handler in handlers:
        handler.setFormatter(
            _formatter(
                debug_format,
                with_name=isinstance(handler, logging.FileHandler),
            )
        )

    logging.basicConfig(level=log_level, handlers=handlers)

    if log_level != logging.DEBUG:
        for name in _NOISY_LOGGERS:
            logging.getLogger(name).setLevel(logging.WARNING)
