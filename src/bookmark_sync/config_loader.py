"""
YAML configuration files for bookmark_sync.

Up to three files are consulted, highest precedence first:

1. the file named by ``BOOKMARK_SYNC_CONFIG``
2. ``.bookmark_sync/config.yml`` (or ``config.yaml``) in the working directory
3. ``~/.config/bookmark_sync/config.yml``

Each top-level section (``server``, ``sync``, ``logging``) is taken whole
from the highest-precedence file that defines it. String values may use
``${VAR}`` or ``${VAR:-default}``; a file may pull in another with
``!include other.yml``.

Usage:
    from bookmark_sync.config_loader import load_hierarchical_config
    from bookmark_sync.config_schema import build_config

    settings = build_config(load_hierarchical_config()).sync
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".bookmark_sync"
CONFIG_ENV_VAR = "BOOKMARK_SYNC_CONFIG"

_ENV_REF = re.compile(r"\$\{(?P<name>[^}:]+?)(?::-(?P<default>.*?))?\}")


def expand_env(value: Any) -> Any:
    """Substitute ``${VAR}`` references in every string of *value*.

    Dicts and lists are walked recursively; other scalars pass through.
    An unset or empty variable expands to its ``:-`` default, or to ``""``
    when there is none. An unterminated ``${`` is left as written.
    """
    if isinstance(value, dict):
        return {key: expand_env(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if not isinstance(value, str):
        return value
    return _ENV_REF.sub(
        lambda m: os.environ.get(m["name"]) or (m["default"] or ""), value
    )


class _IncludeLoader(yaml.SafeLoader):
    """SafeLoader that understands ``!include``.

    ``chain`` holds the files currently being loaded, outermost first.
    """

    chain: tuple[Path, ...] = ()


def _construct_include(loader: _IncludeLoader, node: yaml.ScalarNode) -> Any:
    parent = Path(loader.name).resolve()
    target = (parent.parent / loader.construct_scalar(node)).resolve()

    if target in loader.chain:
        cycle = " -> ".join(str(p) for p in (*loader.chain, target))
        raise ValueError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise FileNotFoundError(
            f"Include file not found: {target} (referenced from {parent})"
        )
    return read_config_file(target, _chain=loader.chain)


_IncludeLoader.add_constructor("!include", _construct_include)


def read_config_file(path: Path, *, _chain: tuple[Path, ...] = ()) -> Any:
    """Parse one YAML file, following ``!include`` directives.

    Raises:
        ValueError: If includes form a cycle.
        FileNotFoundError: If an included file is missing.
    """
    path = Path(path).resolve()
    with path.open(encoding="utf-8") as fh:
        loader = _IncludeLoader(fh)
        loader.chain = (*_chain, path)
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def discover_config_files() -> list[Path]:
    """Return the config files that exist, highest precedence first."""
    candidates: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        candidates.append(Path(explicit).expanduser().resolve())

    project_dir = Path.cwd() / CONFIG_DIR_NAME
    candidates += [
        project_dir / "config.yml",
        project_dir / "config.yaml",
        Path.home() / ".config" / "bookmark_sync" / "config.yml",
    ]
    return [path for path in candidates if path.exists()]


def default_config_path() -> Path:
    """Path of the config file in effect, or where ``init-config`` puts one."""
    found = discover_config_files()
    return found[0] if found else Path.cwd() / CONFIG_DIR_NAME / "config.yml"


_STARTER_CONFIG = """\
# bookmark-sync configuration
#
# Connection settings can also come from the environment:
#   BOOKMARK_SYNC_URL, BOOKMARK_SYNC_TOKEN, BOOKMARK_SYNC_INSECURE
#
# server:
#   url: https://bookmarks.example.com
#   token: ${BOOKMARK_SYNC_TOKEN}
#   timeout: 60
#   max_retries: 3
#
# sync:
#   sync_root: ~/org/bookmarks
#   attachments_root: ~/org/bookmarks/attachments
#   file_format: org            # org | markdown
#   update_existing_files: false
#   exclude_archived: true
#   only_favourites: false
#   download_assets: false
#
# logging:
#   level: INFO
#   file: null
"""


def ensure_config(target: Path | None = None) -> Path:
    """Write a fully commented starter file unless a config already exists.

    Returns the path of the existing or newly written file.
    """
    found = discover_config_files()
    if found:
        logger.debug("Config file already exists: %s", found[0])
        return found[0]

    path = target or default_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", path)
    return path


def load_hierarchical_config() -> dict[str, Any]:
    """Merge every discovered file into one raw dict, env refs expanded.

    Returns ``{}`` when no file exists.
    """
    merged: dict[str, Any] = {}
    for path in reversed(discover_config_files()):
        logger.debug("Loading config: %s", path)
        data = read_config_file(path)
        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring %s: expected a mapping at the top level, got %s",
                path,
                type(data).__name__,
            )
            continue
        merged.update(data)
    return expand_env(merged)
