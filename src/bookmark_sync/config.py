"""Connection configuration for the bookmark server.

Reads server settings from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    BOOKMARK_SYNC_URL: Bookmark server URL (required)
    BOOKMARK_SYNC_TOKEN: API token sent as a bearer credential (required)
    BOOKMARK_SYNC_INSECURE: Skip SSL verification (optional, default: false)
    BOOKMARK_SYNC_DEBUG: Enable debug logging (optional, default: false)
    BOOKMARK_SYNC_TIMEOUT: Read timeout in seconds (optional, default: 60)
    BOOKMARK_SYNC_MAX_RETRIES: Retries for transient HTTP errors (optional, default: 3)
"""

import logging
import os
from dataclasses import dataclass
from urllib.parse import urlparse

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass
class Config:
    server_url: str
    api_token: str
    insecure: bool = False
    debug: bool = False
    timeout: float = 60.0
    max_retries: int = 3


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ConfigurationError if invalid.

    Args:
        config: Config instance to validate.

    Raises:
        ConfigurationError: If URL format is invalid or the token is empty.
    """
    config.server_url = config.server_url.strip()

    if not config.server_url.startswith(("http://", "https://")):
        raise ConfigurationError(
            f"Invalid server URL '{config.server_url}': must start with http:// or https://"
        )

    parsed = urlparse(config.server_url)
    if not parsed.hostname:
        raise ConfigurationError(
            f"Invalid server URL '{config.server_url}': URL must include a hostname"
        )

    config.server_url = config.server_url.removesuffix("/")

    if not config.api_token.strip():
        raise ConfigurationError(
            "API token cannot be empty. Set BOOKMARK_SYNC_TOKEN environment variable."
        )

    if config.insecure:
        logger.warning(
            "WARNING: SSL verification disabled (insecure=True). Use only for development."
        )


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _resolve_number(
    env_key: str,
    fb: dict,
    fb_key: str,
    default: float,
    low: float,
    high: float,
    cast: type,
):
    raw = os.getenv(env_key)
    if raw is not None:
        try:
            value = cast(raw)
        except ValueError:
            raise ConfigurationError(
                f"Invalid {env_key} '{raw}': must be a number between {low} and {high}"
            ) from None
        if not (low <= value <= high):
            raise ConfigurationError(
                f"Invalid {env_key} '{raw}': must be a number between {low} and {high}"
            )
        return value
    if fb.get(fb_key) is not None:
        return cast(fb[fb_key])
    return default


def load_config(
    url: str | None = None,
    token: str | None = None,
    insecure: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        url: Override server URL.
        token: Override API token.
        insecure: Skip SSL verification (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML ``server`` section.

    Returns:
        Validated Config instance.

    Raises:
        ConfigurationError: If URL or token is missing after checking
            all sources, or a numeric setting is out of range.
    """
    fb = yaml_fallbacks or {}

    server_url = url or os.getenv("BOOKMARK_SYNC_URL") or fb.get("url")
    if not server_url:
        raise ConfigurationError(
            "Server URL not found. Set BOOKMARK_SYNC_URL environment variable, "
            "pass --url CLI argument, or add 'url' to config.yml."
        )

    api_token = token or os.getenv("BOOKMARK_SYNC_TOKEN") or fb.get("token")
    if not api_token:
        raise ConfigurationError(
            "API token not found. Set BOOKMARK_SYNC_TOKEN environment variable, "
            "pass --token CLI argument, or add 'token' to config.yml."
        )

    if insecure:
        final_insecure = True
    else:
        env_insecure = _get_bool_env("BOOKMARK_SYNC_INSECURE")
        if env_insecure is not None:
            final_insecure = env_insecure
        else:
            final_insecure = bool(fb.get("insecure", False))

    if debug:
        final_debug = True
    else:
        env_debug = _get_bool_env("BOOKMARK_SYNC_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    timeout = _resolve_number(
        "BOOKMARK_SYNC_TIMEOUT", fb, "timeout", 60.0, 1, 600, float
    )
    max_retries = _resolve_number(
        "BOOKMARK_SYNC_MAX_RETRIES", fb, "max_retries", 3, 0, 10, int
    )

    config = Config(
        server_url=server_url.strip(),
        api_token=api_token.strip(),
        insecure=final_insecure,
        debug=final_debug,
        timeout=timeout,
        max_retries=max_retries,
    )

    validate_config(config)

    return config
