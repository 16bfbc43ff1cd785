"""Error response builders for MCP tool handlers.

Tool failures are returned to the agent as ``CallToolResult`` objects
with ``isError=True`` and a corrective action, never raised through the
protocol layer.
"""

import mcp.types as types

from ...errors import (
    ConfigurationError,
    FilesystemError,
    NotFoundError,
    RecordError,
    SyncCancelledError,
    TransportError,
)


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, validation_error,
            configuration_error, transport_error, filesystem_error,
            cancelled, server_error)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "No tag named 'x'", "Check the tag name.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def translate_sync_error(error: Exception) -> types.CallToolResult:
    """Map a bookmark-sync exception to a structured error response."""
    match error:
        case NotFoundError():
            return build_error_response(
                "not_found",
                str(error),
                "Check the tag name (without '#') and its spelling on the server.",
            )
        case ConfigurationError():
            return build_error_response(
                "configuration_error",
                str(error),
                "Fix BOOKMARK_SYNC_URL / BOOKMARK_SYNC_TOKEN or the config file, then restart the server.",
            )
        case TransportError(status_code=401 | 403):
            return build_error_response(
                "permission_denied",
                str(error),
                "Check that BOOKMARK_SYNC_TOKEN is a valid API key.",
            )
        case TransportError():
            return build_error_response(
                "transport_error",
                str(error),
                "The server did not answer as expected. Retry later; the watermark was not advanced.",
            )
        case FilesystemError():
            return build_error_response(
                "filesystem_error",
                str(error),
                "Check that sync_root and attachments_root are writable.",
            )
        case RecordError():
            return build_error_response(
                "record_error",
                str(error),
                "Fix or remove the bookmark on the server, or disable fail_fast to skip it.",
            )
        case SyncCancelledError():
            return build_error_response(
                "cancelled",
                str(error),
                "Run the sync again; it resumes from the last saved watermark.",
            )
        case ValueError():
            return build_error_response(
                "validation_error",
                str(error),
                "Check parameter values and retry.",
            )
        case _:
            return build_error_response(
                "server_error",
                str(error),
                "Check the server log and retry later.",
            )
