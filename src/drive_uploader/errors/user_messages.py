"""User-friendly error messages for drive-uploader.

This module maps error codes to human-readable messages and recovery
suggestions so operators running the tool from cron or a terminal get an
actionable hint instead of a raw traceback.

Privacy Note:
- Token values and client secrets are never included in rendered details
"""

from __future__ import annotations

from typing import Any


# =============================================================================
# Error Message Catalog
# =============================================================================

ERROR_MESSAGES: dict[str, str] = {
    # Authentication errors
    "AUTH_ERROR": "Authentication with Google Drive failed.",
    "MISSING_CREDENTIALS": "No valid token was found and no client secret was provided.",
    "CLIENT_SECRET_ERROR": "The client secret file could not be read.",
    "TOKEN_STORE_ERROR": "The token file could not be read.",
    "TOKEN_NOT_FOUND": "The token file does not exist.",
    "TOKEN_PARSE_ERROR": "The token file is corrupted or not a token.",
    "TOKEN_PATH_IS_DIRECTORY": "The token path points to a directory, not a file.",
    "AUTHORIZATION_ERROR": "Authorization did not complete.",
    "AUTHORIZATION_TIMEOUT": "Timed out waiting for browser authorization.",
    "AUTHORIZATION_DENIED": "Access was denied on the consent screen.",
    "PORT_UNAVAILABLE": "No local port was free for the authorization callback.",
    "REFRESH_FAILED": "The access token could not be refreshed.",
    # Remote errors
    "REMOTE_CALL_ERROR": "A Google Drive request failed.",
    # Configuration errors
    "CONFIGURATION_ERROR": "There's a configuration issue.",
    "INVALID_CONFIG": "The given options are invalid.",
    "MISSING_CONFIG": "A required option is missing.",
    # Parsing errors
    "PATTERN_MISMATCH": "The filename does not follow the '<service>_backup_<date>_...' layout.",
    # Generic
    "UPLOADER_ERROR": "An unexpected error occurred. Please try again.",
    "UNKNOWN_ERROR": "Something went wrong. Please try again.",
}


# =============================================================================
# Recovery Suggestions
# =============================================================================

RECOVERY_SUGGESTIONS: dict[str, str] = {
    # Authentication errors
    "AUTH_ERROR": "Regenerate the token with: drive-uploader --token-gen --client-secret <file>",
    "MISSING_CREDENTIALS": "Pass --client-secret <file> or point --token-path at an existing token.",
    "CLIENT_SECRET_ERROR": "Download the OAuth client JSON from the Google Cloud console and pass it with --client-secret.",
    "TOKEN_STORE_ERROR": "Check the --token-path value and file permissions.",
    "TOKEN_NOT_FOUND": "Generate one with: drive-uploader --token-gen --client-secret <file>",
    "TOKEN_PARSE_ERROR": "Delete the token file and run with --token-gen to create a new one.",
    "TOKEN_PATH_IS_DIRECTORY": "Point --token-path at a file such as .out/token.json.",
    "AUTHORIZATION_ERROR": "Run again and complete the consent screen in your browser.",
    "AUTHORIZATION_TIMEOUT": "Run again and finish the browser consent within five minutes.",
    "AUTHORIZATION_DENIED": "Run again and grant the requested Drive permissions.",
    "PORT_UNAVAILABLE": "Free a port in 54321-54329 or paste the code manually when prompted.",
    "REFRESH_FAILED": "The refresh token may be revoked. Run with --token-gen to authorize again.",
    # Remote errors
    "REMOTE_CALL_ERROR": "Check network access and that the folder IDs exist and are shared with this account.",
    # Configuration errors
    "CONFIGURATION_ERROR": "Run 'drive-uploader --help' to review the options.",
    "INVALID_CONFIG": "Run 'drive-uploader --help' to review the options.",
    "MISSING_CONFIG": "Add the missing option and run again.",
    # Parsing errors
    "PATTERN_MISMATCH": "Rename the file, e.g. 'myservice_backup_20250101_120000.sql.gz', or drop --smart-organize.",
    # Generic
    "UPLOADER_ERROR": "If this persists, rerun with --verbose and report the output.",
    "UNKNOWN_ERROR": "Rerun with --verbose for more details.",
}

_SENSITIVE_DETAIL_KEYS = ("access_token", "refresh_token", "client_secret", "code", "token")


# =============================================================================
# Helper Functions
# =============================================================================


def _error_code(error: Any) -> str:
    if hasattr(error, "code"):
        return error.code
    if isinstance(error, str):
        return error
    return type(error).__name__.upper()


def get_user_message(error: Any) -> str:
    """Get user-friendly message for an error.

    Args:
        error: The error (can be Exception or error code string)

    Returns:
        User-friendly error message
    """
    return ERROR_MESSAGES.get(_error_code(error), ERROR_MESSAGES["UNKNOWN_ERROR"])


def get_recovery_suggestion(error: Any) -> str:
    """Get recovery suggestion for an error.

    Args:
        error: The error (can be Exception or error code string)

    Returns:
        Recovery suggestion
    """
    return RECOVERY_SUGGESTIONS.get(_error_code(error), RECOVERY_SUGGESTIONS["UNKNOWN_ERROR"])


def format_error_for_user(error: Any) -> str:
    """Format a complete user-friendly error message."""
    message = get_user_message(error)
    suggestion = get_recovery_suggestion(error)

    return f"{message}\n\nSuggestion: {suggestion}"


def format_error_for_cli(error: Any) -> str:
    """Format error for CLI output.

    The raw exception text is included because it names the path, folder or
    underlying cause that failed.

    Args:
        error: The error to format

    Returns:
        CLI-formatted error message
    """
    code = getattr(error, "code", "ERROR")
    lines = [
        f"Error [{code}]: {get_user_message(error)}",
        f"  {error}",
    ]
    cause = getattr(error, "__cause__", None)
    if cause is not None:
        lines.append(f"  Caused by: {cause}")

    lines.append("")
    lines.append(f"Suggestion: {get_recovery_suggestion(error)}")

    details = getattr(error, "details", None)
    if details:
        lines.append("")
        lines.append("Details:")
        for key, value in details.items():
            if key in _SENSITIVE_DETAIL_KEYS or value is None:
                continue
            lines.append(f"  {key}: {value}")

    return "\n".join(lines)


__all__ = [
    "ERROR_MESSAGES",
    "RECOVERY_SUGGESTIONS",
    "format_error_for_cli",
    "format_error_for_user",
    "get_recovery_suggestion",
    "get_user_message",
]
