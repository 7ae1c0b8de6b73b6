"""Centralized error definitions for drive-uploader.

Every failure the tool can surface is an ``UploaderError`` subclass carrying a
machine-readable code, a recoverability flag and structured details, so the
CLI can render actionable messages without inspecting exception types.

Usage:
    from drive_uploader.errors import UploaderError, handle_error

    try:
        app.run(settings, files)
    except UploaderError as e:
        print(handle_error(e))
"""

from __future__ import annotations

from drive_uploader.errors.user_messages import (
    format_error_for_cli,
    format_error_for_user,
    get_recovery_suggestion,
    get_user_message,
)


# =============================================================================
# Base Error
# =============================================================================


class UploaderError(Exception):
    """Base exception for all drive-uploader errors.

    Attributes:
        code: Error code for categorization
        user_message: User-friendly message (optional override)
        recoverable: Whether the error is potentially recoverable
        details: Additional error details for debugging
    """

    code: str = "UPLOADER_ERROR"
    default_message: str = "An unexpected error occurred"
    recoverable: bool = True

    def __init__(
        self,
        message: str | None = None,
        *,
        user_message: str | None = None,
        details: dict | None = None,
    ) -> None:
        self.message = message or self.default_message
        self._user_message = user_message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def user_message(self) -> str:
        """Get user-friendly message."""
        if self._user_message:
            return self._user_message
        return get_user_message(self)

    @property
    def recovery_suggestion(self) -> str:
        """Get recovery suggestion."""
        return get_recovery_suggestion(self)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "user_message": self.user_message,
            "recoverable": self.recoverable,
            "details": self.details,
        }


# =============================================================================
# Authentication Errors
# =============================================================================


class AuthError(UploaderError):
    """Base error for authentication and token handling."""

    code = "AUTH_ERROR"
    default_message = "Authentication failed"


class MissingCredentialsError(AuthError):
    """No usable token and no client secret to obtain one."""

    code = "MISSING_CREDENTIALS"
    default_message = "No valid token found and no client secret provided"
    recoverable = False


class ClientSecretError(AuthError):
    """Client secret document is missing or malformed."""

    code = "CLIENT_SECRET_ERROR"
    default_message = "Unable to read client secret file"
    recoverable = False

    def __init__(self, path: str, *, message: str | None = None) -> None:
        self.path = path
        super().__init__(
            message or f"Unable to read client secret file '{path}'",
            details={"path": path},
        )


class TokenStoreError(AuthError):
    """Base error for reading the persisted token file."""

    code = "TOKEN_STORE_ERROR"
    default_message = "Unable to read token file"

    def __init__(self, path: str, *, message: str | None = None) -> None:
        self.path = path
        super().__init__(message or f"{self.default_message}: {path}", details={"path": path})


class TokenNotFoundError(TokenStoreError):
    """Token file does not exist."""

    code = "TOKEN_NOT_FOUND"
    default_message = "Token file not found"


class TokenParseError(TokenStoreError):
    """Token file exists but cannot be decoded."""

    code = "TOKEN_PARSE_ERROR"
    default_message = "Token file is not valid token JSON"


class TokenPathIsDirectoryError(TokenStoreError):
    """Token path points at a directory."""

    code = "TOKEN_PATH_IS_DIRECTORY"
    default_message = "Token path is a directory"
    recoverable = False


class AuthorizationError(AuthError):
    """Interactive authorization did not produce a token."""

    code = "AUTHORIZATION_ERROR"
    default_message = "Authorization failed"


class AuthorizationTimeoutError(AuthorizationError):
    """No authorization code arrived before the deadline."""

    code = "AUTHORIZATION_TIMEOUT"
    default_message = "Timed out waiting for authorization"


class AuthorizationDeniedError(AuthorizationError):
    """Provider redirected back with an error instead of a code."""

    code = "AUTHORIZATION_DENIED"
    default_message = "Authorization was denied"


class PortUnavailableError(AuthorizationError):
    """No local port in the callback range could be bound."""

    code = "PORT_UNAVAILABLE"
    default_message = "No available port for the local callback server"


class RefreshFailedError(AuthError):
    """Token endpoint rejected a refresh request."""

    code = "REFRESH_FAILED"
    default_message = "Failed to refresh access token"


# =============================================================================
# Remote Errors
# =============================================================================


class RemoteCallError(UploaderError):
    """A Drive API call failed."""

    code = "REMOTE_CALL_ERROR"
    default_message = "Drive API call failed"

    def __init__(
        self,
        operation: str,
        target: str = "",
        *,
        message: str | None = None,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.target = target
        self.status_code = status_code
        super().__init__(
            message or f"{operation} failed for '{target}'",
            details={"operation": operation, "target": target, "status_code": status_code},
        )


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(UploaderError):
    """Base error for configuration issues."""

    code = "CONFIGURATION_ERROR"
    default_message = "Configuration error"
    recoverable = False


class InvalidConfigError(ConfigurationError):
    """Configuration is invalid."""

    code = "INVALID_CONFIG"
    default_message = "Invalid configuration"


class MissingConfigError(ConfigurationError):
    """Required configuration is missing."""

    code = "MISSING_CONFIG"
    default_message = "Missing required configuration"


# =============================================================================
# Parsing Errors
# =============================================================================


class PatternMismatchError(UploaderError):
    """Filename does not follow the ``<service>_backup_<date>_...`` layout."""

    code = "PATTERN_MISMATCH"
    default_message = "Filename does not match the backup pattern"

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(
            f"filename '{filename}' does not match pattern '[service]_backup_[date]_...'",
            details={"filename": filename},
        )


# =============================================================================
# Error Handler
# =============================================================================


def handle_error(error: Exception) -> str:
    """Handle an error and return a user-friendly message.

    Args:
        error: The exception to handle

    Returns:
        User-friendly error message with recovery suggestion
    """
    return format_error_for_user(error)


def is_recoverable(error: Exception) -> bool:
    """Check if an error is potentially recoverable."""
    if isinstance(error, UploaderError):
        return error.recoverable
    return False


__all__ = [
    "AuthError",
    "AuthorizationDeniedError",
    "AuthorizationError",
    "AuthorizationTimeoutError",
    "ClientSecretError",
    "ConfigurationError",
    "InvalidConfigError",
    "MissingConfigError",
    "MissingCredentialsError",
    "PatternMismatchError",
    "PortUnavailableError",
    "RefreshFailedError",
    "RemoteCallError",
    "TokenNotFoundError",
    "TokenParseError",
    "TokenPathIsDirectoryError",
    "TokenStoreError",
    "UploaderError",
    "format_error_for_cli",
    "handle_error",
    "is_recoverable",
]
