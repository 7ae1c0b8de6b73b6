"""Run configuration for drive-uploader."""

from .settings import DEFAULT_MATCH_PATTERN, DEFAULT_TOKEN_PATH, UploaderSettings

__all__ = ["DEFAULT_MATCH_PATTERN", "DEFAULT_TOKEN_PATH", "UploaderSettings"]
