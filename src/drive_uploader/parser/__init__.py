"""Filename parsing for smart folder placement."""

from .filename import FileMetadata, camel_to_snake_case, normalize_date, parse_filename

__all__ = ["FileMetadata", "camel_to_snake_case", "normalize_date", "parse_filename"]
