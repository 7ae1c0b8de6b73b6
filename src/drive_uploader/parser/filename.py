"""Extract service and date metadata from backup filenames.

Backups are expected to be named ``<service>_backup_<date>_<rest>``, e.g.
``oauth_backup_20251102_040000.sql.gz``. The service becomes an upper-snake
folder name and the date a ``YYYY-MM-DD`` folder beneath it.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from drive_uploader.errors import PatternMismatchError


_FILENAME_PATTERN = re.compile(
    r"^(?P<service>[a-zA-Z0-9]+)_backup_(?P<date>[0-9]{8}|[0-9]{4}-[0-9]{2}-[0-9]{2})_.*"
)


@dataclass(frozen=True)
class FileMetadata:
    """Folder placement derived from a filename."""

    service: str
    date: str


def parse_filename(filename: str) -> FileMetadata:
    """Parse ``filename`` into its service folder and date folder names.

    Raises:
        PatternMismatchError: If the filename does not follow the backup layout
    """
    match = _FILENAME_PATTERN.match(filename)
    if match is None:
        raise PatternMismatchError(filename)
    return FileMetadata(
        service=camel_to_snake_case(match.group("service")),
        date=normalize_date(match.group("date")),
    )


def camel_to_snake_case(value: str) -> str:
    """Convert CamelCase to UPPER_SNAKE_CASE.

    Every interior capital gets its own separator, so runs of capitals are
    split letter by letter: ``OAuthBackup`` -> ``O_AUTH_BACKUP`` and
    ``APIClient`` -> ``A_P_I_CLIENT``. Existing folder trees depend on this.
    """
    chars = []
    for index, char in enumerate(value):
        if index > 0 and "A" <= char <= "Z":
            chars.append("_")
        chars.append(char)
    return "".join(chars).upper()


def normalize_date(value: str) -> str:
    """Return ``YYYYMMDD`` input as ``YYYY-MM-DD``; dashed input is kept."""
    if "-" in value:
        return value
    if len(value) == 8:
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"
    return value


__all__ = ["FileMetadata", "camel_to_snake_case", "normalize_date", "parse_filename"]
