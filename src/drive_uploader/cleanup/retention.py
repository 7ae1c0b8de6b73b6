"""Keep-N-most-recent retention over a tree of Drive folders.

The engine walks the tree depth first. At every level the direct child
folders are split into date-named folders and everything else; only the
``keep`` most recent date folders survive, the rest are moved to the trash.
Non-date folders are descended into, date folders never are.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List, Sequence, Union

from drive_uploader.drive.models import DriveFolder
from drive_uploader.drive.service import FolderService
from drive_uploader.errors import InvalidConfigError, RemoteCallError

from .date_pattern import DatePattern

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DatedFolder:
    """A child folder whose name parsed as a date."""

    folder: DriveFolder
    date: date


@dataclass
class RetentionGroup:
    """Direct children of one parent, split by whether the name is a date."""

    dated: List[DatedFolder] = field(default_factory=list)
    other: List[DriveFolder] = field(default_factory=list)


def join_path(parent: str, name: str) -> str:
    return f"{parent}/{name}" if parent else name


class RetentionEngine:
    """Apply the retention policy below a root folder."""

    def __init__(
        self,
        service: FolderService,
        date_pattern: Union[str, DatePattern],
        keep: int,
    ) -> None:
        if keep < 1:
            raise InvalidConfigError(f"keep must be at least 1, got {keep}")
        if isinstance(date_pattern, str):
            date_pattern = DatePattern(date_pattern)
        self.service = service
        self.date_pattern = date_pattern
        self.keep = keep

    def run(self, root_folder_id: str) -> List[str]:
        """Prune below ``root_folder_id`` and return the trashed folder paths.

        Raises:
            RemoteCallError: If listing any folder fails
        """
        logger.info(
            "Starting cleanup with pattern '%s', keeping %d most recent folders",
            self.date_pattern.pattern,
            self.keep,
        )
        deleted: List[str] = []
        self._traverse(root_folder_id, "", deleted)
        logger.info("Cleanup completed. Total folders moved to trash: %d", len(deleted))
        return deleted

    def partition(self, folders: Sequence[DriveFolder]) -> RetentionGroup:
        group = RetentionGroup()
        for folder in folders:
            matched, parsed = self.date_pattern.matches(folder.name)
            if matched:
                group.dated.append(DatedFolder(folder=folder, date=parsed))
            else:
                group.other.append(folder)
        return group

    def select_expired(self, dated: Sequence[DatedFolder]) -> List[DatedFolder]:
        """Return the date folders beyond the ``keep`` most recent ones.

        The sort is stable, so folders sharing a date keep their listing order.
        """
        newest_first = sorted(dated, key=lambda item: item.date, reverse=True)
        return newest_first[self.keep:]

    def _traverse(self, folder_id: str, current_path: str, deleted: List[str]) -> None:
        try:
            children = self.service.list_folders(folder_id)
        except RemoteCallError as exc:
            raise RemoteCallError(
                "list_folders",
                current_path or folder_id,
                message=f"failed to list folders in '{current_path or folder_id}': {exc}",
                status_code=exc.status_code,
            ) from exc

        if not children:
            return

        group = self.partition(children)
        if len(group.dated) > self.keep:
            deleted.extend(self._apply_retention(group.dated, current_path))

        for folder in group.other:
            self._traverse(folder.id, join_path(current_path, folder.name), deleted)

    def _apply_retention(self, dated: Sequence[DatedFolder], parent_path: str) -> List[str]:
        trashed = []
        for item in self.select_expired(dated):
            full_path = join_path(parent_path, item.folder.name)
            logger.info("Moving to trash: %s (date: %s)", full_path, item.date.isoformat())
            try:
                self.service.trash(item.folder.id)
            except RemoteCallError as exc:
                logger.warning("Failed to trash folder '%s': %s", full_path, exc)
                continue
            trashed.append(full_path)
        return trashed


__all__ = ["DatedFolder", "RetentionEngine", "RetentionGroup", "join_path"]
