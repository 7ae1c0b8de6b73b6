"""Top-level orchestration: authenticate, then upload files or prune folders."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional, Protocol, Sequence

import requests
from rich.console import Console
from rich.markup import escape

from drive_uploader.auth.token_manager import TokenManager
from drive_uploader.cleanup.retention import RetentionEngine
from drive_uploader.configuration.settings import UploaderSettings
from drive_uploader.drive.models import DriveFile
from drive_uploader.drive.service import DriveService
from drive_uploader.errors import PatternMismatchError, RemoteCallError
from drive_uploader.parser.filename import parse_filename

logger = logging.getLogger(__name__)

console = Console()

ServiceFactory = Callable[[requests.Session], DriveService]


class UploadService(Protocol):
    def find_or_create_folder(self, name: str, parent_id: str) -> str:
        ...

    def upload_file(self, path: Path, name: str, parent_id: str) -> DriveFile:
        ...


@dataclass
class UploadResult:
    """Outcome for one local file."""

    path: Path
    file: Optional[DriveFile] = None
    error: Optional[str] = None
    removed: bool = False

    @property
    def succeeded(self) -> bool:
        return self.file is not None


@dataclass
class UploadReport:
    results: List[UploadResult] = field(default_factory=list)

    @property
    def uploaded(self) -> List[UploadResult]:
        return [result for result in self.results if result.succeeded]

    @property
    def failed(self) -> List[UploadResult]:
        return [result for result in self.results if not result.succeeded]


@dataclass
class RunResult:
    mode: str
    token_path: Optional[Path] = None
    deleted_paths: List[str] = field(default_factory=list)
    upload_report: Optional[UploadReport] = None


def collect_files(files: Sequence[str], workdir: Optional[Path]) -> List[Path]:
    """Explicit files followed by the regular files directly inside ``workdir``."""
    paths = [Path(item) for item in files]
    if workdir is not None:
        paths.extend(sorted(entry for entry in workdir.iterdir() if not entry.is_dir()))
    return paths


class Uploader:
    """Uploads local files into the folder layout chosen by the settings."""

    def __init__(self, service: UploadService, settings: UploaderSettings) -> None:
        self.service = service
        self.settings = settings

    def run(self, paths: Sequence[Path]) -> UploadReport:
        file_name = self.settings.file_name
        if len(paths) > 1 and file_name:
            console.print(
                "[yellow]Warning: --file-name is ignored because multiple files were provided. "
                "Using original filenames.[/yellow]"
            )
            file_name = ""

        report = UploadReport()
        for path in paths:
            report.results.append(self.process_file(path, file_name))
        return report

    def process_file(self, path: Path, file_name: str = "") -> UploadResult:
        console.print(f"\n--- Processing: {escape(str(path))} ---")
        result = UploadResult(path=path)

        if not path.exists():
            logger.error("File '%s' does not exist. Skipping.", path)
            result.error = "file does not exist"
            return result
        if path.is_dir():
            logger.error("'%s' is a directory. Skipping.", path)
            result.error = "path is a directory"
            return result

        target_name = file_name or path.name
        try:
            parent_id = self.resolve_parent(target_name)
        except RemoteCallError as exc:
            logger.error("Failed to prepare destination folder: %s. Skipping file.", exc)
            result.error = str(exc)
            return result

        console.print(f"Uploading as '{escape(target_name)}' to folder ID '{parent_id}'...")
        try:
            result.file = self.service.upload_file(path, target_name, parent_id)
        except (RemoteCallError, OSError) as exc:
            logger.error("Upload failed: %s", exc)
            result.error = str(exc)
            if self.settings.delete_on_done:
                console.print(f"Removing file after failure: {escape(str(path))}")
                result.removed = self._remove(path)
            return result

        size = result.file.size if result.file.size is not None else 0
        console.print(f"[green]Success![/green] ID: {result.file.id}, Size: {size} bytes")
        if self.settings.delete_on_success or self.settings.delete_on_done:
            console.print(f"Removing file after success: {escape(str(path))}")
            result.removed = self._remove(path)
        return result

    def resolve_parent(self, target_name: str) -> str:
        """Folder ID the file goes into, creating folders on the way."""
        parent_id = self.settings.root_folder_id

        if self.settings.folder_name:
            parent_id = self.service.find_or_create_folder(self.settings.folder_name, parent_id)

        if self.settings.smart_organize:
            try:
                metadata = parse_filename(target_name)
            except PatternMismatchError as exc:
                console.print(
                    f"[yellow]Warning: Could not parse filename for smart organization: {escape(str(exc))}. "
                    "Proceeding in current folder.[/yellow]"
                )
                return parent_id
            console.print(f"Smart Organize: Service='{metadata.service}', Date='{metadata.date}'")
            parent_id = self.service.find_or_create_folder(metadata.service, parent_id)
            parent_id = self.service.find_or_create_folder(metadata.date, parent_id)

        return parent_id

    @staticmethod
    def _remove(path: Path) -> bool:
        try:
            path.unlink()
        except OSError as exc:
            logger.error("Failed to remove file %s: %s", path, exc)
            return False
        return True


def run_cleanup(service: DriveService, settings: UploaderSettings) -> List[str]:
    engine = RetentionEngine(service, settings.match_pattern, settings.keep)
    deleted = engine.run(settings.root_folder_id)
    if deleted:
        console.print("\n=== Deleted Folders ===")
        for path in deleted:
            console.print(f"  - {escape(path)}")
    else:
        console.print("No folders were deleted.")
    return deleted


def run(
    settings: UploaderSettings,
    files: Sequence[str] = (),
    *,
    token_manager: Optional[TokenManager] = None,
    service_factory: ServiceFactory = DriveService,
) -> RunResult:
    """Execute one run of the tool.

    Raises:
        UploaderError: Any fatal configuration, authentication or listing failure
    """
    settings.validate_for_run(files)

    manager = token_manager or TokenManager(
        settings.token_path,
        client_secret_path=settings.client_secret,
        token_gen=settings.token_gen,
        scopes=settings.scopes,
    )
    manager.authenticate()

    if settings.token_gen:
        console.print(f"Token successfully generated and saved to: {manager.token_path}")
        return RunResult(mode="token_gen", token_path=manager.token_path)

    service = service_factory(manager.session())

    if settings.cleanup:
        deleted = run_cleanup(service, settings)
        return RunResult(mode="cleanup", deleted_paths=deleted)

    report = Uploader(service, settings).run(collect_files(files, settings.workdir))
    return RunResult(mode="upload", upload_report=report)


__all__ = [
    "RunResult",
    "UploadReport",
    "UploadResult",
    "Uploader",
    "collect_files",
    "run",
    "run_cleanup",
]
