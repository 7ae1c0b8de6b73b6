"""Tests for run orchestration and the upload pipeline."""

from __future__ import annotations

import io
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest
from rich.console import Console

from drive_uploader import app as uploader_app
from drive_uploader.app import Uploader, collect_files
from drive_uploader.configuration import UploaderSettings
from drive_uploader.drive.models import DriveFile, DriveFolder
from drive_uploader.errors import MissingConfigError, RemoteCallError


class _FakeDrive:
    def __init__(self) -> None:
        self.folders: Dict[Tuple[str, str], str] = {}
        self.uploads: List[Tuple[str, str, bytes]] = []
        self.fail_uploads: Set[str] = set()
        self.tree: Dict[str, List[DriveFolder]] = {}
        self.trashed: List[str] = []

    def find_or_create_folder(self, name: str, parent_id: str) -> str:
        return self.folders.setdefault((parent_id, name), f"{parent_id}/{name}")

    def upload_file(self, path: Path, name: str, parent_id: str) -> DriveFile:
        if name in self.fail_uploads:
            raise RemoteCallError("upload", name, message="Drive API returned 500", status_code=500)
        self.uploads.append((parent_id, name, path.read_bytes()))
        return DriveFile(id=f"id-{len(self.uploads)}", name=name, size=path.stat().st_size)

    def list_folders(self, parent_id: str) -> List[DriveFolder]:
        return self.tree.get(parent_id, [])

    def trash(self, file_id: str) -> None:
        self.trashed.append(file_id)


class _FakeManager:
    def __init__(self, token_path: Path) -> None:
        self.token_path = token_path
        self.authenticated = 0
        self.sessions = 0

    def authenticate(self) -> None:
        self.authenticated += 1

    def session(self) -> str:
        self.sessions += 1
        return "session"


@pytest.fixture()
def drive() -> _FakeDrive:
    return _FakeDrive()


@pytest.fixture()
def token_file(tmp_path) -> Path:
    path = tmp_path / "token.json"
    path.write_text("{}", encoding="utf-8")
    return path


def _backup(directory: Path, name: str = "oauth_backup_20251102_040000.sql.gz") -> Path:
    path = directory / name
    path.write_bytes(b"backup")
    return path


def test_smart_organize_places_file_by_service_and_date(tmp_path, drive) -> None:
    path = _backup(tmp_path)
    settings = UploaderSettings(root_folder_id="root", smart_organize=True)

    report = Uploader(drive, settings).run([path])

    assert drive.uploads == [("root/OAUTH/2025-11-02", path.name, b"backup")]
    assert len(report.uploaded) == 1
    assert path.exists()


def test_folder_name_comes_before_smart_organize(tmp_path, drive) -> None:
    path = _backup(tmp_path, "myAppService_backup_2025-01-15_120000.tar")
    settings = UploaderSettings(root_folder_id="root", folder_name="db", smart_organize=True)

    Uploader(drive, settings).run([path])

    assert drive.uploads[0][0] == "root/db/MY_APP_SERVICE/2025-01-15"


def test_unparseable_name_is_uploaded_to_current_folder(tmp_path, drive) -> None:
    path = _backup(tmp_path, "random_file.txt")
    settings = UploaderSettings(root_folder_id="root", smart_organize=True)

    report = Uploader(drive, settings).run([path])

    assert drive.uploads[0][0] == "root"
    assert report.failed == []


def test_file_name_override_applies_to_single_file(tmp_path, drive) -> None:
    path = _backup(tmp_path)
    settings = UploaderSettings(root_folder_id="root", file_name="renamed.sql.gz")

    Uploader(drive, settings).run([path])

    assert drive.uploads[0][1] == "renamed.sql.gz"


def test_file_name_override_ignored_for_several_files(tmp_path, drive) -> None:
    first = _backup(tmp_path, "a.txt")
    second = _backup(tmp_path, "b.txt")
    settings = UploaderSettings(root_folder_id="root", file_name="renamed")

    Uploader(drive, settings).run([first, second])

    assert [name for _, name, _ in drive.uploads] == ["a.txt", "b.txt"]


def test_delete_on_success_removes_uploaded_file(tmp_path, drive) -> None:
    path = _backup(tmp_path)
    settings = UploaderSettings(root_folder_id="root", delete_on_success=True)

    report = Uploader(drive, settings).run([path])

    assert not path.exists()
    assert report.results[0].removed


def test_failed_upload_keeps_file_unless_delete_on_done(tmp_path, drive) -> None:
    kept = _backup(tmp_path, "kept.txt")
    drive.fail_uploads.add("kept.txt")

    report = Uploader(drive, UploaderSettings(root_folder_id="root", delete_on_success=True)).run([kept])

    assert kept.exists()
    assert report.failed[0].error

    report = Uploader(drive, UploaderSettings(root_folder_id="root", delete_on_done=True)).run([kept])

    assert not kept.exists()
    assert report.failed[0].removed


def test_missing_and_directory_paths_are_skipped(tmp_path, drive) -> None:
    present = _backup(tmp_path, "present.txt")
    settings = UploaderSettings(root_folder_id="root")

    report = Uploader(drive, settings).run([tmp_path / "absent.txt", tmp_path, present])

    assert [name for _, name, _ in drive.uploads] == ["present.txt"]
    assert [result.error for result in report.failed] == ["file does not exist", "path is a directory"]


def test_folder_resolution_failure_skips_only_that_file(tmp_path) -> None:
    class _BrokenFolders(_FakeDrive):
        def find_or_create_folder(self, name: str, parent_id: str) -> str:
            raise RemoteCallError("find_folder", name, message="Drive API returned 403")

    drive = _BrokenFolders()
    path = _backup(tmp_path)

    report = Uploader(drive, UploaderSettings(root_folder_id="root", folder_name="db")).run([path])

    assert drive.uploads == []
    assert "403" in report.failed[0].error


def test_collect_files_adds_workdir_entries(tmp_path) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    (workdir / "b.txt").write_text("b", encoding="utf-8")
    (workdir / "a.txt").write_text("a", encoding="utf-8")
    (workdir / "nested").mkdir()

    paths = collect_files(["explicit.txt"], workdir)

    assert paths == [Path("explicit.txt"), workdir / "a.txt", workdir / "b.txt"]


def test_run_token_gen_stops_after_authentication(tmp_path) -> None:
    secret = tmp_path / "client_secret.json"
    secret.write_text("{}", encoding="utf-8")
    manager = _FakeManager(tmp_path / "token.json")
    settings = UploaderSettings(token_gen=True, client_secret=secret)

    result = uploader_app.run(settings, token_manager=manager, service_factory=pytest.fail)

    assert result.mode == "token_gen"
    assert result.token_path == manager.token_path
    assert manager.authenticated == 1
    assert manager.sessions == 0


def test_run_cleanup_reports_deleted_paths(token_file, drive) -> None:
    drive.tree = {
        "root": [
            DriveFolder(id="a", name="2025-01-10"),
            DriveFolder(id="b", name="2025-01-11"),
        ]
    }
    settings = UploaderSettings(root_folder_id="root", token_path=token_file, cleanup=True)
    sessions: List[Optional[str]] = []

    def factory(session):
        sessions.append(session)
        return drive

    result = uploader_app.run(settings, token_manager=_FakeManager(token_file), service_factory=factory)

    assert result.mode == "cleanup"
    assert result.deleted_paths == ["2025-01-10"]
    assert drive.trashed == ["a"]
    assert sessions == ["session"]


def test_run_uploads_workdir(tmp_path, token_file, drive) -> None:
    workdir = tmp_path / "work"
    workdir.mkdir()
    _backup(workdir)
    settings = UploaderSettings(
        root_folder_id="root", token_path=token_file, workdir=workdir, smart_organize=True
    )

    result = uploader_app.run(
        settings, token_manager=_FakeManager(token_file), service_factory=lambda session: drive
    )

    assert result.mode == "upload"
    assert len(result.upload_report.uploaded) == 1


def test_run_validates_before_authenticating(token_file) -> None:
    manager = _FakeManager(token_file)

    with pytest.raises(MissingConfigError):
        uploader_app.run(UploaderSettings(token_path=token_file), ["a.txt"], token_manager=manager)
    assert manager.authenticated == 0


def test_paths_with_markup_characters_are_printed_verbatim(tmp_path, drive, monkeypatch) -> None:
    output = io.StringIO()
    monkeypatch.setattr(uploader_app, "console", Console(file=output, width=200))
    uploaded = _backup(tmp_path, "report[bold].txt")
    failed = _backup(tmp_path, "dump[red].txt")
    drive.fail_uploads.add("dump[red].txt")
    settings = UploaderSettings(root_folder_id="root", delete_on_done=True)

    Uploader(drive, settings).run([uploaded, failed])

    text = output.getvalue()
    assert f"Removing file after success: {uploaded}" in text
    assert f"Removing file after failure: {failed}" in text
    assert not uploaded.exists()
    assert not failed.exists()
