"""Tests for run option validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from drive_uploader.configuration import UploaderSettings
from drive_uploader.errors import InvalidConfigError, MissingConfigError


@pytest.fixture()
def token_file(tmp_path) -> Path:
    path = tmp_path / "token.json"
    path.write_text("{}", encoding="utf-8")
    return path


def test_defaults() -> None:
    settings = UploaderSettings()

    assert settings.token_path == Path(".out") / "token.json"
    assert settings.match_pattern == "yyyy-MM-dd"
    assert settings.keep == 1


def test_token_gen_requires_client_secret() -> None:
    with pytest.raises(MissingConfigError, match="--client-secret"):
        UploaderSettings(token_gen=True).validate_for_run()


def test_token_gen_requires_existing_client_secret(tmp_path) -> None:
    with pytest.raises(InvalidConfigError, match="not found"):
        UploaderSettings(token_gen=True, client_secret=tmp_path / "absent.json").validate_for_run()


def test_token_gen_needs_nothing_else(tmp_path) -> None:
    secret = tmp_path / "client_secret.json"
    secret.write_text("{}", encoding="utf-8")

    UploaderSettings(token_gen=True, client_secret=secret).validate_for_run()


def test_root_folder_is_required(token_file) -> None:
    with pytest.raises(MissingConfigError, match="--root-folder-id"):
        UploaderSettings(token_path=token_file).validate_for_run(["a.txt"])


def test_files_or_workdir_required_outside_cleanup(token_file) -> None:
    settings = UploaderSettings(root_folder_id="root", token_path=token_file)

    with pytest.raises(MissingConfigError, match="--workdir"):
        settings.validate_for_run([])

    settings.cleanup = True
    settings.validate_for_run([])


def test_workdir_must_be_directory(token_file) -> None:
    settings = UploaderSettings(root_folder_id="root", token_path=token_file, workdir=token_file)

    with pytest.raises(InvalidConfigError, match="not a directory"):
        settings.validate_for_run()


def test_missing_token_needs_client_secret(tmp_path) -> None:
    settings = UploaderSettings(root_folder_id="root", token_path=tmp_path / "absent.json")

    with pytest.raises(MissingConfigError, match="does not exist"):
        settings.validate_for_run(["a.txt"])

    settings.client_secret = tmp_path / "client_secret.json"
    settings.validate_for_run(["a.txt"])


def test_cleanup_pattern_needs_date_fields(token_file) -> None:
    settings = UploaderSettings(
        root_folder_id="root", token_path=token_file, cleanup=True, match_pattern="latest"
    )

    with pytest.raises(InvalidConfigError, match="latest"):
        settings.validate_for_run()


def test_cleanup_rejects_empty_pattern_and_keep(token_file) -> None:
    with pytest.raises(MissingConfigError):
        UploaderSettings(
            root_folder_id="root", token_path=token_file, cleanup=True, match_pattern=""
        ).validate_for_run()
    with pytest.raises(InvalidConfigError):
        UploaderSettings(root_folder_id="root", token_path=token_file, cleanup=True, keep=0).validate_for_run()


def test_user_paths_are_expanded() -> None:
    settings = UploaderSettings(token_path=Path("~/token.json"))

    assert "~" not in str(settings.token_path)
