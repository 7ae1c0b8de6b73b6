"""Command line entry point for drive-uploader."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console

from drive_uploader import app as uploader_app
from drive_uploader.configuration.settings import (
    DEFAULT_MATCH_PATTERN,
    DEFAULT_TOKEN_PATH,
    UploaderSettings,
)
from drive_uploader.errors import UploaderError, format_error_for_cli

error_console = Console(stderr=True)

cli = typer.Typer(
    help=(
        "Upload files to Google Drive. Supports large files, automatic folder "
        "organization, resumable uploads and retention cleanup of date folders."
    ),
    add_completion=False,
)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s: %(message)s",
    )


@cli.command()
def upload(
    files: Optional[List[str]] = typer.Argument(None, help="Files to upload"),
    client_secret: Optional[Path] = typer.Option(
        None,
        "--client-secret",
        help="Path to the OAuth 2.0 client secret file (optional if the token has embedded credentials)",
    ),
    root_folder_id: str = typer.Option(
        "", "--root-folder-id", help="ID of the root Drive folder (required unless --token-gen is used)"
    ),
    file_name: str = typer.Option(
        "", "--file-name", help="Name to save the file as (ignored when several files are given)"
    ),
    folder_name: str = typer.Option("", "--folder-name", help="Sub-folder to save the file in"),
    token_path: Path = typer.Option(
        DEFAULT_TOKEN_PATH, "--token-path", help="Path to the OAuth 2.0 token file"
    ),
    smart_organize: bool = typer.Option(
        False, "--smart-organize", help="Organize into <SERVICE>/<YYYY-MM-DD> folders based on the filename"
    ),
    workdir: Optional[Path] = typer.Option(
        None, "--workdir", help="Directory containing files to upload"
    ),
    delete_on_success: bool = typer.Option(
        False, "--delete-on-success", help="Delete the local file after a successful upload"
    ),
    delete_on_done: bool = typer.Option(
        False, "--delete-on-done", help="Delete the local file after any upload attempt"
    ),
    token_gen: bool = typer.Option(
        False, "--token-gen", help="Generate a token only (skips upload). Requires --client-secret"
    ),
    cleanup: bool = typer.Option(
        False, "--cleanup", help="Remove old date-named folders below --root-folder-id"
    ),
    keep: int = typer.Option(
        1, "--keep", min=1, help="Number of most recent date folders to keep per level (with --cleanup)"
    ),
    match: str = typer.Option(
        DEFAULT_MATCH_PATTERN, "--match", help="Date pattern of folder names, e.g. yyyy-MM-dd or yyyyMMdd"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Upload files to Google Drive or prune old date folders.

    Examples:
        drive-uploader --token-gen --client-secret client_secret.json
        drive-uploader --root-folder-id <id> --smart-organize backups/*.sql.gz
        drive-uploader --root-folder-id <id> --cleanup --keep 7 --match yyyy-MM-dd
    """
    configure_logging(verbose)

    settings = UploaderSettings(
        client_secret=client_secret,
        root_folder_id=root_folder_id,
        file_name=file_name,
        folder_name=folder_name,
        token_path=token_path,
        smart_organize=smart_organize,
        workdir=workdir,
        delete_on_success=delete_on_success,
        delete_on_done=delete_on_done,
        token_gen=token_gen,
        cleanup=cleanup,
        keep=keep,
        match_pattern=match,
    )

    try:
        uploader_app.run(settings, files or [])
    except UploaderError as exc:
        error_console.print(format_error_for_cli(exc), markup=False, highlight=False)
        raise typer.Exit(1)


def main() -> None:
    cli()


__all__ = ["cli", "main", "upload"]
