"""Typed settings for a single drive-uploader run.

Settings are built from command line flags only. No configuration directory
is searched implicitly: token and client secret locations are whatever the
caller passes in.
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, field_validator

from drive_uploader.auth.client_identity import DEFAULT_SCOPES
from drive_uploader.cleanup.date_pattern import DatePattern
from drive_uploader.errors import InvalidConfigError, MissingConfigError


DEFAULT_TOKEN_PATH = Path(".out") / "token.json"
DEFAULT_MATCH_PATTERN = "yyyy-MM-dd"


class UploaderSettings(BaseModel):
    """Options controlling authentication, uploads and cleanup."""

    client_secret: Optional[Path] = Field(default=None, description="OAuth client secret JSON")
    root_folder_id: str = Field(default="", description="Drive folder to upload into / clean")
    file_name: str = Field(default="", description="Name override for a single upload")
    folder_name: str = Field(default="", description="Sub-folder to upload into")
    token_path: Path = Field(default=DEFAULT_TOKEN_PATH, description="Persisted token file")
    smart_organize: bool = Field(default=False, description="Place files by service and date")
    workdir: Optional[Path] = Field(default=None, description="Directory whose files are uploaded")
    delete_on_success: bool = False
    delete_on_done: bool = False
    token_gen: bool = Field(default=False, description="Only generate and persist a token")
    cleanup: bool = Field(default=False, description="Run retention cleanup instead of uploads")
    keep: int = Field(default=1, description="Date folders kept per level")
    match_pattern: str = Field(default=DEFAULT_MATCH_PATTERN, description="Date folder pattern")
    scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))

    @field_validator("token_path", "client_secret", "workdir")
    @classmethod
    def _expand_user(cls, value: Optional[Path]) -> Optional[Path]:
        return value.expanduser() if value is not None else None

    def validate_for_run(self, files: Sequence[str] = ()) -> None:
        """Check that the combination of options can run.

        Raises:
            MissingConfigError: A required option is absent
            InvalidConfigError: Options are present but unusable
        """
        if self.token_gen:
            if self.client_secret is None:
                raise MissingConfigError("--client-secret is required with --token-gen")
            if not self.client_secret.is_file():
                raise InvalidConfigError(
                    f"client secret file not found: {self.client_secret}",
                    details={"path": str(self.client_secret)},
                )
            return

        if not self.root_folder_id:
            raise MissingConfigError("--root-folder-id is required")

        if not files and self.workdir is None and not self.cleanup:
            raise MissingConfigError(
                "at least one file or --workdir is required (unless using --cleanup mode)"
            )

        if self.workdir is not None and not self.workdir.is_dir():
            raise InvalidConfigError(
                f"workdir is not a directory: {self.workdir}",
                details={"path": str(self.workdir)},
            )

        if not self.token_path.exists() and self.client_secret is None:
            raise MissingConfigError(
                f"token file {self.token_path} does not exist and --client-secret not provided",
                details={"token_path": str(self.token_path)},
            )

        if self.cleanup:
            if self.keep < 1:
                raise InvalidConfigError("--keep must be at least 1")
            if not self.match_pattern:
                raise MissingConfigError("--match pattern is required for cleanup mode")
            if not DatePattern(self.match_pattern).has_date_fields:
                raise InvalidConfigError(
                    f"--match pattern '{self.match_pattern}' contains none of yyyy, yy, MM, dd"
                )


__all__ = ["DEFAULT_MATCH_PATTERN", "DEFAULT_TOKEN_PATH", "UploaderSettings"]
