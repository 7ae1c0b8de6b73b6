"""OAuth2 client identity: who the tool is when talking to Google."""

from __future__ import annotations

import json
from pathlib import Path
from typing import List, Optional, Sequence

from pydantic import BaseModel, Field, ValidationError

from drive_uploader.errors import ClientSecretError

from .token_store import Credential


GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
DRIVE_SCOPE = "https://www.googleapis.com/auth/drive"
DEFAULT_SCOPES = [DRIVE_SCOPE]
DEFAULT_REDIRECT_URI = "http://localhost"


class ClientIdentity(BaseModel):
    """OAuth2 client configuration, immutable for a run."""

    model_config = {"frozen": True}

    client_id: str = Field(..., min_length=1)
    client_secret: str = ""
    auth_uri: str = GOOGLE_AUTH_URI
    token_uri: str = GOOGLE_TOKEN_URI
    redirect_uris: List[str] = Field(default_factory=list)
    scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))

    @property
    def default_redirect_uri(self) -> str:
        return self.redirect_uris[0] if self.redirect_uris else DEFAULT_REDIRECT_URI

    @classmethod
    def from_file(cls, path: Path, scopes: Optional[Sequence[str]] = None) -> "ClientIdentity":
        """Load a client secret JSON as downloaded from the Google Cloud console.

        Both the ``installed`` (desktop) and ``web`` application shapes are accepted.

        Raises:
            ClientSecretError: If the file is missing or malformed
        """
        path = Path(path).expanduser()
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise ClientSecretError(
                str(path), message=f"Unable to read client secret file '{path}': {exc}"
            ) from exc
        except json.JSONDecodeError as exc:
            raise ClientSecretError(
                str(path), message=f"Client secret file '{path}' is not valid JSON: {exc}"
            ) from exc

        section = None
        if isinstance(payload, dict):
            section = payload.get("installed") or payload.get("web")
        if not isinstance(section, dict):
            raise ClientSecretError(
                str(path),
                message=f"Client secret file '{path}' has no 'installed' or 'web' section",
            )

        data = {key: value for key, value in section.items() if value is not None}
        if scopes:
            data["scopes"] = list(scopes)
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise ClientSecretError(
                str(path), message=f"Client secret file '{path}' is malformed: {exc}"
            ) from exc

    @classmethod
    def from_credential(
        cls, credential: Credential, scopes: Optional[Sequence[str]] = None
    ) -> "ClientIdentity":
        """Identity embedded in a self-sufficient credential (Google endpoints)."""
        return cls(
            client_id=credential.client_id,
            client_secret=credential.client_secret,
            scopes=list(scopes or DEFAULT_SCOPES),
        )


__all__ = [
    "ClientIdentity",
    "DEFAULT_SCOPES",
    "DRIVE_SCOPE",
    "GOOGLE_AUTH_URI",
    "GOOGLE_TOKEN_URI",
]
