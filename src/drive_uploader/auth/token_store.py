"""Persisted OAuth2 token file.

The file is a single JSON object::

    {"access_token": ..., "token_type": ..., "refresh_token": ...,
     "expiry": "<RFC3339>", "client_id": ..., "client_secret": ...}

``client_id``/``client_secret`` are optional. Older tokens written without
them decode with empty identity fields and need an external client secret
document to be refreshed; tokens carrying them are self-sufficient.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from drive_uploader.errors import (
    TokenNotFoundError,
    TokenParseError,
    TokenPathIsDirectoryError,
    TokenStoreError,
)

logger = logging.getLogger(__name__)

# Written for credentials without an expiry; readers treat it as "never expires".
ZERO_EXPIRY = "0001-01-01T00:00:00Z"

_FRACTION = re.compile(r"\.(\d+)")


def parse_rfc3339(value: str) -> Optional[datetime]:
    """Parse an RFC3339 timestamp, tolerating nanosecond fractions."""
    text = value.strip()
    if text[-1:] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    text = _FRACTION.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    if parsed.year == 1 and parsed.month == 1 and parsed.day == 1:
        return None
    return parsed


class Credential(BaseModel):
    """In-memory OAuth2 credential, optionally carrying its client identity."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = ""
    token_type: str = ""
    refresh_token: str = ""
    expiry: Optional[datetime] = None
    client_id: str = ""
    client_secret: str = ""

    @field_validator("access_token", "token_type", "refresh_token", "client_id", "client_secret", mode="before")
    @classmethod
    def _none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("expiry", mode="before")
    @classmethod
    def _parse_expiry(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        if isinstance(value, str):
            return parse_rfc3339(value)
        return value

    @field_validator("expiry")
    @classmethod
    def _ensure_timezone(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def is_self_sufficient(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def is_valid(self, now: datetime, buffer_seconds: int = 0) -> bool:
        """True when there is an access token that will not expire within ``buffer_seconds``."""
        if not self.access_token:
            return False
        if self.expiry is None:
            return True
        return self.expiry - timedelta(seconds=buffer_seconds) > now

    def with_identity(self, client_id: str, client_secret: str) -> "Credential":
        return self.model_copy(update={"client_id": client_id, "client_secret": client_secret})

    def authorization_header(self) -> str:
        token_type = self.token_type or "Bearer"
        if token_type.lower() == "bearer":
            token_type = "Bearer"
        return f"{token_type} {self.access_token}"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "access_token": self.access_token,
            "token_type": self.token_type,
            "refresh_token": self.refresh_token,
            "expiry": self.expiry.isoformat() if self.expiry else ZERO_EXPIRY,
        }
        if self.client_id:
            payload["client_id"] = self.client_id
        if self.client_secret:
            payload["client_secret"] = self.client_secret
        return payload


@dataclass
class TokenStore:
    """Reads and writes one token file."""

    path: Path

    def __post_init__(self) -> None:
        self.path = Path(self.path).expanduser()

    def load(self) -> Credential:
        """Load the token file.

        Raises:
            TokenNotFoundError: If the file does not exist
            TokenPathIsDirectoryError: If the path is a directory
            TokenParseError: If the content is not a token object
        """
        if self.path.is_dir():
            raise TokenPathIsDirectoryError(str(self.path))
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise TokenNotFoundError(str(self.path)) from exc
        except OSError as exc:
            raise TokenStoreError(str(self.path), message=f"Unable to read token file {self.path}: {exc}") from exc

        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TokenParseError(str(self.path), message=f"Token file {self.path} is not valid JSON: {exc}") from exc
        if not isinstance(payload, dict):
            raise TokenParseError(str(self.path), message=f"Token file {self.path} does not contain a JSON object")

        try:
            return Credential.model_validate(payload)
        except ValidationError as exc:
            raise TokenParseError(str(self.path), message=f"Token file {self.path} is malformed: {exc}") from exc

    def save(self, credential: Credential) -> None:
        """Replace the token file with ``credential``, readable by the owner only."""
        if self.path.is_dir():
            raise TokenPathIsDirectoryError(str(self.path))
        logger.info("Saving credential file to: %s", self.path)
        tmp = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(tmp, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(credential.to_payload(), handle, indent=2)
                handle.write("\n")
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except OSError as exc:
            raise TokenStoreError(str(self.path), message=f"Unable to save token to {self.path}: {exc}") from exc


__all__ = ["Credential", "TokenStore", "ZERO_EXPIRY", "parse_rfc3339"]
