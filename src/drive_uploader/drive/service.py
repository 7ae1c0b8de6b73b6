"""Thin Drive v3 REST client over an authenticated ``requests`` session."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol

import requests
from pydantic import ValidationError

from drive_uploader.errors import RemoteCallError

from .models import FOLDER_MIME_TYPE, DriveFile, DriveFolder

logger = logging.getLogger(__name__)

DRIVE_API_URL = "https://www.googleapis.com/drive/v3"
DRIVE_UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3/files"
LIST_PAGE_SIZE = 100
# Resumable chunks must be multiples of 256 KiB.
DEFAULT_CHUNK_SIZE = 32 * 256 * 1024
_RESUME_INCOMPLETE = 308
# Consecutive 308 responses without new committed bytes before giving up.
MAX_STALLED_CHUNKS = 3


class FolderService(Protocol):
    """Drive calls the retention engine depends on."""

    def list_folders(self, parent_id: str) -> List[DriveFolder]:
        ...

    def trash(self, file_id: str) -> None:
        ...


def escape_query_value(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


@dataclass
class DriveService:
    """Folder management and resumable uploads against Google Drive."""

    session: requests.Session
    api_url: str = DRIVE_API_URL
    upload_url: str = DRIVE_UPLOAD_URL
    chunk_size: int = DEFAULT_CHUNK_SIZE
    timeout: int = 60

    # ------------------------------------------------------------------
    # Folders
    # ------------------------------------------------------------------

    def list_folders(self, parent_id: str) -> List[DriveFolder]:
        """List every non-trashed direct child folder of ``parent_id``."""
        query = (
            f"mimeType = '{FOLDER_MIME_TYPE}' and '{escape_query_value(parent_id)}' in parents "
            "and trashed = false"
        )
        folders: List[DriveFolder] = []
        page_token: Optional[str] = None
        while True:
            params = {
                "q": query,
                "pageSize": LIST_PAGE_SIZE,
                "fields": "nextPageToken, files(id, name)",
            }
            if page_token:
                params["pageToken"] = page_token
            response = self._request(
                "GET", f"{self.api_url}/files", "list_folders", parent_id, params=params
            )
            folders.extend(self._folders(response, "list_folders", parent_id))
            page_token = self._json(response, "list_folders", parent_id).get("nextPageToken")
            if not page_token:
                return folders

    def trash(self, file_id: str) -> None:
        self._request(
            "PATCH",
            f"{self.api_url}/files/{file_id}",
            "trash",
            file_id,
            json={"trashed": True},
        )

    def find_folder(self, name: str, parent_id: str) -> Optional[str]:
        query = (
            f"mimeType = '{FOLDER_MIME_TYPE}' and name = '{escape_query_value(name)}' "
            f"and '{escape_query_value(parent_id)}' in parents and trashed = false"
        )
        response = self._request(
            "GET",
            f"{self.api_url}/files",
            "find_folder",
            name,
            params={"q": query, "pageSize": 1, "fields": "files(id, name)"},
        )
        folders = self._folders(response, "find_folder", name)
        return folders[0].id if folders else None

    def create_folder(self, name: str, parent_id: str) -> str:
        response = self._request(
            "POST",
            f"{self.api_url}/files",
            "create_folder",
            name,
            params={"fields": "id"},
            json={"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]},
        )
        folder_id = self._json(response, "create_folder", name).get("id")
        if not folder_id:
            raise RemoteCallError(
                "create_folder", name, message=f"create_folder for '{name}' returned no folder id"
            )
        logger.debug("Created folder '%s' (%s) under %s", name, folder_id, parent_id)
        return folder_id

    def find_or_create_folder(self, name: str, parent_id: str) -> str:
        folder_id = self.find_folder(name, parent_id)
        if folder_id is not None:
            return folder_id
        return self.create_folder(name, parent_id)

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def upload_file(self, path: Path, name: str, parent_id: str) -> DriveFile:
        """Upload ``path`` as ``name`` into ``parent_id`` using a resumable session."""
        size = path.stat().st_size
        init = self._request(
            "POST",
            self.upload_url,
            "upload",
            name,
            params={"uploadType": "resumable", "fields": "id, name, size"},
            json={"name": name, "parents": [parent_id]},
            headers={
                "X-Upload-Content-Type": "application/octet-stream",
                "X-Upload-Content-Length": str(size),
            },
        )
        location = init.headers.get("Location")
        if not location:
            raise RemoteCallError(
                "upload", name, message=f"upload session for '{name}' returned no Location header"
            )

        with path.open("rb") as handle:
            if size == 0:
                response = self._request(
                    "PUT", location, "upload", name, data=b"", allow_redirects=False
                )
                return self._drive_file(response, name)

            offset = 0
            stalled = 0
            while True:
                handle.seek(offset)
                chunk = handle.read(self.chunk_size)
                if not chunk or stalled >= MAX_STALLED_CHUNKS:
                    raise RemoteCallError(
                        "upload", name, message=f"upload of '{name}' stalled at byte {offset} of {size}"
                    )
                end = offset + len(chunk) - 1
                response = self._request(
                    "PUT",
                    location,
                    "upload",
                    name,
                    expected=(200, 201, _RESUME_INCOMPLETE),
                    data=chunk,
                    headers={"Content-Range": f"bytes {offset}-{end}/{size}"},
                    allow_redirects=False,
                )
                if response.status_code != _RESUME_INCOMPLETE:
                    return self._drive_file(response, name)
                committed = _committed_bytes(response, name)
                stalled = stalled + 1 if committed <= offset else 0
                offset = committed
                logger.debug("Uploaded %d/%d bytes of %s", offset, size, name)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        url: str,
        operation: str,
        target: str,
        *,
        expected: Optional[Iterable[int]] = None,
        **kwargs: Any,
    ) -> requests.Response:
        try:
            response = self.session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise RemoteCallError(
                operation, target, message=f"{operation} failed for '{target}': {exc}"
            ) from exc

        if expected is not None:
            ok = response.status_code in tuple(expected)
        else:
            ok = 200 <= response.status_code < 300
        if not ok:
            raise RemoteCallError(
                operation,
                target,
                message=(
                    f"{operation} failed for '{target}': Drive API returned "
                    f"{response.status_code}: {response.text[:200]}"
                ),
                status_code=response.status_code,
            )
        return response

    def _json(self, response: requests.Response, operation: str, target: str) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError as exc:
            raise RemoteCallError(
                operation,
                target,
                message=f"{operation} failed for '{target}': Drive API returned invalid JSON: {exc}",
                status_code=response.status_code,
            ) from exc
        if not isinstance(payload, dict):
            raise RemoteCallError(
                operation,
                target,
                message=f"{operation} failed for '{target}': Drive API returned a non-object body",
                status_code=response.status_code,
            )
        return payload

    def _folders(self, response: requests.Response, operation: str, target: str) -> List[DriveFolder]:
        files = self._json(response, operation, target).get("files") or []
        try:
            return [DriveFolder.model_validate(item) for item in files]
        except ValidationError as exc:
            raise RemoteCallError(
                operation, target, message=f"{operation} failed for '{target}': malformed folder entry: {exc}"
            ) from exc

    def _drive_file(self, response: requests.Response, name: str) -> DriveFile:
        try:
            return DriveFile.model_validate(self._json(response, "upload", name))
        except ValidationError as exc:
            raise RemoteCallError(
                "upload", name, message=f"upload of '{name}' returned a malformed file resource: {exc}"
            ) from exc


def _committed_bytes(response: requests.Response, name: str) -> int:
    # Range: bytes=0-524287 means 524288 bytes are stored; no header means none.
    header = response.headers.get("Range")
    if not header:
        return 0
    try:
        return int(header.rsplit("-", 1)[1]) + 1
    except (IndexError, ValueError) as exc:
        raise RemoteCallError(
            "upload", name, message=f"upload of '{name}' returned an invalid Range header: {header!r}"
        ) from exc


__all__ = ["DriveService", "FolderService", "escape_query_value"]
