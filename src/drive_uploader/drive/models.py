"""Drive API response models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


class DriveFolder(BaseModel):
    """A folder as returned by ``files.list``."""

    id: str = Field(..., description="Drive file ID")
    name: str = Field(..., description="Folder name")


class DriveFile(BaseModel):
    """An uploaded file as returned by ``files.create``."""

    id: str = Field(..., description="Drive file ID")
    name: str = Field(default="", description="File name")
    size: Optional[int] = Field(default=None, description="Size in bytes")
