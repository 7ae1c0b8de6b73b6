"""Google Drive v3 collaborator used by uploads and cleanup."""

from .models import DriveFile, DriveFolder
from .service import DriveService, FolderService, escape_query_value

__all__ = ["DriveFile", "DriveFolder", "DriveService", "FolderService", "escape_query_value"]
