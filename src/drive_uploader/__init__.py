"""drive-uploader: upload files to Google Drive and prune old date folders."""

__version__ = "1.0.0"
