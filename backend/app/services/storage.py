"""
Product file storage on the local ("public") disk.
"""
from pathlib import Path
from typing import Optional

from app.core.config import settings

CONTENT_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "xls": "application/vnd.ms-excel",
    "pdf": "application/pdf",
    "zip": "application/zip",
    "rar": "application/x-rar-compressed",
    "txt": "text/plain",
    "csv": "text/csv",
    "json": "application/json",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


def content_type_for(filename: str) -> str:
    """MIME type from the file extension."""
    extension = Path(filename).suffix.lstrip(".").lower()
    return CONTENT_TYPES.get(extension, DEFAULT_CONTENT_TYPE)


class ProductStorage:
    """Resolves stored product paths under a single root directory."""

    def __init__(self, root: Optional[str] = None) -> None:
        self.root = Path(root or settings.storage_root).resolve()

    def path(self, stored_path: str) -> Optional[Path]:
        """Absolute path for a stored file; None if it escapes the root."""
        candidate = (self.root / stored_path.lstrip("/")).resolve()
        if candidate != self.root and self.root not in candidate.parents:
            return None
        return candidate

    def exists(self, stored_path: Optional[str]) -> bool:
        if not stored_path:
            return False
        path = self.path(stored_path)
        return path is not None and path.is_file()
