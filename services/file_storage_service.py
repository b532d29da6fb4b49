# services/file_storage_service.py
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Iterable, Optional
import logging
from werkzeug.utils import secure_filename
from utils.errors import DriveError

logger = logging.getLogger(__name__)


class StorageError(DriveError):
    """Raised when a blob cannot be stored, read or removed"""
    def __init__(self, message: str, status_code: int = 400, code: str = 'STORAGE_ERROR'):
        super().__init__(message, status_code, code)


def stream_size(stream: BinaryIO) -> int:
    """Size of a seekable stream, leaving it rewound to the start."""
    stream.seek(0, os.SEEK_END)
    size = stream.tell()
    stream.seek(0)
    return size


class LocalFileStorage:
    """
    Stores file contents on the local disk under ``base_path``.

    Files land in ``YYYY/MM/<uuid>_<sanitized name>``; callers only ever see
    that relative path. Every path handed back in is resolved and must stay
    inside the base directory.
    """

    def __init__(self, base_path: str, max_file_size_bytes: int = 100 * 1024 * 1024,
                 allowed_extensions: Optional[Iterable[str]] = None):
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.max_file_size_bytes = max_file_size_bytes
        self.allowed_extensions = {self._normalize_extension(ext) for ext in (allowed_extensions or [])}

    @classmethod
    def from_config(cls, config) -> "LocalFileStorage":
        return cls(
            config['STORAGE_ROOT'],
            config.get('STORAGE_MAX_FILE_SIZE_BYTES', 100 * 1024 * 1024),
            config.get('STORAGE_ALLOWED_EXTENSIONS') or [],
        )

    @staticmethod
    def _normalize_extension(extension: str) -> str:
        extension = extension.strip().lower()
        if extension and not extension.startswith('.'):
            extension = f".{extension}"
        return extension

    @staticmethod
    def _sanitize(file_name: str) -> str:
        return secure_filename(file_name) or "file"

    def save(self, stream: BinaryIO, file_name: str) -> str:
        if stream is None:
            raise StorageError("File stream cannot be null or empty.", 400, 'EMPTY_FILE')
        size = stream_size(stream)
        if size == 0:
            raise StorageError("File stream cannot be null or empty.", 400, 'EMPTY_FILE')

        if not file_name or not file_name.strip():
            raise StorageError("File name cannot be null or empty.", 400, 'INVALID_FILE_NAME')

        if size > self.max_file_size_bytes:
            raise StorageError(
                f"File size {size} bytes exceeds maximum allowed size {self.max_file_size_bytes} bytes.",
                400, 'FILE_TOO_LARGE'
            )

        extension = os.path.splitext(file_name)[1].lower()
        if self.allowed_extensions and extension not in self.allowed_extensions:
            raise StorageError(
                f"File extension '{extension}' is not allowed. "
                f"Allowed extensions: {', '.join(sorted(self.allowed_extensions))}",
                400, 'EXTENSION_NOT_ALLOWED'
            )

        now = datetime.now(timezone.utc)
        subdirectory = Path(f"{now.year:04d}") / f"{now.month:02d}"
        target_dir = self.base_path / subdirectory
        target_dir.mkdir(parents=True, exist_ok=True)

        unique_name = f"{uuid.uuid4()}_{self._sanitize(file_name)}"
        with open(target_dir / unique_name, 'wb') as target:
            shutil.copyfileobj(stream, target)

        relative_path = (subdirectory / unique_name).as_posix()
        logger.info(f"Stored {size} bytes at {relative_path}")
        return relative_path

    def full_path(self, relative_path: str) -> Path:
        if not relative_path or not relative_path.strip():
            raise StorageError("Path cannot be null or empty.", 400, 'INVALID_PATH')

        resolved = (self.base_path / relative_path).resolve()
        if resolved != self.base_path and self.base_path not in resolved.parents:
            logger.warning(f"Rejected storage path outside base directory: {relative_path}")
            raise StorageError("Access to the specified path is not allowed.", 403, 'PATH_NOT_ALLOWED')
        return resolved

    def open(self, relative_path: str) -> BinaryIO:
        path = self.full_path(relative_path)
        if not path.is_file():
            raise StorageError(f"File not found at path: {relative_path}", 404, 'BLOB_NOT_FOUND')
        return open(path, 'rb')

    def delete(self, relative_path: str):
        path = self.full_path(relative_path)
        if path.is_file():
            path.unlink()
