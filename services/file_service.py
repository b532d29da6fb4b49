import os
import logging
from datetime import datetime, timezone
from typing import BinaryIO, Optional, Tuple

from sqlalchemy import desc, func, or_

from extensions import db
from models.audit_log import AuditAction
from models.file import FileEntry
from services.file_storage_service import LocalFileStorage, StorageError, stream_size
from utils.errors import DriveError
from utils.pagination import Pagination, PagedResult
from utils.performance_logger import performance_monitor
from utils.validators import (
    validate_file_name, validate_description, validate_search_term, sanitize_text, is_optional_text
)

logger = logging.getLogger(__name__)

ENTITY_TYPE = "File"
EMPTY_ENTITY_ID = "00000000-0000-0000-0000-000000000000"
NOT_FOUND_MESSAGE = "File not found or access denied."


class FileServiceError(DriveError):
    def __init__(self, message: str, status_code: int = 400, code: str = 'FILE_ERROR'):
        super().__init__(message, status_code, code)


class FileService:
    """
    File metadata and contents for one owner at a time.

    Storage, quota and audit are injected so the same service works whether
    Quota/Audit run in this process or behind HTTP.
    """

    def __init__(self, storage: LocalFileStorage, quota_client, audit_client):
        self.db = db
        self.storage = storage
        self.quota = quota_client
        self.audit = audit_client

    def _audit(self, owner_id, action: AuditAction, entity_id, is_success=True, details=None,
               error_message=None, ip_address=None, user_agent=None):
        self.audit.log_action(
            owner_id, action.value, ENTITY_TYPE, entity_id or EMPTY_ENTITY_ID,
            is_success, details, error_message, ip_address, user_agent,
        )

    def _reject_upload(self, owner_id, details, message, ip_address, user_agent, code):
        self._audit(owner_id, AuditAction.FILE_UPLOAD, None, False, details, message, ip_address, user_agent)
        raise FileServiceError(message, 400, code)

    @performance_monitor("files.upload")
    def upload(self, stream: BinaryIO, file_name: str, content_type: str, owner_id: str,
               folder_id: str = None, description: str = None, ip_address: str = None,
               user_agent: str = None) -> FileEntry:
        size = stream_size(stream) if stream is not None else 0
        if size == 0:
            self._reject_upload(owner_id, f"File: {file_name}", "File stream cannot be null or empty.",
                                ip_address, user_agent, 'EMPTY_FILE')

        valid, error = validate_file_name(file_name)
        if not valid:
            self._reject_upload(owner_id, f"File: {file_name}", error, ip_address, user_agent, 'INVALID_FILE_NAME')

        valid, error = validate_description(description)
        if not valid:
            self._reject_upload(owner_id, f"File: {file_name}", error, ip_address, user_agent, 'INVALID_DESCRIPTION')

        if not self.quota.can_upload(owner_id, size):
            quota = self.quota.get_quota(owner_id)
            if quota:
                message = (
                    f"Storage quota exceeded. Used: {quota['usedBytes']} bytes, "
                    f"Limit: {quota['limitBytes']} bytes, Available: {quota['availableBytes']} bytes"
                )
            else:
                message = "Storage quota exceeded."
            logger.warning(f"Upload of {file_name} ({size} bytes) denied for user {owner_id}")
            self._reject_upload(owner_id, f"File: {file_name}, Size: {size} bytes", message,
                                ip_address, user_agent, 'QUOTA_EXCEEDED')

        storage_path = None
        try:
            storage_path = self.storage.save(stream, file_name)
            entry = FileEntry(
                file_name=file_name,
                content_type=content_type or "application/octet-stream",
                size_bytes=size,
                storage_path=storage_path,
                owner_id=str(owner_id),
                folder_id=folder_id,
                extension=os.path.splitext(file_name)[1],
                description=sanitize_text(description) or None,
            )
            self.db.session.add(entry)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            if storage_path:
                self.storage.delete(storage_path)
            message = e.message if isinstance(e, DriveError) else str(e)
            logger.error(f"Failed to upload {file_name} for user {owner_id}: {message}")
            self._audit(owner_id, AuditAction.FILE_UPLOAD, None, False,
                        f"File: {file_name}, Size: {size} bytes", message, ip_address, user_agent)
            raise FileServiceError(f"Failed to upload file: {message}", 400, 'UPLOAD_FAILED')

        self.quota.increase(owner_id, size)
        self._audit(owner_id, AuditAction.FILE_UPLOAD, entry.id, True,
                    f"File: {file_name}, Size: {size} bytes, ContentType: {entry.content_type}",
                    None, ip_address, user_agent)
        return entry

    def _find(self, file_id: str, owner_id: str, include_deleted: bool = False) -> Optional[FileEntry]:
        query = FileEntry.query.filter_by(id=str(file_id), owner_id=str(owner_id))
        if not include_deleted:
            query = query.filter_by(is_deleted=False)
        return query.first()

    def get(self, file_id: str, owner_id: str) -> FileEntry:
        entry = self._find(file_id, owner_id)
        if entry is None:
            raise FileServiceError(NOT_FOUND_MESSAGE, 404, 'FILE_NOT_FOUND')
        return entry

    def download(self, file_id: str, owner_id: str) -> Tuple[FileEntry, BinaryIO]:
        entry = self.get(file_id, owner_id)
        try:
            return entry, self.storage.open(entry.storage_path)
        except StorageError as e:
            logger.error(f"Stored content missing for file {file_id}: {e.message}")
            raise FileServiceError(f"Failed to retrieve file: {e.message}", e.status_code, 'DOWNLOAD_FAILED')

    def list(self, owner_id: str, folder_id: str = None, search: str = None,
             pagination: Pagination = None) -> PagedResult:
        valid, error = validate_search_term(search)
        if not valid:
            raise FileServiceError(error, 400, 'INVALID_SEARCH_TERM')

        query = FileEntry.query.filter_by(owner_id=str(owner_id), is_deleted=False)
        query = query.filter(FileEntry.folder_id == folder_id) if folder_id else query.filter(FileEntry.folder_id.is_(None))

        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(
                FileEntry.file_name.ilike(pattern),
                FileEntry.description.ilike(pattern),
            ))

        query = query.order_by(desc(FileEntry.created_at))
        return (pagination or Pagination()).apply(query)

    def update(self, file_id: str, owner_id: str, file_name: str = None, description: str = None,
               folder_id: str = None, ip_address: str = None, user_agent: str = None) -> FileEntry:
        entry = self.get(file_id, owner_id)

        if not is_optional_text(folder_id):
            raise FileServiceError("Folder ID must be a string.", 400, 'INVALID_FOLDER_ID')

        if file_name is not None:
            valid, error = validate_file_name(file_name)
            if not valid:
                raise FileServiceError(error, 400, 'INVALID_FILE_NAME')

        valid, error = validate_description(description)
        if not valid:
            raise FileServiceError(error, 400, 'INVALID_DESCRIPTION')

        try:
            if file_name is not None:
                entry.rename(file_name.strip())
            if description is not None:
                entry.description = sanitize_text(description) or None
            if folder_id is not None:
                entry.folder_id = folder_id or None
            entry.touch()
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise FileServiceError(f"Failed to update file: {str(e)}", 500, 'UPDATE_FAILED')

        self._audit(owner_id, AuditAction.FILE_UPDATE, entry.id, True, f"File: {entry.file_name}",
                    None, ip_address, user_agent)
        return entry

    def delete(self, file_id: str, owner_id: str, ip_address: str = None, user_agent: str = None):
        entry = self._find(file_id, owner_id)
        if entry is None:
            self._audit(owner_id, AuditAction.FILE_DELETE, file_id, False, None, NOT_FOUND_MESSAGE,
                        ip_address, user_agent)
            raise FileServiceError(NOT_FOUND_MESSAGE, 404, 'FILE_NOT_FOUND')

        try:
            now = datetime.now(timezone.utc)
            entry.is_deleted = True
            entry.deleted_at = now
            entry.touch(now)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            self._audit(owner_id, AuditAction.FILE_DELETE, file_id, False, f"File: {entry.file_name}",
                        "Failed to delete file.", ip_address, user_agent)
            raise FileServiceError(f"Failed to delete file: {str(e)}", 500, 'DELETE_FAILED')

        # Quota is only released by a permanent delete
        self._audit(owner_id, AuditAction.FILE_DELETE, file_id, True,
                    f"File: {entry.file_name}, Size: {entry.size_bytes} bytes", None, ip_address, user_agent)

    @performance_monitor("files.permanently_delete")
    def permanently_delete(self, file_id: str, owner_id: str, ip_address: str = None,
                           user_agent: str = None):
        entry = self._find(file_id, owner_id, include_deleted=True)
        if entry is None:
            self._audit(owner_id, AuditAction.FILE_PERMANENT_DELETE, file_id, False, None,
                        NOT_FOUND_MESSAGE, ip_address, user_agent)
            raise FileServiceError(NOT_FOUND_MESSAGE, 404, 'FILE_NOT_FOUND')

        file_name = entry.file_name
        size = entry.size_bytes

        try:
            self.storage.delete(entry.storage_path)
        except (StorageError, OSError) as e:
            message = e.message if isinstance(e, StorageError) else str(e)
            logger.error(f"Failed to remove stored content for file {file_id}: {message}")
            self._audit(owner_id, AuditAction.FILE_PERMANENT_DELETE, file_id, False, f"File: {file_name}",
                        f"Failed to delete from storage: {message}", ip_address, user_agent)

        try:
            self.db.session.delete(entry)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            self._audit(owner_id, AuditAction.FILE_PERMANENT_DELETE, file_id, False, f"File: {file_name}",
                        "Failed to permanently delete file.", ip_address, user_agent)
            raise FileServiceError(f"Failed to permanently delete file: {str(e)}", 500, 'DELETE_FAILED')

        self.quota.decrease(owner_id, size)
        self._audit(owner_id, AuditAction.FILE_PERMANENT_DELETE, file_id, True,
                    f"File: {file_name}, Size: {size} bytes", None, ip_address, user_agent)

    def total_storage_used(self, owner_id: str) -> int:
        total = self.db.session.query(func.coalesce(func.sum(FileEntry.size_bytes), 0)).filter(
            FileEntry.owner_id == str(owner_id),
            FileEntry.is_deleted == False,  # noqa: E712
        ).scalar()
        return int(total or 0)
