import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import func, or_

from extensions import db
from models.audit_log import AuditAction
from models.folder import Folder
from utils.errors import DriveError
from utils.pagination import Pagination, PagedResult
from utils.validators import sanitize_text, is_optional_text

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Folder"
MAX_HIERARCHY_DEPTH = 100
NOT_FOUND_MESSAGE = "Folder not found or access denied."
DUPLICATE_MESSAGE = "A folder with this name already exists in the specified location."

# Marks "parent not supplied" so that None can mean "move to root"
UNSET = object()


class FolderError(DriveError):
    def __init__(self, message: str, status_code: int = 400, code: str = 'FOLDER_ERROR'):
        super().__init__(message, status_code, code)


def _require_text(**fields):
    for key, value in fields.items():
        if not is_optional_text(value):
            raise FolderError(f"'{key}' must be a string.", 400, 'INVALID_FIELD')


class FolderService:
    def __init__(self, audit_client=None):
        self.db = db
        self.audit = audit_client

    def _audit(self, owner_id, action: AuditAction, folder_id, details=None, ip_address=None, user_agent=None):
        if self.audit is not None:
            self.audit.log_action(owner_id, action.value, ENTITY_TYPE, folder_id, True, details,
                                  None, ip_address, user_agent)

    def _find(self, folder_id: str, owner_id: str) -> Optional[Folder]:
        if not folder_id:
            return None
        return Folder.query.filter_by(id=str(folder_id), owner_id=str(owner_id), is_deleted=False).first()

    def _sibling_named(self, name: str, owner_id: str, parent_id: Optional[str]) -> Optional[Folder]:
        query = Folder.query.filter(
            Folder.owner_id == str(owner_id),
            Folder.is_deleted == False,  # noqa: E712
            func.lower(Folder.name) == name.strip().lower(),
        )
        if parent_id:
            query = query.filter(Folder.parent_folder_id == parent_id)
        else:
            query = query.filter(Folder.parent_folder_id.is_(None))
        return query.first()

    def create(self, name: str, owner_id: str, parent_folder_id: str = None, description: str = None,
               color: str = None, ip_address: str = None, user_agent: str = None) -> Folder:
        _require_text(name=name, description=description, color=color, parentFolderId=parent_folder_id)
        if not name or not name.strip():
            raise FolderError("Folder name cannot be null or empty.", 400, 'INVALID_NAME')

        if parent_folder_id and self._find(parent_folder_id, owner_id) is None:
            raise FolderError("Parent folder not found or access denied.", 400, 'PARENT_NOT_FOUND')

        if self._sibling_named(name, owner_id, parent_folder_id):
            raise FolderError(DUPLICATE_MESSAGE, 400, 'DUPLICATE_NAME')

        try:
            folder = Folder(
                name=name.strip(),
                owner_id=str(owner_id),
                parent_folder_id=parent_folder_id or None,
                description=sanitize_text(description) if description is not None else None,
                color=color,
            )
            self.db.session.add(folder)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise FolderError(f"Failed to create folder: {str(e)}", 500, 'CREATE_FAILED')

        self._audit(owner_id, AuditAction.FOLDER_CREATE, folder.id, f"Folder: {folder.name}", ip_address, user_agent)
        return folder

    def get(self, folder_id: str, owner_id: str) -> Folder:
        folder = self._find(folder_id, owner_id)
        if folder is None:
            raise FolderError(NOT_FOUND_MESSAGE, 404, 'FOLDER_NOT_FOUND')
        return folder

    def list(self, owner_id: str, parent_folder_id: str = None, search: str = None,
             pagination: Pagination = None) -> PagedResult:
        query = Folder.query.filter_by(owner_id=str(owner_id), is_deleted=False)
        if parent_folder_id:
            query = query.filter(Folder.parent_folder_id == parent_folder_id)
        else:
            query = query.filter(Folder.parent_folder_id.is_(None))

        if search and search.strip():
            pattern = f"%{search.strip()}%"
            query = query.filter(or_(Folder.name.ilike(pattern), Folder.description.ilike(pattern)))

        query = query.order_by(Folder.name)
        return (pagination or Pagination()).apply(query)

    def path(self, folder_id: str, owner_id: str) -> List[Folder]:
        """Breadcrumb from the root down to ``folder_id``."""
        breadcrumb = []
        current_id = folder_id
        while current_id and len(breadcrumb) < MAX_HIERARCHY_DEPTH:
            folder = self._find(current_id, owner_id)
            if folder is None:
                break
            breadcrumb.insert(0, folder)
            current_id = folder.parent_folder_id
        return breadcrumb

    def _is_descendant(self, ancestor_id: str, folder_id: str, owner_id: str) -> bool:
        current_id = folder_id
        depth = 0
        while current_id and depth < MAX_HIERARCHY_DEPTH:
            if current_id == ancestor_id:
                return True
            folder = self._find(current_id, owner_id)
            if folder is None:
                break
            current_id = folder.parent_folder_id
            depth += 1
        return False

    def update(self, folder_id: str, owner_id: str, name: str = None, description: str = None,
               color: str = None, parent_folder_id=UNSET, ip_address: str = None,
               user_agent: str = None) -> Folder:
        folder = self.get(folder_id, owner_id)
        moving = parent_folder_id is not UNSET
        _require_text(name=name, description=description, color=color,
                      parentFolderId=parent_folder_id if moving else None)
        new_parent = (parent_folder_id or None) if moving else folder.parent_folder_id

        if moving and new_parent:
            if new_parent == folder.id:
                raise FolderError("Cannot move folder into itself.", 400, 'INVALID_MOVE')
            if self._is_descendant(folder.id, new_parent, owner_id):
                raise FolderError("Cannot move folder into its own descendant.", 400, 'INVALID_MOVE')
            if self._find(new_parent, owner_id) is None:
                raise FolderError("Parent folder not found or access denied.", 400, 'PARENT_NOT_FOUND')

        renaming = name is not None and name.strip()
        if renaming or moving:
            existing = self._sibling_named(name if renaming else folder.name, owner_id, new_parent)
            if existing is not None and existing.id != folder.id:
                raise FolderError(DUPLICATE_MESSAGE, 400, 'DUPLICATE_NAME')

        try:
            if renaming:
                folder.name = name.strip()
            if description is not None:
                folder.description = sanitize_text(description)
            if color is not None:
                folder.color = color
            if moving:
                folder.parent_folder_id = new_parent
            folder.touch()
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise FolderError(f"Failed to update folder: {str(e)}", 500, 'UPDATE_FAILED')

        self._audit(owner_id, AuditAction.FOLDER_UPDATE, folder.id, f"Folder: {folder.name}", ip_address, user_agent)
        return folder

    def delete(self, folder_id: str, owner_id: str, ip_address: str = None, user_agent: str = None):
        folder = self.get(folder_id, owner_id)

        has_children = Folder.query.filter_by(
            owner_id=str(owner_id), parent_folder_id=folder.id, is_deleted=False
        ).first() is not None
        if has_children:
            raise FolderError(
                "Cannot delete folder that contains subfolders. Please delete or move subfolders first.",
                400, 'FOLDER_NOT_EMPTY'
            )

        try:
            now = datetime.now(timezone.utc)
            folder.is_deleted = True
            folder.deleted_at = now
            folder.touch(now)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise FolderError(f"Failed to delete folder: {str(e)}", 500, 'DELETE_FAILED')

        logger.info(f"Folder {folder.id} deleted by user {owner_id}")
        self._audit(owner_id, AuditAction.FOLDER_DELETE, folder.id, f"Folder: {folder.name}", ip_address, user_agent)
