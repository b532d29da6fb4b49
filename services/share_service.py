import logging
import secrets
import string
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import desc

from extensions import db
from models.audit_log import AuditAction
from models.share import Share, RESOURCE_TYPES, PERMISSIONS
from utils.errors import DriveError
from utils.validators import is_optional_text

logger = logging.getLogger(__name__)

ENTITY_TYPE = "Share"
SHARE_TOKEN_LENGTH = 32
SHARE_TOKEN_ALPHABET = string.ascii_letters + string.digits
PERMISSION_MESSAGE = "Permission must be 'view', 'edit', or 'admin'."


class ShareError(DriveError):
    def __init__(self, message: str, status_code: int = 400, code: str = 'SHARE_ERROR'):
        super().__init__(message, status_code, code)


def generate_share_token() -> str:
    return ''.join(secrets.choice(SHARE_TOKEN_ALPHABET) for _ in range(SHARE_TOKEN_LENGTH))


def parse_expiry(value) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    try:
        parsed = datetime.fromisoformat(str(value).replace('Z', '+00:00'))
    except ValueError:
        raise ShareError("expiresAt must be an ISO-8601 timestamp.", 400, 'INVALID_EXPIRY')
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _require_text(value, message: str, code: str):
    if not is_optional_text(value):
        raise ShareError(message, 400, code)
    return value


def _max_downloads(value) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int):
        raise ShareError("Max downloads must be an integer.", 400, 'INVALID_MAX_DOWNLOADS')
    if value < 0:
        raise ShareError("Max downloads cannot be negative.", 400, 'INVALID_MAX_DOWNLOADS')
    return value


class ShareService:
    """Sharing relationships between a resource owner and a user or public link"""

    def __init__(self, audit_client=None):
        self.db = db
        self.audit = audit_client

    def _audit(self, user_id, action: AuditAction, share_id, details=None, is_success=True,
               error_message=None, ip_address=None, user_agent=None):
        if self.audit is not None:
            self.audit.log_action(user_id, action.value, ENTITY_TYPE, share_id, is_success, details,
                                  error_message, ip_address, user_agent)

    def _commit(self, action: str):
        try:
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise ShareError(f"Failed to {action}: {str(e)}", 500, 'SHARE_WRITE_FAILED')

    def create(self, owner_id: str, resource_id: str, resource_type: str, permission: str = "view",
               is_public_share: bool = False, shared_with_user_id: str = None, expires_at=None,
               password: str = None, max_downloads: int = None, notes: str = None,
               ip_address: str = None, user_agent: str = None) -> Share:
        if not resource_id or not str(resource_id).strip():
            raise ShareError("Resource ID cannot be empty.", 400, 'INVALID_RESOURCE')

        _require_text(resource_type, "Resource type must be 'file' or 'folder'.", 'INVALID_RESOURCE_TYPE')
        _require_text(permission, PERMISSION_MESSAGE, 'INVALID_PERMISSION')
        _require_text(password, "Password must be a string.", 'INVALID_PASSWORD')
        _require_text(notes, "Notes must be a string.", 'INVALID_NOTES')

        if not resource_type or not resource_type.strip():
            raise ShareError("Resource type is required.", 400, 'INVALID_RESOURCE_TYPE')
        resource_type = resource_type.strip().lower()
        if resource_type not in RESOURCE_TYPES:
            raise ShareError("Resource type must be 'file' or 'folder'.", 400, 'INVALID_RESOURCE_TYPE')

        permission = (permission or "view").strip().lower()
        if permission not in PERMISSIONS:
            raise ShareError(PERMISSION_MESSAGE, 400, 'INVALID_PERMISSION')

        if not is_public_share and not shared_with_user_id:
            raise ShareError("SharedWithUserId is required for non-public shares.", 400, 'MISSING_TARGET_USER')

        max_downloads = _max_downloads(max_downloads)

        if not is_public_share:
            existing = Share.query.filter_by(
                resource_id=str(resource_id),
                resource_type=resource_type,
                shared_with_user_id=str(shared_with_user_id),
                is_deleted=False,
            ).first()
            if existing is not None:
                raise ShareError("This resource is already shared with this user.", 400, 'DUPLICATE_SHARE')

        share = Share(
            resource_id=str(resource_id),
            resource_type=resource_type,
            owner_id=str(owner_id),
            shared_with_user_id=str(shared_with_user_id) if shared_with_user_id else None,
            permission=permission,
            is_public_share=bool(is_public_share),
            share_token=generate_share_token() if is_public_share else None,
            is_active=True,
            expires_at=parse_expiry(expires_at),
            max_downloads=max_downloads,
            current_downloads=0,
            notes=notes,
        )
        share.set_password(password)

        self.db.session.add(share)
        self._commit("create share")

        self._audit(owner_id, AuditAction.SHARE_CREATE, share.id,
                    f"{share.resource_type}: {share.resource_id}, Permission: {share.permission}",
                    ip_address=ip_address, user_agent=user_agent)
        return share

    def _get_any(self, share_id: str) -> Optional[Share]:
        return Share.query.filter_by(id=str(share_id), is_deleted=False).first()

    def get(self, share_id: str, owner_id: str, verb: str = "access") -> Share:
        share = self._get_any(share_id)
        if share is None:
            raise ShareError("Share not found.", 404, 'SHARE_NOT_FOUND')
        if share.owner_id != str(owner_id):
            raise ShareError(f"You don't have permission to {verb} this share.", 403, 'SHARE_FORBIDDEN')
        return share

    def get_public(self, token: str) -> Share:
        share = None
        if token:
            share = Share.query.filter_by(share_token=token, is_active=True, is_deleted=False).first()
        if share is None:
            raise ShareError("Share not found or has expired.", 404, 'SHARE_NOT_FOUND')

        if share.is_expired:
            share.is_active = False
            share.touch()
            self._commit("deactivate share")
            logger.info(f"Public share {share.id} expired and was deactivated")
            raise ShareError("Share has expired.", 410, 'SHARE_EXPIRED')

        if share.download_limit_reached:
            raise ShareError("Download limit reached for this share.", 403, 'DOWNLOAD_LIMIT_REACHED')

        return share

    def access_public(self, token: str, password: str = None, ip_address: str = None,
                      user_agent: str = None) -> Share:
        """Open a public link: checks the password and counts one download."""
        share = self.get_public(token)
        if not self.verify_password(share, password):
            logger.warning(f"Wrong password for public share {share.id} from {ip_address}")
            self._audit(None, AuditAction.SHARE_ACCESS, share.id, None, False, "Invalid password.",
                        ip_address, user_agent)
            raise ShareError("Invalid password.", 401, 'INVALID_SHARE_PASSWORD')

        self.increment_download_count(share.id)
        self._audit(None, AuditAction.SHARE_ACCESS, share.id,
                    f"Downloads: {share.current_downloads}", ip_address=ip_address, user_agent=user_agent)
        return share

    def list_owned(self, owner_id: str) -> List[Share]:
        return Share.query.filter_by(owner_id=str(owner_id), is_deleted=False) \
            .order_by(desc(Share.created_at)).all()

    def list_shared_with(self, user_id: str) -> List[Share]:
        return Share.query.filter_by(shared_with_user_id=str(user_id), is_active=True, is_deleted=False) \
            .order_by(desc(Share.created_at)).all()

    def list_for_resource(self, resource_id: str, resource_type: str, owner_id: str) -> List[Share]:
        return Share.query.filter_by(
            resource_id=str(resource_id),
            resource_type=(resource_type or "").strip().lower(),
            owner_id=str(owner_id),
            is_deleted=False,
        ).order_by(desc(Share.created_at)).all()

    def update(self, share_id: str, owner_id: str, changes: dict, ip_address: str = None,
               user_agent: str = None) -> Share:
        """
        Apply the keys present in ``changes``: permission, expires_at, is_active,
        password (empty string clears it), max_downloads, notes.
        """
        share = self.get(share_id, owner_id, verb="update")

        permission = _require_text(changes.get('permission'), PERMISSION_MESSAGE, 'INVALID_PERMISSION')
        if permission:
            permission = permission.strip().lower()
            if permission not in PERMISSIONS:
                raise ShareError(PERMISSION_MESSAGE, 400, 'INVALID_PERMISSION')
            share.permission = permission

        if changes.get('expires_at') is not None:
            share.expires_at = parse_expiry(changes['expires_at'])

        if changes.get('is_active') is not None:
            share.is_active = bool(changes['is_active'])

        if changes.get('password') is not None:
            share.set_password(_require_text(changes['password'], "Password must be a string.", 'INVALID_PASSWORD'))

        if changes.get('max_downloads') is not None:
            share.max_downloads = _max_downloads(changes['max_downloads'])

        if changes.get('notes') is not None:
            share.notes = _require_text(changes['notes'], "Notes must be a string.", 'INVALID_NOTES')

        share.touch()
        self._commit("update share")
        self._audit(owner_id, AuditAction.SHARE_UPDATE, share.id, ip_address=ip_address, user_agent=user_agent)
        return share

    def delete(self, share_id: str, owner_id: str, ip_address: str = None, user_agent: str = None):
        share = self.get(share_id, owner_id, verb="delete")
        now = datetime.now(timezone.utc)
        share.is_deleted = True
        share.deleted_at = now
        share.is_active = False
        share.touch(now)
        self._commit("delete share")
        self._audit(owner_id, AuditAction.SHARE_DELETE, share.id, ip_address=ip_address, user_agent=user_agent)

    @staticmethod
    def verify_password(share: Share, password: str) -> bool:
        return share.check_password(password)

    def increment_download_count(self, share_id: str) -> Share:
        share = self._get_any(share_id)
        if share is None:
            raise ShareError("Share not found.", 404, 'SHARE_NOT_FOUND')
        share.current_downloads = (share.current_downloads or 0) + 1
        share.touch()
        self._commit("update download count")
        return share
