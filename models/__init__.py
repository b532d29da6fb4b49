from .user import User, Session
from .file import FileEntry
from .folder import Folder
from .quota import UserQuota
from .audit_log import AuditLog, AuditAction
from .share import Share

__all__ = [
    "User",
    "Session",
    "FileEntry",
    "Folder",
    "UserQuota",
    "AuditLog",
    "AuditAction",
    "Share",
]
