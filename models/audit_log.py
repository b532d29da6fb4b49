from enum import Enum
from extensions import db
from .base import new_id, utcnow, isoformat


class AuditAction(Enum):
    FILE_UPLOAD = "FileUpload"
    FILE_DOWNLOAD = "FileDownload"
    FILE_UPDATE = "FileUpdate"
    FILE_DELETE = "FileDelete"
    FILE_PERMANENT_DELETE = "FilePermanentDelete"
    FOLDER_CREATE = "FolderCreate"
    FOLDER_UPDATE = "FolderUpdate"
    FOLDER_DELETE = "FolderDelete"
    SHARE_CREATE = "ShareCreate"
    SHARE_UPDATE = "ShareUpdate"
    SHARE_DELETE = "ShareDelete"
    SHARE_ACCESS = "ShareAccess"


class AuditLog(db.Model):
    __tablename__ = "audit_logs"

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    action = db.Column(db.String(100), nullable=False)
    entity_type = db.Column(db.String(50), nullable=False)
    entity_id = db.Column(db.String(100), nullable=False)
    user_id = db.Column(db.String(36), nullable=True)
    details = db.Column(db.String(4000), nullable=True)
    ip_address = db.Column(db.String(45), nullable=True)  # IPv6 compatible
    user_agent = db.Column(db.String(500), nullable=True)
    is_success = db.Column(db.Boolean, default=True, nullable=False)
    error_message = db.Column(db.String(1000), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        db.Index('idx_audit_logs_user_id', 'user_id'),
        db.Index('idx_audit_logs_entity', 'entity_type', 'entity_id'),
        db.Index('idx_audit_logs_action', 'action'),
        db.Index('idx_audit_logs_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<AuditLog {self.id}: {self.action} on {self.entity_type}/{self.entity_id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'action': self.action,
            'entityType': self.entity_type,
            'entityId': self.entity_id,
            'userId': self.user_id,
            'details': self.details,
            'ipAddress': self.ip_address,
            'userAgent': self.user_agent,
            'isSuccess': self.is_success,
            'errorMessage': self.error_message,
            'createdAt': isoformat(self.created_at),
        }
