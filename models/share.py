from datetime import datetime, timezone
from extensions import db
from werkzeug.security import generate_password_hash, check_password_hash
from .base import EntityMixin, isoformat

RESOURCE_TYPES = ("file", "folder")
PERMISSIONS = ("view", "edit", "admin")


class Share(EntityMixin, db.Model):
    __tablename__ = "shares"

    resource_id = db.Column(db.String(36), nullable=False)
    resource_type = db.Column(db.String(20), nullable=False)
    owner_id = db.Column(db.String(36), nullable=False, index=True)
    shared_with_user_id = db.Column(db.String(36), nullable=True, index=True)
    permission = db.Column(db.String(20), nullable=False, default="view")
    is_public_share = db.Column(db.Boolean, default=False, nullable=False)
    share_token = db.Column(db.String(64), nullable=True, unique=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=True)
    password_hash = db.Column(db.String(500), nullable=True)
    max_downloads = db.Column(db.Integer, nullable=True)
    current_downloads = db.Column(db.Integer, default=0, nullable=False)
    notes = db.Column(db.String(1000), nullable=True)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.Index('idx_shares_resource', 'resource_id', 'resource_type'),
    )

    def __repr__(self):
        return f"<Share {self.resource_type}/{self.resource_id} ({self.permission})>"

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)

    @property
    def is_expired(self) -> bool:
        if self.expires_at is None:
            return False
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at < datetime.now(timezone.utc)

    @property
    def download_limit_reached(self) -> bool:
        return self.max_downloads is not None and self.current_downloads >= self.max_downloads

    def set_password(self, password):
        self.password_hash = generate_password_hash(password) if password else None

    def check_password(self, password) -> bool:
        if not self.password_hash:
            return True
        if not password:
            return False
        return check_password_hash(self.password_hash, password)

    def to_dict(self):
        return {
            'id': self.id,
            'resourceId': self.resource_id,
            'resourceType': self.resource_type,
            'ownerId': self.owner_id,
            'sharedWithUserId': self.shared_with_user_id,
            'permission': self.permission,
            'isPublicShare': self.is_public_share,
            'shareToken': self.share_token,
            'isActive': self.is_active,
            'expiresAt': isoformat(self.expires_at),
            'hasPassword': self.has_password,
            'maxDownloads': self.max_downloads,
            'currentDownloads': self.current_downloads,
            'notes': self.notes,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
