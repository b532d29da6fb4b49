import uuid
from datetime import datetime, timezone
from extensions import db


def new_id():
    return str(uuid.uuid4())


def utcnow():
    return datetime.now(timezone.utc)


def isoformat(value):
    return value.isoformat() if value else None


class EntityMixin:
    """UUID primary key plus creation/update timestamps shared by every entity."""

    id = db.Column(db.String(36), primary_key=True, default=new_id)
    created_at = db.Column(db.DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime(timezone=True), nullable=True)

    def touch(self, updated_at=None):
        self.updated_at = updated_at or utcnow()
