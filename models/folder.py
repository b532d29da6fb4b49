from extensions import db
from .base import EntityMixin, isoformat


class Folder(EntityMixin, db.Model):
    __tablename__ = "folders"

    name = db.Column(db.String(255), nullable=False)
    owner_id = db.Column(db.String(36), nullable=False)
    parent_folder_id = db.Column(db.String(36), db.ForeignKey("folders.id"), nullable=True)
    description = db.Column(db.Text, nullable=True)
    color = db.Column(db.String(50), nullable=True)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.Index('idx_folders_owner_parent', 'owner_id', 'parent_folder_id'),
    )

    def __repr__(self):
        return f"<Folder {self.name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'ownerId': self.owner_id,
            'parentFolderId': self.parent_folder_id,
            'description': self.description,
            'color': self.color,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
