import os
from extensions import db
from .base import EntityMixin, isoformat


def format_file_size(size_bytes: int) -> str:
    sizes = ["B", "KB", "MB", "GB", "TB"]
    length = float(size_bytes or 0)
    order = 0
    while length >= 1024 and order < len(sizes) - 1:
        order += 1
        length /= 1024
    return f"{length:.2f}".rstrip("0").rstrip(".") + f" {sizes[order]}"


class FileEntry(EntityMixin, db.Model):
    __tablename__ = "files"

    file_name = db.Column(db.String(255), nullable=False)
    content_type = db.Column(db.String(255), nullable=False, default="application/octet-stream")
    size_bytes = db.Column(db.BigInteger, nullable=False, default=0)
    storage_path = db.Column(db.String(1024), nullable=False)
    owner_id = db.Column(db.String(36), nullable=False)
    folder_id = db.Column(db.String(36), nullable=True)
    extension = db.Column(db.String(50), nullable=False, default="")
    description = db.Column(db.Text, nullable=True)
    is_deleted = db.Column(db.Boolean, default=False, nullable=False)
    deleted_at = db.Column(db.DateTime(timezone=True), nullable=True)

    __table_args__ = (
        db.Index('idx_files_owner_folder', 'owner_id', 'folder_id'),
        db.Index('idx_files_owner_deleted', 'owner_id', 'is_deleted'),
    )

    def __repr__(self):
        return f"<FileEntry {self.file_name}>"

    def rename(self, file_name: str):
        self.file_name = file_name
        self.extension = os.path.splitext(file_name)[1]

    def to_dict(self):
        return {
            'id': self.id,
            'fileName': self.file_name,
            'contentType': self.content_type,
            'sizeBytes': self.size_bytes,
            'formattedSize': format_file_size(self.size_bytes),
            'extension': self.extension,
            'ownerId': self.owner_id,
            'folderId': self.folder_id,
            'description': self.description,
            'createdAt': isoformat(self.created_at),
            'updatedAt': isoformat(self.updated_at),
        }
