from extensions import db
from .base import EntityMixin, isoformat


class UserQuota(EntityMixin, db.Model):
    __tablename__ = "user_quotas"

    user_id = db.Column(db.String(36), nullable=False, unique=True, index=True)
    used_bytes = db.Column(db.BigInteger, default=0, nullable=False)
    limit_bytes = db.Column(db.BigInteger, nullable=False)

    def __repr__(self):
        return f"<UserQuota user={self.user_id} used={self.used_bytes}/{self.limit_bytes} bytes>"

    @property
    def available_bytes(self) -> int:
        return max(0, self.limit_bytes - self.used_bytes)

    @property
    def usage_percentage(self) -> float:
        return (self.used_bytes / self.limit_bytes * 100) if self.limit_bytes > 0 else 0.0

    @property
    def is_exceeded(self) -> bool:
        return self.used_bytes > self.limit_bytes

    def can_store(self, size_bytes: int) -> bool:
        return self.used_bytes + size_bytes <= self.limit_bytes

    def to_dict(self):
        return {
            'userId': self.user_id,
            'usedBytes': self.used_bytes,
            'limitBytes': self.limit_bytes,
            'availableBytes': self.available_bytes,
            'usagePercentage': round(self.usage_percentage, 2),
            'isExceeded': self.is_exceeded,
            'updatedAt': isoformat(self.updated_at),
        }
