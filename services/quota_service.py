import logging
from typing import Optional
from flask import current_app
from extensions import db
from models.quota import UserQuota
from utils.errors import DriveError

logger = logging.getLogger(__name__)

DEFAULT_QUOTA_BYTES = 5 * 1024 * 1024 * 1024


class QuotaError(DriveError):
    """Raised for invalid quota amounts"""
    def __init__(self, message: str, status_code: int = 400, code: str = 'QUOTA_ERROR'):
        super().__init__(message, status_code, code)


class QuotaService:
    """Per-user byte counters checked before uploads"""

    def __init__(self, default_limit_bytes: int = None):
        self.db = db
        self._default_limit_bytes = default_limit_bytes

    @property
    def default_limit_bytes(self) -> int:
        if self._default_limit_bytes is not None:
            return self._default_limit_bytes
        return current_app.config.get('DEFAULT_QUOTA_BYTES', DEFAULT_QUOTA_BYTES)

    @staticmethod
    def _require_non_negative(value: int, label: str):
        if value is None or value < 0:
            raise QuotaError(f"{label} cannot be negative.", 400, 'NEGATIVE_AMOUNT')

    def get(self, user_id: str) -> Optional[UserQuota]:
        return UserQuota.query.filter_by(user_id=str(user_id)).first()

    def get_or_create(self, user_id: str, default_limit_bytes: int = None) -> UserQuota:
        quota = self.get(user_id)
        if quota is not None:
            return quota

        try:
            quota = UserQuota(
                user_id=str(user_id),
                used_bytes=0,
                limit_bytes=default_limit_bytes if default_limit_bytes is not None else self.default_limit_bytes,
            )
            self.db.session.add(quota)
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise QuotaError(f"Failed to create quota: {str(e)}", 500, 'QUOTA_CREATE_FAILED')

        logger.info(f"Created quota for user {user_id} ({quota.limit_bytes} bytes)")
        return quota

    def can_upload(self, user_id: str, file_size: int) -> bool:
        if file_size is None or file_size < 0:
            return False
        quota = self.get_or_create(user_id)
        allowed = quota.can_store(file_size)
        if not allowed:
            logger.warning(
                f"Quota exceeded for user {user_id}: used={quota.used_bytes} "
                f"limit={quota.limit_bytes} requested={file_size}"
            )
        return allowed

    def increase(self, user_id: str, amount: int) -> bool:
        self._require_non_negative(amount, "Bytes")
        return self._update(user_id, lambda quota: setattr(quota, 'used_bytes', quota.used_bytes + amount))

    def decrease(self, user_id: str, amount: int) -> bool:
        self._require_non_negative(amount, "Bytes")
        return self._update(user_id, lambda quota: setattr(quota, 'used_bytes', max(0, quota.used_bytes - amount)))

    def update_limit(self, user_id: str, limit_bytes: int) -> bool:
        self._require_non_negative(limit_bytes, "Limit bytes")
        return self._update(user_id, lambda quota: setattr(quota, 'limit_bytes', limit_bytes))

    def sync_used_bytes(self, user_id: str, used_bytes: int) -> bool:
        self._require_non_negative(used_bytes, "Used bytes")
        return self._update(user_id, lambda quota: setattr(quota, 'used_bytes', used_bytes))

    def _update(self, user_id: str, mutate) -> bool:
        quota = self.get(user_id)
        if quota is None:
            return False

        try:
            mutate(quota)
            quota.touch()
            self.db.session.commit()
        except Exception as e:
            self.db.session.rollback()
            raise QuotaError(f"Failed to update quota: {str(e)}", 500, 'QUOTA_UPDATE_FAILED')
        return True
