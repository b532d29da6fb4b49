from datetime import datetime, timezone, timedelta
from typing import List, Optional
from sqlalchemy import desc
from extensions import db
from models.audit_log import AuditLog
from utils.errors import DriveError
from utils.validators import is_optional_text


class AuditLogError(DriveError):
    """Custom exception for audit logging errors"""
    def __init__(self, message: str, status_code: int = 500, code: str = 'AUDIT_LOG_ERROR'):
        super().__init__(message, status_code, code)


def parse_date(value: Optional[str], end_of_day: bool = False) -> Optional[datetime]:
    """
    Parse a ``from``/``to`` query value.

    Accepts ISO-8601 timestamps or plain ``YYYY-MM-DD`` dates; a plain date used
    as an upper bound covers the whole day. Naive values are taken as UTC.
    """
    if not value:
        return None
    try:
        if len(value) == 10:
            parsed = datetime.strptime(value, '%Y-%m-%d')
            if end_of_day:
                parsed = parsed.replace(hour=23, minute=59, second=59, microsecond=999999)
        else:
            parsed = datetime.fromisoformat(value.replace('Z', '+00:00'))
    except ValueError:
        raise AuditLogError("Invalid date format. Use YYYY-MM-DD or ISO-8601", 400, 'INVALID_DATE_FORMAT')

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class AuditService:
    """Service class for recording and querying audit trail entries"""

    def __init__(self):
        self.db = db

    def log(self, entry: AuditLog) -> AuditLog:
        if entry is None:
            raise AuditLogError("Audit entry is required.", 400, 'MISSING_ENTRY')

        try:
            self.db.session.add(entry)
            self.db.session.commit()
            return entry
        except Exception as e:
            self.db.session.rollback()
            raise AuditLogError(f"Failed to write audit entry: {str(e)}", 500, 'LOG_FAILED')

    def log_action(self, user_id: Optional[str], action: str, entity_type: str, entity_id: str,
                   is_success: bool = True, details: str = None, error_message: str = None,
                   ip_address: str = None, user_agent: str = None) -> AuditLog:
        """
        Record one user action.

        Args:
            user_id: ID of the user performing the action
            action: What happened, e.g. "FileUpload"
            entity_type: Kind of entity affected, e.g. "File"
            entity_id: ID of the entity affected
            is_success: Whether the action succeeded
            details: Free-text details
            error_message: Failure reason when ``is_success`` is False
            ip_address: Client IP address
            user_agent: Client user agent

        Raises:
            AuditLogError: If a required field is missing or the write fails
        """
        if not action or not str(action).strip():
            raise AuditLogError("Action cannot be null or empty.", 400, 'MISSING_ACTION')
        if not entity_type or not str(entity_type).strip():
            raise AuditLogError("EntityType cannot be null or empty.", 400, 'MISSING_ENTITY_TYPE')
        if not entity_id or not str(entity_id).strip():
            raise AuditLogError("EntityId cannot be null or empty.", 400, 'MISSING_ENTITY_ID')
        if not isinstance(is_success, bool):
            raise AuditLogError("IsSuccess must be a boolean.", 400, 'INVALID_FIELD')
        for key, value in (('details', details), ('errorMessage', error_message),
                           ('ipAddress', ip_address), ('userAgent', user_agent)):
            if not is_optional_text(value):
                raise AuditLogError(f"'{key}' must be a string.", 400, 'INVALID_FIELD')

        entry = AuditLog(
            user_id=str(user_id) if user_id else None,
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            is_success=is_success,
            details=details[:4000] if details else None,
            error_message=error_message[:1000] if error_message else None,
            ip_address=ip_address,
            user_agent=user_agent[:500] if user_agent else None,
        )
        return self.log(entry)

    def get_by_user(self, user_id: str, limit: int = None, from_date: datetime = None,
                    to_date: datetime = None) -> List[AuditLog]:
        query = AuditLog.query.filter(AuditLog.user_id == str(user_id))
        return self._run(query, limit, from_date, to_date)

    def get_by_entity(self, entity_type: str, entity_id: str, limit: int = None) -> List[AuditLog]:
        query = AuditLog.query.filter(
            AuditLog.entity_type == entity_type,
            AuditLog.entity_id == entity_id,
        )
        return self._run(query, limit)

    def get_by_action(self, action: str, limit: int = None, from_date: datetime = None,
                      to_date: datetime = None) -> List[AuditLog]:
        query = AuditLog.query.filter(AuditLog.action == action)
        return self._run(query, limit, from_date, to_date)

    def get_all(self, limit: int = None, from_date: datetime = None,
                to_date: datetime = None) -> List[AuditLog]:
        return self._run(AuditLog.query, limit, from_date, to_date)

    def _run(self, query, limit: int = None, from_date: datetime = None, to_date: datetime = None):
        if from_date is not None:
            query = query.filter(AuditLog.created_at >= from_date)
        if to_date is not None:
            query = query.filter(AuditLog.created_at <= to_date)

        query = query.order_by(desc(AuditLog.created_at))

        if limit is not None and limit > 0:
            query = query.limit(limit)
        return query.all()

    def cleanup(self, days_to_keep: int = 90) -> int:
        """
        Delete entries older than ``days_to_keep`` days.

        Returns:
            Number of deleted records
        """
        try:
            cutoff_date = datetime.now(timezone.utc) - timedelta(days=days_to_keep)

            deleted_count = AuditLog.query.filter(
                AuditLog.created_at < cutoff_date
            ).delete(synchronize_session=False)

            self.db.session.commit()

            return deleted_count

        except Exception as e:
            self.db.session.rollback()
            raise AuditLogError(f"Failed to cleanup old audit entries: {str(e)}", 500, 'CLEANUP_FAILED')
