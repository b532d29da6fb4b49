import logging

from utils.errors import DriveError
from .http import ServiceHttpClient

logger = logging.getLogger(__name__)


class AuditClient(ServiceHttpClient):
    """Fire-and-forget writer for the Audit service; failures are only logged"""

    service_name = "Audit"

    def log_action(self, user_id, action, entity_type, entity_id, is_success=True,
                   details=None, error_message=None, ip_address=None, user_agent=None):
        payload = {
            'userId': str(user_id) if user_id else None,
            'action': action,
            'entityType': entity_type,
            'entityId': str(entity_id),
            'isSuccess': is_success,
            'details': details,
            'errorMessage': error_message,
            'ipAddress': ip_address,
            'userAgent': user_agent,
        }
        response = self._request('POST', '/api/audit/log', json=payload)
        if response is not None and response.status_code >= 400:
            logger.warning(f"Audit service rejected {action} entry: HTTP {response.status_code}")


class LocalAuditClient:
    def __init__(self):
        from services.audit_service import AuditService
        self.service = AuditService()

    def log_action(self, user_id, action, entity_type, entity_id, is_success=True,
                   details=None, error_message=None, ip_address=None, user_agent=None):
        try:
            self.service.log_action(
                user_id, action, entity_type, entity_id, is_success,
                details, error_message, ip_address, user_agent,
            )
        except DriveError as e:
            logger.warning(f"Audit entry for {action} dropped: {e.message}")
