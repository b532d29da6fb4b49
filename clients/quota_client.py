import logging
from typing import Optional

from .http import ServiceHttpClient

logger = logging.getLogger(__name__)


class QuotaClient(ServiceHttpClient):
    service_name = "Quota"

    def can_upload(self, user_id: str, file_size: int) -> bool:
        response = self._request('GET', f'/api/quota/{user_id}/can-upload', params={'fileSize': file_size})
        if response is None or response.status_code != 200:
            return False
        return bool(response.json().get('canUpload'))

    def increase(self, user_id: str, amount: int) -> bool:
        return self._mutate(user_id, 'increase', amount)

    def decrease(self, user_id: str, amount: int) -> bool:
        return self._mutate(user_id, 'decrease', amount)

    def get_quota(self, user_id: str) -> Optional[dict]:
        response = self._request('GET', f'/api/quota/{user_id}')
        if response is None or response.status_code != 200:
            return None
        return response.json()

    def _mutate(self, user_id: str, operation: str, amount: int) -> bool:
        response = self._request('POST', f'/api/quota/{user_id}/{operation}', json={'bytes': amount})
        if response is None or response.status_code != 200:
            logger.warning(f"Quota {operation} of {amount} bytes failed for user {user_id}")
            return False
        return bool(response.json().get('success'))


class LocalQuotaClient:
    def __init__(self):
        from services.quota_service import QuotaService
        self.service = QuotaService()

    def can_upload(self, user_id: str, file_size: int) -> bool:
        return self.service.can_upload(user_id, file_size)

    def increase(self, user_id: str, amount: int) -> bool:
        return self.service.increase(user_id, amount)

    def decrease(self, user_id: str, amount: int) -> bool:
        return self.service.decrease(user_id, amount)

    def get_quota(self, user_id: str) -> Optional[dict]:
        quota = self.service.get(user_id)
        return quota.to_dict() if quota else None
