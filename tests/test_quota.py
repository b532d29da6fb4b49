"""
Tests for the Quota service and /api/quota routes
"""
import pytest

from models.quota import UserQuota
from services.quota_service import QuotaService, QuotaError

USER_ID = '11111111-1111-1111-1111-111111111111'


@pytest.fixture
def quota_service(app):
    return QuotaService()


class TestUserQuota:
    def test_derived_values(self):
        quota = UserQuota(user_id=USER_ID, used_bytes=300, limit_bytes=1000)

        assert quota.available_bytes == 700
        assert quota.usage_percentage == 30.0
        assert quota.is_exceeded is False
        assert quota.can_store(700) is True
        assert quota.can_store(701) is False

    def test_exceeded_quota(self):
        quota = UserQuota(user_id=USER_ID, used_bytes=1500, limit_bytes=1000)

        assert quota.available_bytes == 0
        assert quota.is_exceeded is True

    def test_zero_limit(self):
        quota = UserQuota(user_id=USER_ID, used_bytes=0, limit_bytes=0)
        assert quota.usage_percentage == 0.0


class TestQuotaService:
    def test_get_or_create_uses_default_limit(self, quota_service):
        quota = quota_service.get_or_create(USER_ID)

        assert quota.limit_bytes == 1024 * 1024
        assert quota.used_bytes == 0
        assert quota_service.get_or_create(USER_ID).id == quota.id

    def test_get_or_create_with_explicit_limit(self, quota_service):
        quota = quota_service.get_or_create(USER_ID, default_limit_bytes=42)
        assert quota.limit_bytes == 42

    def test_can_upload_creates_quota(self, quota_service):
        assert quota_service.get(USER_ID) is None
        assert quota_service.can_upload(USER_ID, 100) is True
        assert quota_service.get(USER_ID) is not None

    def test_can_upload_negative_size(self, quota_service):
        assert quota_service.can_upload(USER_ID, -1) is False

    def test_can_upload_beyond_limit(self, quota_service):
        quota_service.get_or_create(USER_ID, default_limit_bytes=100)
        quota_service.increase(USER_ID, 60)

        assert quota_service.can_upload(USER_ID, 40) is True
        assert quota_service.can_upload(USER_ID, 41) is False

    def test_increase_and_decrease(self, quota_service):
        quota_service.get_or_create(USER_ID)

        assert quota_service.increase(USER_ID, 500) is True
        assert quota_service.decrease(USER_ID, 200) is True
        assert quota_service.get(USER_ID).used_bytes == 300

    def test_decrease_clamps_at_zero(self, quota_service):
        quota_service.get_or_create(USER_ID)
        quota_service.increase(USER_ID, 10)

        quota_service.decrease(USER_ID, 50)

        assert quota_service.get(USER_ID).used_bytes == 0

    def test_mutations_on_missing_quota_return_false(self, quota_service):
        assert quota_service.increase(USER_ID, 1) is False
        assert quota_service.decrease(USER_ID, 1) is False
        assert quota_service.update_limit(USER_ID, 1) is False
        assert quota_service.sync_used_bytes(USER_ID, 1) is False

    @pytest.mark.parametrize('operation', ['increase', 'decrease', 'update_limit', 'sync_used_bytes'])
    def test_negative_amounts_raise(self, quota_service, operation):
        quota_service.get_or_create(USER_ID)

        with pytest.raises(QuotaError) as exc_info:
            getattr(quota_service, operation)(USER_ID, -5)
        assert exc_info.value.status_code == 400

    def test_update_limit_and_sync(self, quota_service):
        quota_service.get_or_create(USER_ID)

        quota_service.update_limit(USER_ID, 2048)
        quota_service.sync_used_bytes(USER_ID, 1024)

        quota = quota_service.get(USER_ID)
        assert quota.limit_bytes == 2048
        assert quota.used_bytes == 1024
        assert quota.updated_at is not None


class TestQuotaRoutes:
    def test_get_missing_quota(self, client):
        response = client.get(f'/api/quota/{USER_ID}')

        assert response.status_code == 404
        assert response.get_json()['error'] == "Quota not found."

    def test_me_creates_quota(self, client, auth_headers, test_user):
        response = client.get('/api/quota/me', headers=auth_headers)

        assert response.status_code == 200
        data = response.get_json()
        assert data['userId'] == test_user.id
        assert data['limitBytes'] == 1024 * 1024
        assert data['availableBytes'] == 1024 * 1024

    def test_me_requires_auth(self, client):
        assert client.get('/api/quota/me').status_code == 401

    def test_can_upload(self, client):
        response = client.get(f'/api/quota/{USER_ID}/can-upload?fileSize=10')

        assert response.status_code == 200
        assert response.get_json() == {'canUpload': True}

    def test_can_upload_requires_size(self, client):
        assert client.get(f'/api/quota/{USER_ID}/can-upload').status_code == 400

    def test_increase_decrease_roundtrip(self, client, quota_service):
        quota_service.get_or_create(USER_ID)

        response = client.post(f'/api/quota/{USER_ID}/increase', json={'bytes': 400})
        assert response.status_code == 200
        assert response.get_json() == {'success': True}

        client.post(f'/api/quota/{USER_ID}/decrease', json={'bytes': 100})

        assert client.get(f'/api/quota/{USER_ID}').get_json()['usedBytes'] == 300

    def test_increase_missing_quota(self, client):
        response = client.post(f'/api/quota/{USER_ID}/increase', json={'bytes': 1})
        assert response.status_code == 400

    def test_negative_amount(self, client, quota_service):
        quota_service.get_or_create(USER_ID)

        response = client.post(f'/api/quota/{USER_ID}/increase', json={'bytes': -1})

        assert response.status_code == 400
        assert response.get_json()['code'] == 'NEGATIVE_AMOUNT'

    def test_non_integer_amount(self, client, quota_service):
        quota_service.get_or_create(USER_ID)
        response = client.post(f'/api/quota/{USER_ID}/increase', json={'bytes': 'lots'})
        assert response.status_code == 400

    def test_limit_and_sync(self, client, quota_service):
        quota_service.get_or_create(USER_ID)

        assert client.put(f'/api/quota/{USER_ID}/limit', json={'limitBytes': 5000}).status_code == 200
        assert client.post(f'/api/quota/{USER_ID}/sync', json={'usedBytes': 1234}).status_code == 200

        data = client.get(f'/api/quota/{USER_ID}').get_json()
        assert data['limitBytes'] == 5000
        assert data['usedBytes'] == 1234
