"""
Tests for sharing: user shares, public links, passwords, expiry and limits
"""
import pytest
from datetime import datetime, timezone, timedelta
from unittest.mock import MagicMock

from models.share import Share
from services.share_service import ShareService, ShareError, generate_share_token, parse_expiry

RESOURCE_ID = 'a3f1c2d4-0000-4000-8000-000000000001'


@pytest.fixture
def audit_client():
    return MagicMock()


@pytest.fixture
def share_service(app, audit_client):
    return ShareService(audit_client)


class TestShareModel:
    def test_password_optional(self):
        share = Share()
        share.set_password(None)

        assert share.has_password is False
        assert share.check_password(None) is True

    def test_password_hash(self):
        share = Share()
        share.set_password('s3cret')

        assert share.password_hash != 's3cret'
        assert share.check_password('s3cret') is True
        assert share.check_password('wrong') is False
        assert share.check_password('') is False

    def test_naive_expiry_treated_as_utc(self):
        share = Share(expires_at=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(minutes=1))
        assert share.is_expired is True

    def test_download_limit(self):
        assert Share(max_downloads=2, current_downloads=2).download_limit_reached is True
        assert Share(max_downloads=None, current_downloads=50).download_limit_reached is False


class TestShareHelpers:
    def test_token_shape(self):
        token = generate_share_token()
        assert len(token) == 32
        assert token.isalnum()

    def test_parse_expiry(self):
        assert parse_expiry('2030-01-01T00:00:00Z') == datetime(2030, 1, 1, tzinfo=timezone.utc)
        assert parse_expiry(None) is None
        with pytest.raises(ShareError):
            parse_expiry('next week')


class TestShareService:
    def test_create_user_share(self, share_service, audit_client):
        share = share_service.create('owner-1', RESOURCE_ID, 'File', permission='EDIT',
                                     shared_with_user_id='friend-1')

        assert share.resource_type == 'file'
        assert share.permission == 'edit'
        assert share.share_token is None
        assert share.is_active is True
        assert audit_client.log_action.call_args[0][1] == 'ShareCreate'

    def test_create_public_share_gets_token(self, share_service):
        share = share_service.create('owner-1', RESOURCE_ID, 'folder', is_public_share=True)

        assert share.is_public_share is True
        assert len(share.share_token) == 32

    @pytest.mark.parametrize('kwargs,code', [
        ({'resource_id': ' ', 'resource_type': 'file', 'is_public_share': True}, 'INVALID_RESOURCE'),
        ({'resource_id': RESOURCE_ID, 'resource_type': 'album', 'is_public_share': True}, 'INVALID_RESOURCE_TYPE'),
        ({'resource_id': RESOURCE_ID, 'resource_type': 'file', 'permission': 'owner',
          'is_public_share': True}, 'INVALID_PERMISSION'),
        ({'resource_id': RESOURCE_ID, 'resource_type': 'file'}, 'MISSING_TARGET_USER'),
        ({'resource_id': RESOURCE_ID, 'resource_type': 'file', 'is_public_share': True,
          'max_downloads': -1}, 'INVALID_MAX_DOWNLOADS'),
    ])
    def test_create_validation(self, share_service, kwargs, code):
        with pytest.raises(ShareError) as exc_info:
            share_service.create('owner-1', **kwargs)
        assert exc_info.value.code == code

    def test_duplicate_user_share_rejected(self, share_service):
        share_service.create('owner-1', RESOURCE_ID, 'file', shared_with_user_id='friend-1')

        with pytest.raises(ShareError) as exc_info:
            share_service.create('owner-1', RESOURCE_ID, 'file', shared_with_user_id='friend-1')
        assert exc_info.value.code == 'DUPLICATE_SHARE'

    def test_get_checks_owner(self, share_service):
        share = share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True)

        with pytest.raises(ShareError) as exc_info:
            share_service.get(share.id, 'intruder', verb='update')
        assert exc_info.value.status_code == 403
        assert exc_info.value.message == "You don't have permission to update this share."

        with pytest.raises(ShareError) as exc_info:
            share_service.get('missing', 'owner-1')
        assert exc_info.value.status_code == 404

    def test_expired_public_share_is_deactivated(self, share_service):
        share = share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True,
                                     expires_at=datetime.now(timezone.utc) - timedelta(hours=1))

        with pytest.raises(ShareError) as exc_info:
            share_service.get_public(share.share_token)

        assert exc_info.value.status_code == 410
        assert share.is_active is False
        with pytest.raises(ShareError) as exc_info:
            share_service.get_public(share.share_token)
        assert exc_info.value.status_code == 404

    def test_public_access_counts_downloads_until_limit(self, share_service):
        share = share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True, max_downloads=2)

        share_service.access_public(share.share_token)
        accessed = share_service.access_public(share.share_token)
        assert accessed.current_downloads == 2

        with pytest.raises(ShareError) as exc_info:
            share_service.access_public(share.share_token)
        assert exc_info.value.status_code == 403

    def test_public_access_with_password(self, share_service, audit_client):
        share = share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True, password='pw')

        with pytest.raises(ShareError) as exc_info:
            share_service.access_public(share.share_token, 'nope')
        assert exc_info.value.status_code == 401
        assert audit_client.log_action.call_args[0][4] is False
        assert share.current_downloads == 0

        assert share_service.access_public(share.share_token, 'pw').current_downloads == 1

    def test_shared_with_excludes_inactive(self, share_service):
        active = share_service.create('owner-1', RESOURCE_ID, 'file', shared_with_user_id='friend-1')
        paused = share_service.create('owner-1', 'other-resource', 'file', shared_with_user_id='friend-1')
        share_service.update(paused.id, 'owner-1', {'is_active': False})

        assert [s.id for s in share_service.list_shared_with('friend-1')] == [active.id]

    def test_list_for_resource_scoped_to_owner(self, share_service):
        share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True)
        share_service.create('owner-2', RESOURCE_ID, 'file', is_public_share=True)

        assert len(share_service.list_for_resource(RESOURCE_ID, 'FILE', 'owner-1')) == 1

    def test_update_fields_and_clear_password(self, share_service):
        share = share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True, password='pw')

        updated = share_service.update(share.id, 'owner-1', {
            'permission': 'admin',
            'password': '',
            'max_downloads': 5,
            'notes': 'for the team',
            'expires_at': '2031-06-01T00:00:00Z',
        })

        assert updated.permission == 'admin'
        assert updated.has_password is False
        assert updated.max_downloads == 5
        assert updated.notes == 'for the team'
        assert updated.expires_at.year == 2031
        assert updated.updated_at is not None

    def test_update_rejects_bad_permission(self, share_service):
        share = share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True)

        with pytest.raises(ShareError):
            share_service.update(share.id, 'owner-1', {'permission': 'root'})

    def test_delete_is_soft(self, share_service):
        share = share_service.create('owner-1', RESOURCE_ID, 'file', is_public_share=True)

        share_service.delete(share.id, 'owner-1')

        assert share.is_deleted is True
        assert share.is_active is False
        assert share_service.list_owned('owner-1') == []
        with pytest.raises(ShareError):
            share_service.get_public(share.share_token)


class TestShareRoutes:
    def test_create_and_list(self, client, auth_headers, other_auth_headers, other_user):
        response = client.post('/api/shares', json={
            'resourceId': RESOURCE_ID,
            'resourceType': 'file',
            'sharedWithUserId': other_user.id,
            'permission': 'view',
        }, headers=auth_headers)

        assert response.status_code == 201
        share = response.get_json()
        assert share['hasPassword'] is False

        mine = client.get('/api/shares/my-shares', headers=auth_headers).get_json()
        theirs = client.get('/api/shares/shared-with-me', headers=other_auth_headers).get_json()
        assert [s['id'] for s in mine] == [share['id']]
        assert [s['id'] for s in theirs] == [share['id']]

    def test_create_requires_auth(self, client):
        assert client.post('/api/shares', json={}).status_code == 401

    def test_create_validation_error(self, client, auth_headers):
        response = client.post('/api/shares', json={'resourceId': RESOURCE_ID, 'resourceType': 'file'},
                               headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['error'] == "SharedWithUserId is required for non-public shares."

    def test_public_link_flow(self, client, auth_headers):
        share = client.post('/api/shares', json={
            'resourceId': RESOURCE_ID,
            'resourceType': 'file',
            'isPublicShare': True,
            'password': 'open sesame',
        }, headers=auth_headers).get_json()
        token = share['shareToken']

        info = client.get(f'/api/shares/public/{token}')
        assert info.status_code == 200
        assert info.get_json()['hasPassword'] is True
        assert 'passwordHash' not in info.get_json()

        denied = client.post(f'/api/shares/public/{token}/access', json={'password': 'wrong'})
        assert denied.status_code == 401

        granted = client.post(f'/api/shares/public/{token}/access', json={'password': 'open sesame'})
        assert granted.status_code == 200
        assert granted.get_json()['currentDownloads'] == 1

    def test_unknown_public_token(self, client):
        assert client.get('/api/shares/public/does-not-exist').status_code == 404

    def test_resource_route_requires_type(self, client, auth_headers):
        assert client.get(f'/api/shares/resource/{RESOURCE_ID}', headers=auth_headers).status_code == 400

    def test_update_and_delete_by_owner_only(self, client, auth_headers, other_auth_headers):
        share = client.post('/api/shares', json={
            'resourceId': RESOURCE_ID, 'resourceType': 'folder', 'isPublicShare': True
        }, headers=auth_headers).get_json()

        forbidden = client.put(f"/api/shares/{share['id']}", json={'notes': 'hi'}, headers=other_auth_headers)
        assert forbidden.status_code == 403

        updated = client.put(f"/api/shares/{share['id']}", json={'isActive': False}, headers=auth_headers)
        assert updated.get_json()['isActive'] is False

        assert client.delete(f"/api/shares/{share['id']}", headers=other_auth_headers).status_code == 403
        assert client.delete(f"/api/shares/{share['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/shares/{share['id']}", headers=auth_headers).status_code == 404

    def test_create_rejects_non_integer_max_downloads(self, client, auth_headers):
        response = client.post('/api/shares', json={
            'resourceId': RESOURCE_ID, 'resourceType': 'file', 'isPublicShare': True, 'maxDownloads': '5'
        }, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_MAX_DOWNLOADS'

    @pytest.mark.parametrize('body, code', [
        ({'maxDownloads': '5'}, 'INVALID_MAX_DOWNLOADS'),
        ({'maxDownloads': True}, 'INVALID_MAX_DOWNLOADS'),
        ({'permission': 3}, 'INVALID_PERMISSION'),
        ({'password': 1234}, 'INVALID_PASSWORD'),
        ({'notes': ['a']}, 'INVALID_NOTES'),
    ])
    def test_update_rejects_wrong_field_types(self, client, auth_headers, body, code):
        share = client.post('/api/shares', json={
            'resourceId': RESOURCE_ID, 'resourceType': 'file', 'isPublicShare': True
        }, headers=auth_headers).get_json()

        response = client.put(f"/api/shares/{share['id']}", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == code

    @pytest.mark.parametrize('body, code', [
        ({'resourceType': 7}, 'INVALID_RESOURCE_TYPE'),
        ({'resourceType': 'file', 'permission': 2}, 'INVALID_PERMISSION'),
    ])
    def test_create_rejects_wrong_field_types(self, client, auth_headers, body, code):
        response = client.post('/api/shares', json=dict(body, resourceId=RESOURCE_ID, isPublicShare=True),
                               headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == code
