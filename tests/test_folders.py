"""
Tests for folder hierarchy management
"""
import pytest
from unittest.mock import MagicMock

from services.folder_service import FolderService, FolderError


@pytest.fixture
def audit_client():
    return MagicMock()


@pytest.fixture
def folder_service(app, audit_client):
    return FolderService(audit_client)


class TestFolderService:
    def test_create_root_folder(self, folder_service, audit_client, test_user):
        folder = folder_service.create('  Documents ', test_user.id, description='<i>work</i>')

        assert folder.name == 'Documents'
        assert folder.parent_folder_id is None
        assert folder.description == 'work'
        args = audit_client.log_action.call_args[0]
        assert args[1] == 'FolderCreate'
        assert args[2] == 'Folder'

    def test_create_requires_name(self, folder_service, test_user):
        with pytest.raises(FolderError, match='cannot be null or empty'):
            folder_service.create('   ', test_user.id)

    def test_duplicate_sibling_name_is_case_insensitive(self, folder_service, test_user):
        folder_service.create('Photos', test_user.id)

        with pytest.raises(FolderError) as exc_info:
            folder_service.create('photos', test_user.id)
        assert exc_info.value.code == 'DUPLICATE_NAME'

    def test_same_name_allowed_in_different_parents(self, folder_service, test_user):
        parent = folder_service.create('Parent', test_user.id)
        folder_service.create('Photos', test_user.id)

        child = folder_service.create('Photos', test_user.id, parent_folder_id=parent.id)

        assert child.parent_folder_id == parent.id

    def test_parent_must_belong_to_owner(self, folder_service, test_user, other_user):
        foreign = folder_service.create('Theirs', other_user.id)

        with pytest.raises(FolderError) as exc_info:
            folder_service.create('Mine', test_user.id, parent_folder_id=foreign.id)
        assert exc_info.value.code == 'PARENT_NOT_FOUND'

    def test_get_hides_other_owners(self, folder_service, test_user, other_user):
        folder = folder_service.create('Private', test_user.id)

        with pytest.raises(FolderError) as exc_info:
            folder_service.get(folder.id, other_user.id)
        assert exc_info.value.status_code == 404

    def test_list_sorted_by_name(self, folder_service, test_user):
        for name in ('zeta', 'Alpha', 'mid'):
            folder_service.create(name, test_user.id)

        result = folder_service.list(test_user.id)

        assert [f.name for f in result.items] == ['Alpha', 'mid', 'zeta']

    def test_path_returns_breadcrumb(self, folder_service, test_user):
        a = folder_service.create('a', test_user.id)
        b = folder_service.create('b', test_user.id, parent_folder_id=a.id)
        c = folder_service.create('c', test_user.id, parent_folder_id=b.id)

        assert [f.name for f in folder_service.path(c.id, test_user.id)] == ['a', 'b', 'c']
        assert folder_service.path('missing', test_user.id) == []

    def test_move_into_itself_rejected(self, folder_service, test_user):
        folder = folder_service.create('loop', test_user.id)

        with pytest.raises(FolderError, match='into itself'):
            folder_service.update(folder.id, test_user.id, parent_folder_id=folder.id)

    def test_move_into_descendant_rejected(self, folder_service, test_user):
        a = folder_service.create('a', test_user.id)
        b = folder_service.create('b', test_user.id, parent_folder_id=a.id)
        c = folder_service.create('c', test_user.id, parent_folder_id=b.id)

        with pytest.raises(FolderError, match='descendant'):
            folder_service.update(a.id, test_user.id, parent_folder_id=c.id)

    def test_move_to_root_with_none(self, folder_service, test_user):
        a = folder_service.create('a', test_user.id)
        b = folder_service.create('b', test_user.id, parent_folder_id=a.id)

        moved = folder_service.update(b.id, test_user.id, parent_folder_id=None)

        assert moved.parent_folder_id is None

    def test_update_without_parent_keeps_location(self, folder_service, test_user):
        a = folder_service.create('a', test_user.id)
        b = folder_service.create('b', test_user.id, parent_folder_id=a.id)

        updated = folder_service.update(b.id, test_user.id, name='renamed', color='#ff0000')

        assert updated.parent_folder_id == a.id
        assert updated.name == 'renamed'
        assert updated.color == '#ff0000'
        assert updated.updated_at is not None

    def test_rename_to_sibling_name_rejected(self, folder_service, test_user):
        folder_service.create('taken', test_user.id)
        other = folder_service.create('free', test_user.id)

        with pytest.raises(FolderError) as exc_info:
            folder_service.update(other.id, test_user.id, name='TAKEN')
        assert exc_info.value.code == 'DUPLICATE_NAME'

    def test_delete_with_subfolders_rejected(self, folder_service, test_user):
        parent = folder_service.create('parent', test_user.id)
        folder_service.create('child', test_user.id, parent_folder_id=parent.id)

        with pytest.raises(FolderError) as exc_info:
            folder_service.delete(parent.id, test_user.id)
        assert exc_info.value.code == 'FOLDER_NOT_EMPTY'

    def test_delete_is_soft(self, folder_service, test_user):
        folder = folder_service.create('gone', test_user.id)

        folder_service.delete(folder.id, test_user.id)

        assert folder.is_deleted is True
        assert folder.deleted_at is not None
        with pytest.raises(FolderError):
            folder_service.get(folder.id, test_user.id)
        # Name is free again once the folder is deleted
        folder_service.create('gone', test_user.id)


class TestFolderRoutes:
    def test_create_and_get(self, client, auth_headers):
        response = client.post('/api/folders', json={'name': 'Docs', 'color': 'blue'}, headers=auth_headers)

        assert response.status_code == 200
        folder = response.get_json()
        assert folder['name'] == 'Docs'

        response = client.get(f"/api/folders/{folder['id']}", headers=auth_headers)
        assert response.get_json()['color'] == 'blue'

    def test_create_requires_json(self, client, auth_headers):
        response = client.post('/api/folders', data='nope', headers=auth_headers)
        assert response.status_code == 400

    def test_requires_auth(self, client):
        assert client.get('/api/folders').status_code == 401

    def test_list_children(self, client, auth_headers):
        parent = client.post('/api/folders', json={'name': 'Parent'}, headers=auth_headers).get_json()
        client.post('/api/folders', json={'name': 'Child', 'parentFolderId': parent['id']}, headers=auth_headers)

        root = client.get('/api/folders', headers=auth_headers).get_json()
        children = client.get(f"/api/folders?parentFolderId={parent['id']}", headers=auth_headers).get_json()

        assert [f['name'] for f in root['data']] == ['Parent']
        assert [f['name'] for f in children['data']] == ['Child']
        assert children['pagination']['totalCount'] == 1

    def test_update_null_parent_moves_to_root(self, client, auth_headers):
        parent = client.post('/api/folders', json={'name': 'Parent'}, headers=auth_headers).get_json()
        child = client.post('/api/folders', json={'name': 'Child', 'parentFolderId': parent['id']},
                            headers=auth_headers).get_json()

        renamed = client.put(f"/api/folders/{child['id']}", json={'name': 'Kid'}, headers=auth_headers)
        assert renamed.get_json()['parentFolderId'] == parent['id']

        moved = client.put(f"/api/folders/{child['id']}", json={'parentFolderId': None}, headers=auth_headers)
        assert moved.status_code == 200
        assert moved.get_json()['parentFolderId'] is None

    def test_path_endpoint(self, client, auth_headers):
        parent = client.post('/api/folders', json={'name': 'A'}, headers=auth_headers).get_json()
        child = client.post('/api/folders', json={'name': 'B', 'parentFolderId': parent['id']},
                            headers=auth_headers).get_json()

        response = client.get(f"/api/folders/{child['id']}/path", headers=auth_headers)

        assert [f['name'] for f in response.get_json()] == ['A', 'B']

    def test_delete(self, client, auth_headers, other_auth_headers):
        folder = client.post('/api/folders', json={'name': 'Temp'}, headers=auth_headers).get_json()

        assert client.delete(f"/api/folders/{folder['id']}", headers=other_auth_headers).status_code == 404
        assert client.delete(f"/api/folders/{folder['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/api/folders/{folder['id']}", headers=auth_headers).status_code == 404

    def test_create_rejects_non_string_name(self, client, auth_headers):
        response = client.post('/api/folders', json={'name': 5}, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_FIELD'

    @pytest.mark.parametrize('body', [{'color': []}, {'parentFolderId': 12}, {'description': {}}])
    def test_update_rejects_wrong_field_types(self, client, auth_headers, body):
        folder = client.post('/api/folders', json={'name': 'Docs'}, headers=auth_headers).get_json()

        response = client.put(f"/api/folders/{folder['id']}", json=body, headers=auth_headers)

        assert response.status_code == 400
        assert response.get_json()['code'] == 'INVALID_FIELD'
