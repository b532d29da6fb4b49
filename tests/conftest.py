"""
Pytest configuration and fixtures for backend tests
"""
import pytest
import tempfile
import os
import shutil

from app import create_app
from extensions import db
from services.auth_service import AuthService

TEST_JWT_SECRET = 'test-secret-key-that-is-long-enough-for-hs256'


def build_test_app(services=None, **overrides):
    """Create an app on a throwaway SQLite file and storage directory."""
    db_fd, db_path = tempfile.mkstemp(suffix='.db')
    storage_root = tempfile.mkdtemp()

    config = {
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': f'sqlite:///{db_path}',
        'JWT_SECRET_KEY': TEST_JWT_SECRET,
        'STORAGE_ROOT': storage_root,
        'STORAGE_ALLOWED_EXTENSIONS': [],
        'DEFAULT_QUOTA_BYTES': 1024 * 1024,
        'SERVICE_RETRY_TOTAL': 0,
        'SERVICE_TIMEOUT_SECONDS': 1,
    }
    config.update(overrides)

    app = create_app(services or ['all'], config_overrides=config)
    return app, db_fd, db_path, storage_root


@pytest.fixture
def app():
    """Create application hosting every backend service"""
    app, db_fd, db_path, storage_root = build_test_app()

    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()

    # Cleanup
    os.close(db_fd)
    os.unlink(db_path)
    shutil.rmtree(storage_root, ignore_errors=True)


@pytest.fixture
def client(app):
    """Create test client"""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Database session bound to the test app"""
    yield db.session
    db.session.rollback()


@pytest.fixture
def auth_service(app):
    return AuthService()


@pytest.fixture
def test_user(auth_service):
    """Register the primary test user"""
    result = auth_service.register('test@example.com', 'test_password', 'Test User')
    return result.user


@pytest.fixture
def other_user(auth_service):
    """Register a second user for ownership checks"""
    result = auth_service.register('other@example.com', 'other_password', 'Other User')
    return result.user


def login_headers(client, email, password):
    response = client.post('/api/auth/login', json={
        'email': email,
        'password': password
    })

    assert response.status_code == 200
    token = response.get_json()['access_token']

    return {'Authorization': f'Bearer {token}'}


@pytest.fixture
def auth_headers(client, test_user):
    """Get authentication headers for test user"""
    return login_headers(client, 'test@example.com', 'test_password')


@pytest.fixture
def other_auth_headers(client, other_user):
    """Get authentication headers for the second user"""
    return login_headers(client, 'other@example.com', 'other_password')


@pytest.fixture
def app_factory():
    """Build apps hosting a chosen set of services; files are removed afterwards."""
    created = []

    def factory(services, **overrides):
        app, db_fd, db_path, storage_root = build_test_app(services, **overrides)
        created.append((db_fd, db_path, storage_root))
        return app

    yield factory

    for db_fd, db_path, storage_root in created:
        os.close(db_fd)
        os.unlink(db_path)
        shutil.rmtree(storage_root, ignore_errors=True)
