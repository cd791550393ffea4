"""
Pytest fixtures for inventory tracker backend tests.

Provides test database setup, user/item factories, recording notification
channels, and the test client.
"""

import pytest

from inventory_tracker import create_app
from inventory_tracker.extensions import db
from inventory_tracker.permissions import Role
from inventory_tracker.services.auth_service import CredentialStore
from inventory_tracker.services.item_service import ItemStore
from inventory_tracker.services.notification_service import NotificationGate, NotificationPrefs
from inventory_tracker.services.session_service import SessionContext
from inventory_tracker.validation import NotificationDeliveryError


TEST_PASSWORD = "Password123!"


class RecordingChannel:
    """Notification channel that keeps every message it is asked to send."""

    def __init__(self):
        self.sent = []

    def send(self, recipient, message):
        self.sent.append((recipient, message))


class FailingChannel:
    """Notification channel whose transport is down."""

    def __init__(self):
        self.attempts = 0

    def send(self, recipient, message):
        self.attempts += 1
        raise NotificationDeliveryError("SMS gateway unreachable")


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
        'BCRYPT_ROUNDS': 4,
        'NOTIFICATION_CHANNEL': 'log',
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def credential_store(db_session):
    return CredentialStore(bcrypt_rounds=4)


@pytest.fixture(scope='function')
def item_store(db_session):
    return ItemStore()


@pytest.fixture(scope='function')
def make_user(credential_store):
    """Factory: register a user with the given role and return the user dict."""
    def _make(username, role=Role.USER, password=TEST_PASSWORD):
        return credential_store.register(username, password, role=role)
    return _make


@pytest.fixture(scope='function')
def recording_channel():
    return RecordingChannel()


@pytest.fixture(scope='function')
def failing_channel():
    return FailingChannel()


@pytest.fixture(scope='function')
def gate(recording_channel):
    return NotificationGate(recording_channel)


@pytest.fixture(scope='function')
def opted_in():
    return NotificationPrefs(receive_notifications=True, recipient="+15550100")


@pytest.fixture(scope='function')
def admin_context():
    return SessionContext.for_role(Role.ADMIN, user_id=None, username="admin")


@pytest.fixture(scope='function')
def user_context():
    return SessionContext.for_role(Role.USER, user_id=None, username="viewer")


@pytest.fixture(scope='function')
def superuser_context():
    return SessionContext.for_role(Role.SUPERUSER, user_id=None, username="super")


def get_auth_token(client, username: str, password: str = TEST_PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/login', json={
        'email': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json.get('token')
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def admin_headers(client, make_user):
    make_user("admin@example.com", role=Role.ADMIN)
    return auth_headers(get_auth_token(client, "admin@example.com"))


@pytest.fixture(scope='function')
def user_headers(client, make_user):
    make_user("viewer@example.com", role=Role.USER)
    return auth_headers(get_auth_token(client, "viewer@example.com"))


@pytest.fixture(scope='function')
def superuser_headers(client, make_user):
    make_user("super@example.com", role=Role.SUPERUSER)
    return auth_headers(get_auth_token(client, "super@example.com"))
