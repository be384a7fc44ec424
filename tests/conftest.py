"""Shared pytest fixtures for the credential service tests."""
import pytest

from api import create_app
from models.credential_store import CredentialStore
from models.db_storage import DBStorage
from services.accounts import AccountLifecycleController
from services.refresh_tokens import RefreshRotationEngine
from services.settings import AuthSettings
from utils.security import TokenMinter

TEST_SECRET = "test-jwt-secret-for-pytest-32chars!"


# =============================================================================
# Service-level fixtures (no Flask)
# =============================================================================

@pytest.fixture
def settings():
    return AuthSettings(
        jwt_secret=TEST_SECRET,
        jwt_algorithm="HS256",
        jwt_token_expires=15,
        refresh_token_expires=60,
        registration_auto_active=False,
        default_role="user",
    )


@pytest.fixture
def storage():
    """Fresh in-memory database per test."""
    db = DBStorage("sqlite://")
    db.reload()
    yield db
    db.dispose()


@pytest.fixture
def store(storage):
    return CredentialStore(storage)


@pytest.fixture
def minter(settings):
    return TokenMinter(settings)


@pytest.fixture
def refresh_engine(store, settings):
    return RefreshRotationEngine(store, settings)


@pytest.fixture
def accounts(store, settings, minter, refresh_engine):
    return AccountLifecycleController(store, settings, minter, refresh_engine)


@pytest.fixture
def active_user(accounts, store):
    """A registered and activated user with password 'pw1'."""
    user = accounts.register("alice", "pw1", email="alice@example.com")
    accounts.activate(user.secret_token)
    return store.find_user_by_username("alice")


# =============================================================================
# HTTP fixtures
# =============================================================================

@pytest.fixture
def app():
    app = create_app("testing")
    yield app
    app.extensions["storage"].dispose()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def app_store(app):
    """Credential store bound to the app's database."""
    return app.extensions["accounts"].store
