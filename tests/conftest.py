import pytest
from httpx import AsyncClient, ASGITransport
import os
from datetime import datetime, timedelta, timezone

# Set up test environment variables before anything else
os.environ["ENV"] = "testing"
os.environ["SECRET_KEY"] = "test_secret_key_12345"
os.environ["LOG_TO_FILE"] = "false"

from config import config
config.ENV = "testing"

from main import app
from models.user import UserModel
from routes.auth import reset_sessions
from routes.deps import create_access_token
from services.identity import registry
from store import WorkspaceStore, store


class FakeClock:
    """Deterministic clock: starts at a fixed instant, advances one second per call."""

    def __init__(self, start=None, step=timedelta(seconds=1)):
        self.current = start or datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
        self.step = step

    def __call__(self):
        value = self.current
        self.current = value + self.step
        return value


@pytest.fixture(scope="function", autouse=True)
def clean_state():
    """Empty store, registry and pending sign-ins before each test to ensure isolation."""
    store.reset()
    registry.reset()
    reset_sessions()
    yield
    store.reset()
    registry.reset()


@pytest.fixture(scope="function")
def ws():
    """A private store with a deterministic clock, for engine-level tests."""
    return WorkspaceStore(clock=FakeClock())


@pytest.fixture(scope="function")
async def async_client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as test_client:
        yield test_client


@pytest.fixture(scope="function")
def alice():
    return registry.register(UserModel(id="alice_id", name="Alice Johnson", phone_number="+1 555-0100"))


@pytest.fixture(scope="function")
def bob():
    return registry.register(UserModel(id="bob_id", name="Bob Garcia", phone_number="+1 555-0101"))


@pytest.fixture(scope="function")
def carol():
    return registry.register(UserModel(id="carol_id", name="Carol Chen", phone_number="+1 555-0102"))


def _headers_for(user: UserModel) -> dict:
    token = create_access_token(data={"sub": user.id}, expires_delta=timedelta(minutes=60))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(scope="function")
def auth_headers(alice):
    return _headers_for(alice)


@pytest.fixture(scope="function")
def bob_headers(bob):
    return _headers_for(bob)


@pytest.fixture(scope="function")
def carol_headers(carol):
    return _headers_for(carol)
