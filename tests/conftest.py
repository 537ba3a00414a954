from datetime import timedelta

import pytest

from api import build_session_manager, create_app
from api.config import TestingConfig
from models.db_storage import DBStorage
from models.session_store import MemorySessionStore
from services.credentials import utc_now

PASSWORD = "correct horse battery"


class FakeClock:
    """Manually advanced UTC clock; starts in the past so issued tokens are never 'not yet valid'."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


def testing_config():
    return {key: getattr(TestingConfig, key) for key in dir(TestingConfig) if key.isupper()}


@pytest.fixture
def config():
    return testing_config()


@pytest.fixture
def clock():
    return FakeClock(utc_now() - timedelta(hours=1))


@pytest.fixture
def memory_store():
    return MemorySessionStore()


@pytest.fixture
def manager(config, memory_store):
    return build_session_manager(config, memory_store)


@pytest.fixture
def make_manager(config, memory_store):
    def _make(clock, store=None, **overrides):
        return build_session_manager(dict(config, **overrides), store or memory_store, clock)
    return _make


@pytest.fixture
def db_storage():
    storage = DBStorage("sqlite://")
    storage.reload()
    yield storage
    storage.close()


@pytest.fixture
def app():
    app = create_app("testing")
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


def register(client, user_name="alice", email="alice@example.com", password=PASSWORD):
    return client.post(
        "/api/v1/auth/register",
        json={"user_name": user_name, "email": email, "password": password},
    )


def login(client, email="alice@example.com", password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})
