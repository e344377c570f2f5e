"""Shared pytest fixtures for mirror tests."""

import pytest
from mirror import (
    AuthManager,
    EventDispatcher,
    Impersonator,
    ImpersonationSession,
    ImpersonationStarted,
    ImpersonationStopped,
    MappingSessionStore,
    MemoryPrincipalDirectory,
    MirrorConfig,
    SessionGuard,
)

from tests.helpers import FakeClock, PlainUser, User

SECRET = "test-app-secret"
REQUEST_URL = "https://app.test/admin/users"


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def users():
    return {
        1: User(1, "admin@example.com"),
        2: User(2, "customer@example.com"),
        3: PlainUser(3, "plain@example.com"),
        4: User(4, "other@example.com"),
    }


@pytest.fixture
def directory(users):
    return MemoryPrincipalDirectory(users.values())


@pytest.fixture
def raw_session():
    """The underlying session mapping, for direct inspection and tampering."""
    return {}


@pytest.fixture
def store(raw_session):
    return MappingSessionStore(raw_session)


@pytest.fixture
def state(store, clock):
    return ImpersonationSession(store, SECRET, clock=clock)


@pytest.fixture
def auth(store, directory):
    return AuthManager(
        {
            "web": SessionGuard("web", store, directory),
            "admin": SessionGuard("admin", store, directory),
        },
        default="web",
    )


@pytest.fixture
def recorded():
    """Events dispatched during the test, in order."""
    return []


@pytest.fixture
def events(recorded):
    dispatcher = EventDispatcher()
    dispatcher.listen(ImpersonationStarted, recorded.append)
    dispatcher.listen(ImpersonationStopped, recorded.append)
    return dispatcher


@pytest.fixture
def make_impersonator(auth, state, directory, events):
    """Factory for Impersonators sharing this test's session, with custom config."""

    def _make(**config):
        return Impersonator(
            auth,
            state,
            MirrorConfig(**config),
            directory,
            events=events,
            request_url=REQUEST_URL,
        )

    return _make


@pytest.fixture
def impersonator(make_impersonator):
    return make_impersonator()


@pytest.fixture
def login(auth, users):
    """Log a user in on a guard: login(1) or login(1, "admin")."""

    def _login(user_id, guard="web"):
        auth.guard(guard).login(users[user_id])
        return users[user_id]

    return _login
