"""
Shared pytest fixtures for shopsmart tests.

Everything runs against `SqlBackend` on a temporary SQLite file; the model
provider is replaced by `FakeAssistant`.
"""

from typing import AsyncIterator, List, Optional

import pytest
from fastapi.testclient import TestClient

from shopsmart.bootstrap import init_shopsmart
from shopsmart.config import Settings
from shopsmart.core.engine import RecordEngine
from shopsmart.core.record import Preferences
from shopsmart.errors import AssistantUnavailable
from shopsmart.persistence.backends import SqlBackend
from shopsmart.persistence.owner_index import OwnerIndex
from shopsmart.persistence.store import RecordStore
from shopsmart.runtime import create_app


class StepClock:
    """Deterministic clock: every call advances by `step` seconds."""

    def __init__(self, start: float = 1_700_000_000.0, step: float = 1.0):
        self.now = start
        self.step = step

    def __call__(self) -> float:
        self.now += self.step
        return self.now


class FakeAssistant:
    """Replays canned chunks and records what it was asked."""

    def __init__(self, chunks: Optional[List[str]] = None, fail_after: Optional[int] = None):
        self.chunks = chunks if chunks is not None else ["Granny Smith", " apples"]
        self.fail_after = fail_after
        self.calls: List[tuple] = []

    async def stream(self, content: str, preferences: Preferences) -> AsyncIterator[str]:
        self.calls.append((content, preferences))
        for i, chunk in enumerate(self.chunks):
            if self.fail_after is not None and i >= self.fail_after:
                raise AssistantUnavailable("provider went away")
            yield chunk
        if self.fail_after is not None and self.fail_after >= len(self.chunks):
            raise AssistantUnavailable("provider went away")


@pytest.fixture
def db_url(tmp_path):
    """URL of a temporary SQLite database."""
    return f"sqlite+aiosqlite:///{tmp_path / 'shopsmart.db'}"


@pytest.fixture
async def backend(db_url):
    b = SqlBackend.connect(db_url)
    await b.create_all()
    yield b
    await b.close()


@pytest.fixture
def store(backend):
    return RecordStore(backend)


@pytest.fixture
def index(backend):
    return OwnerIndex(backend)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def engine(store, index, clock):
    return RecordEngine(store, index, clock=clock)


@pytest.fixture
async def services(backend):
    return await init_shopsmart(backend, max_requests=3)


@pytest.fixture
def settings(db_url):
    return Settings(database_url=db_url, auth_secret="test-secret", rate_limit_max_requests=3)


@pytest.fixture
def assistant():
    return FakeAssistant()


@pytest.fixture
def client(settings, assistant):
    """TestClient over a fresh app; the app opens its own backend."""
    app = create_app(settings, assistant=assistant)
    with TestClient(app) as c:
        yield c
