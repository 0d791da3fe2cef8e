import os
import sys

import pytest

# backend/ holds main.py and the app package
_backend = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if _backend not in sys.path:
    sys.path.insert(0, _backend)

from fastapi.testclient import TestClient

from app.api.deps import get_completion_provider, get_db, get_prelude_emitter
from app.core.exceptions import ProviderError
from app.core.security import create_access_token
from app.db.sqlite_memory import SQLiteMemory
from app.services.prelude_emitter import PreludeEmitter
from main import app


class FakeProvider:
    """
    Scripted stand-in for CompletionProvider.

    Yields `fragments`; when `fail_after` is set, raises ProviderError after
    that many fragments have been yielded.
    """

    def __init__(self, fragments=("Day 1: ", "Colosseum", "."), fail_after=None):
        self.fragments = list(fragments)
        self.fail_after = fail_after
        self.calls = []

    async def stream(self, messages, params):
        self.calls.append({"messages": messages, "params": params})
        limit = len(self.fragments) if self.fail_after is None else self.fail_after
        for fragment in self.fragments[:limit]:
            yield fragment
        if self.fail_after is not None:
            raise ProviderError("scripted provider failure")


async def drain(channel):
    """Everything written to a closed FrameChannel, as raw chunks."""
    return [chunk async for chunk in channel.stream()]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def db(tmp_path):
    memory = SQLiteMemory(str(tmp_path / "test.sqlite3"))
    yield memory
    memory.close()


@pytest.fixture
def provider():
    return FakeProvider()


@pytest.fixture
def client(db, provider):
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_completion_provider] = lambda: provider
    app.dependency_overrides[get_prelude_emitter] = lambda: PreludeEmitter(delay=0)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_id(db):
    return db.create_user("traveler@example.com", "Traveler", "not-a-real-hash")


@pytest.fixture
def auth_headers(user_id):
    return {"Authorization": f"Bearer {create_access_token(subject=user_id)}"}


@pytest.fixture
def saved_itinerary(db, user_id):
    return db.insert_itinerary(user_id, {
        "title": "Rome Trip",
        "destination": "Rome",
        "start_date": "2025-06-01",
        "end_date": "2025-06-04",
        "budget": "moderate",
        "content": "# Rome\nDay 1: Colosseum",
    })
