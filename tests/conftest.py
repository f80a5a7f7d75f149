from __future__ import annotations

import datetime
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Ensure repo root is on sys.path so `import knowledgeflow` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from knowledgeflow.api.dependencies import get_clock, get_store  # noqa: E402
from knowledgeflow.instructor_main import app as instructor_app  # noqa: E402
from knowledgeflow.main import app as learner_app  # noqa: E402
from knowledgeflow.repos.bounded_store import BoundedDocumentStore  # noqa: E402
from knowledgeflow.repos.document_store import InMemoryDocumentStore  # noqa: E402

T0 = datetime.datetime(2024, 3, 1, 9, 0, 0, tzinfo=datetime.UTC)


class FrozenClock:
    """Clock that only moves when a test moves it."""

    def __init__(self, start: datetime.datetime = T0) -> None:
        self._now = start

    def now(self) -> datetime.datetime:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now = self._now + datetime.timedelta(seconds=seconds)


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def store() -> BoundedDocumentStore:
    """A fresh in-memory store per test, shared by both apps."""
    return BoundedDocumentStore(InMemoryDocumentStore(), timeout_seconds=1.0)


@pytest.fixture(autouse=True)
def override_dependencies(store: BoundedDocumentStore, clock: FrozenClock):
    for app in (learner_app, instructor_app):
        app.dependency_overrides[get_store] = lambda: store
        app.dependency_overrides[get_clock] = lambda: clock
    yield
    for app in (learner_app, instructor_app):
        app.dependency_overrides.clear()


@pytest.fixture
def client() -> TestClient:
    """Learner API client."""
    return TestClient(learner_app)


@pytest.fixture
def instructor_client() -> TestClient:
    return TestClient(instructor_app)


# ---------------------------------------------------------------------------
# Seed helpers (fixtures returning callables so tests stay one-liners)
# ---------------------------------------------------------------------------


def _signup(client: TestClient, username: str, password: str):
    return client.post(
        "/signup",
        json={
            "username": username,
            "email": f"{username}@example.com",
            "password": password,
        },
    )


def _create_course(
    instructor_client: TestClient,
    *,
    creator: str = "prof",
    title: str = "Intro to Python",
    description: str = "Variables, loops and functions",
    category: str | None = "Programming",
) -> str:
    resp = instructor_client.post(
        "/courses",
        json={
            "title": title,
            "description": description,
            "category": category,
            "thumbnailUrl": "https://img.example.com/thumb.png",
            "username": creator,
            "lessons": [{"title": "Hello", "content": "print('hi')", "order": 1}],
            "quizzes": [
                {"question": "2+2?", "options": ["3", "4"], "correctOption": 1}
            ],
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["courseId"]


@pytest.fixture
def signup_user(client: TestClient):
    def _make(username: str = "alice", password: str = "pw-alice"):
        return _signup(client, username, password)

    return _make


@pytest.fixture
def make_course(instructor_client: TestClient):
    """Create a course as ``creator`` (signed up on first use)."""

    def _make(*, creator: str = "prof", **fields) -> str:
        _signup(instructor_client, creator, f"pw-{creator}")
        return _create_course(instructor_client, creator=creator, **fields)

    return _make
