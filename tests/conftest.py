"""
Shared test fixtures.

Routes run against an in-memory mongomock database injected through FastAPI
dependency overrides; content analysis is disabled.
"""

import mongomock
import pytest
from fastapi.testclient import TestClient

import main
from analysis import DisabledAnalyzer
from store import Store


@pytest.fixture
def db():
    return mongomock.MongoClient()["nest_test"]


@pytest.fixture
def store(db):
    s = Store(db)
    s.ensure_indexes()
    return s


@pytest.fixture
def client(store):
    main.app.dependency_overrides[main.get_store] = lambda: store
    main.app.dependency_overrides[main.get_analyzer] = lambda: DisabledAnalyzer()
    yield TestClient(main.app)
    main.app.dependency_overrides.clear()


@pytest.fixture
def make_user(client):
    """Create a user through the API and return its id."""
    def _make(name: str = "Priya", **extra) -> str:
        response = client.post("/api/users", json={"name": name, **extra})
        assert response.status_code == 201, response.text
        return response.json()["data"]["id"]
    return _make


@pytest.fixture
def make_post(client, make_user):
    """Create a post through the API and return (post_id, author_id)."""
    def _make(content: str = "Looking for teammates for a hackathon.", author_id: str = None):
        author_id = author_id or make_user("Author")
        response = client.post("/api/posts", json={"content": content, "userId": author_id})
        assert response.status_code == 201, response.text
        return response.json()["data"]["id"], author_id
    return _make
