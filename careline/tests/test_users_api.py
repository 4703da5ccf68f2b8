from __future__ import annotations

import importlib
from types import SimpleNamespace
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from careline.features.users.cache import UserCache
from careline.features.users.types import CachedUser
from careline.main import app

users_api = importlib.import_module("careline.features.users.api")
users_service = importlib.import_module("careline.features.users.service")

HEADERS = {"X-User-Id": str(uuid4())}


class _DummySession:
    pass


@pytest.fixture
def cache():
    return UserCache()


@pytest.fixture
def rows(monkeypatch):
    store: list[SimpleNamespace] = []

    async def _fake_get_users_by_ids(_session, user_ids):
        wanted = {str(item) for item in user_ids}
        return [row for row in store if str(row.id) in wanted]

    monkeypatch.setattr(users_service.repo, "get_users_by_ids", _fake_get_users_by_ids)
    return store


@pytest.fixture
def client(cache):
    async def _override_db():
        yield _DummySession()

    app.dependency_overrides[users_api.get_db_session] = _override_db
    app.dependency_overrides[users_api.get_user_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_users_routes_require_identity(client):
    assert client.get("/api/users/cache/stats").status_code == 401


def test_list_users_reads_through_cache(client, cache, rows):
    row = SimpleNamespace(id=uuid4(), email="sw@example.org", name="Social Worker", avatar_url=None)
    rows.append(row)
    cached = CachedUser(id=str(uuid4()), email="md@example.org", name="Medical Director")
    cache.put(cached)

    response = client.get(
        "/api/users",
        params={"ids": [cached.id, str(row.id)]},
        headers=HEADERS,
    )

    assert response.status_code == 200
    assert [item["email"] for item in response.json()] == ["md@example.org", "sw@example.org"]
    assert cache.stats().size == 2


def test_list_users_rejects_malformed_ids(client, rows):
    response = client.get("/api/users", params={"ids": ["bogus"]}, headers=HEADERS)
    assert response.status_code == 400


def test_get_user_by_id_and_missing_user(client, rows):
    row = SimpleNamespace(id=uuid4(), email="chaplain@example.org", name=None, avatar_url=None)
    rows.append(row)

    found = client.get(f"/api/users/{row.id}", headers=HEADERS)
    missing = client.get(f"/api/users/{uuid4()}", headers=HEADERS)

    assert found.status_code == 200
    assert found.json()["email"] == "chaplain@example.org"
    assert missing.status_code == 404


def test_cache_stats_and_clear(client, cache):
    cache.put_many([CachedUser(id=str(uuid4()), email=f"{index}@example.org") for index in range(3)])

    stats = client.get("/api/users/cache/stats", headers=HEADERS)
    assert stats.status_code == 200
    assert stats.json() == {"size": 3, "valid_entries": 3}

    cleared = client.delete("/api/users/cache", headers=HEADERS)
    assert cleared.status_code == 200
    assert cleared.json() == {"cleared": True}
    assert cache.stats().size == 0
