from __future__ import annotations

import asyncio
import importlib
from types import SimpleNamespace
from uuid import uuid4

import pytest

from careline.features.users.cache import UserCache
from careline.features.users.errors import UserNotFoundError, UserValidationError
from careline.features.users.types import CachedUser

users_service = importlib.import_module("careline.features.users.service")


class _DummySession:
    pass


def _row(user_id=None, *, email="rn@example.org", name="Charge Nurse"):
    return SimpleNamespace(id=user_id or uuid4(), email=email, name=name, avatar_url=None)


def _patch_repo(monkeypatch, rows):
    calls: list[list] = []

    async def _fake_get_users_by_ids(_session, user_ids):
        calls.append(list(user_ids))
        wanted = {str(item) for item in user_ids}
        return [row for row in rows if str(row.id) in wanted]

    monkeypatch.setattr(users_service.repo, "get_users_by_ids", _fake_get_users_by_ids)
    return calls


def test_resolve_users_fetches_only_missing_ids_and_caches_them(monkeypatch):
    cached = CachedUser(id=str(uuid4()), email="cached@example.org", name="Cached")
    fresh_row = _row()
    calls = _patch_repo(monkeypatch, [fresh_row])
    cache = UserCache()
    cache.put(cached)

    resolved = asyncio.run(
        users_service.resolve_users(
            _DummySession(),
            [cached.id, fresh_row.id],
            cache=cache,
        )
    )

    assert list(resolved) == [cached.id, str(fresh_row.id)]
    assert resolved[cached.id] is cached
    assert resolved[str(fresh_row.id)].email == "rn@example.org"
    assert calls == [[fresh_row.id]]
    assert cache.get(fresh_row.id) == resolved[str(fresh_row.id)]


def test_resolve_users_skips_database_when_everything_is_cached(monkeypatch):
    calls = _patch_repo(monkeypatch, [])
    cache = UserCache()
    users = [CachedUser(id=str(uuid4()), email=f"{index}@example.org") for index in range(2)]
    cache.put_many(users)

    resolved = asyncio.run(
        users_service.resolve_users(_DummySession(), [user.id for user in users], cache=cache)
    )

    assert calls == []
    assert set(resolved) == {user.id for user in users}


def test_resolve_users_omits_unknown_ids_and_collapses_duplicates(monkeypatch):
    known = _row()
    unknown_id = uuid4()
    calls = _patch_repo(monkeypatch, [known])
    cache = UserCache()

    resolved = asyncio.run(
        users_service.resolve_users(
            _DummySession(),
            [known.id, str(known.id), unknown_id],
            cache=cache,
        )
    )

    assert list(resolved) == [str(known.id)]
    assert calls == [[known.id, unknown_id]]
    assert cache.get(unknown_id) is None


def test_resolve_users_with_no_ids_returns_empty(monkeypatch):
    calls = _patch_repo(monkeypatch, [])

    resolved = asyncio.run(users_service.resolve_users(_DummySession(), [], cache=UserCache()))

    assert resolved == {}
    assert calls == []


def test_get_user_uses_cache_then_database(monkeypatch):
    row = _row(name="Hospice Aide")
    calls = _patch_repo(monkeypatch, [row])
    cache = UserCache()

    first = asyncio.run(users_service.get_user(_DummySession(), row.id, cache=cache))
    second = asyncio.run(users_service.get_user(_DummySession(), str(row.id), cache=cache))

    assert first.name == "Hospice Aide"
    assert second is first
    assert len(calls) == 1


def test_get_user_raises_when_row_missing(monkeypatch):
    _patch_repo(monkeypatch, [])

    with pytest.raises(UserNotFoundError):
        asyncio.run(users_service.get_user(_DummySession(), uuid4(), cache=UserCache()))


def test_get_user_hits_cache_for_uppercase_id(monkeypatch):
    calls = _patch_repo(monkeypatch, [])
    user_id = uuid4()
    cache = UserCache()
    cache.put(CachedUser(id=str(user_id), email="np@example.org"))

    user = asyncio.run(
        users_service.get_user(_DummySession(), str(user_id).upper(), cache=cache)
    )

    assert user.email == "np@example.org"
    assert calls == []


def test_get_user_rejects_malformed_id_before_cache_or_database(monkeypatch):
    calls = _patch_repo(monkeypatch, [])

    with pytest.raises(UserValidationError):
        asyncio.run(users_service.get_user(_DummySession(), "not-a-uuid", cache=UserCache()))

    assert calls == []


def test_resolve_users_rejects_malformed_ids(monkeypatch):
    _patch_repo(monkeypatch, [])

    with pytest.raises(UserValidationError):
        asyncio.run(users_service.resolve_users(_DummySession(), ["nope"], cache=UserCache()))
