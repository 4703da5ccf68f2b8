"""Process-local TTL cache for user profile rows.

Entries are never evicted on a timer. Staleness is checked when an entry is
read through ``get``, and an entry seen expired there is dropped. The
optional ``purge_expired`` is the only bulk removal besides ``clear``.
"""
from __future__ import annotations

import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from threading import Lock
from uuid import UUID

from .types import CachedUser

DEFAULT_TTL_SECONDS = 5 * 60


@dataclass(frozen=True)
class CacheEntry:
    user: CachedUser
    timestamp: float


@dataclass(frozen=True)
class CacheStats:
    size: int
    valid_entries: int


def _key(user_id: UUID | str) -> str:
    return str(user_id)


class UserCache:
    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive.")
        self._ttl = float(ttl_seconds)
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = Lock()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def _is_fresh(self, entry: CacheEntry, now: float) -> bool:
        return now - entry.timestamp <= self._ttl

    def get(self, user_id: UUID | str) -> CachedUser | None:
        key = _key(user_id)
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if not self._is_fresh(entry, self._clock()):
                del self._entries[key]
                return None
            return entry.user

    def put(self, user: CachedUser) -> None:
        with self._lock:
            self._entries[_key(user.id)] = CacheEntry(user=user, timestamp=self._clock())

    def put_many(self, users: Iterable[CachedUser]) -> None:
        with self._lock:
            # One timestamp per batch so the whole batch expires together.
            now = self._clock()
            for user in users:
                self._entries[_key(user.id)] = CacheEntry(user=user, timestamp=now)

    def _partition_locked(
        self,
        user_ids: Iterable[UUID | str],
        now: float,
    ) -> tuple[dict[str, CachedUser], list[str]]:
        hits: dict[str, CachedUser] = {}
        missing: list[str] = []
        for user_id in user_ids:
            key = _key(user_id)
            entry = self._entries.get(key)
            if entry is not None and self._is_fresh(entry, now):
                hits[key] = entry.user
            else:
                missing.append(key)
        return hits, missing

    def get_many(self, user_ids: Iterable[UUID | str]) -> dict[str, CachedUser]:
        with self._lock:
            hits, _ = self._partition_locked(user_ids, self._clock())
        return hits

    def get_missing(self, user_ids: Iterable[UUID | str]) -> list[str]:
        with self._lock:
            _, missing = self._partition_locked(user_ids, self._clock())
        return missing

    def partition(
        self,
        user_ids: Iterable[UUID | str],
    ) -> tuple[dict[str, CachedUser], list[str]]:
        """Split ``user_ids`` into fresh hits and ids to re-fetch, against one clock reading."""
        with self._lock:
            return self._partition_locked(user_ids, self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._clock()
            valid = sum(1 for entry in self._entries.values() if self._is_fresh(entry, now))
            return CacheStats(size=len(self._entries), valid_entries=valid)

    def purge_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [
                key for key, entry in self._entries.items() if not self._is_fresh(entry, now)
            ]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
