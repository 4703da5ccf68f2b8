from __future__ import annotations

from dataclasses import dataclass

from pydantic import BaseModel


@dataclass(frozen=True)
class CachedUser:
    id: str
    email: str
    name: str | None = None
    avatar_url: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str
    name: str | None
    avatar_url: str | None


class CacheStatsResponse(BaseModel):
    size: int
    valid_entries: int
