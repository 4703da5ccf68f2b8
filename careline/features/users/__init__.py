from __future__ import annotations

from .cache import DEFAULT_TTL_SECONDS, CacheEntry, CacheStats, UserCache
from .errors import UserNotFoundError, UsersDomainError, UserValidationError
from .service import get_user, resolve_users, to_cached_user, to_user_response
from .types import CachedUser, CacheStatsResponse, UserResponse

__all__ = [
    "DEFAULT_TTL_SECONDS",
    "CacheEntry",
    "CacheStats",
    "CacheStatsResponse",
    "CachedUser",
    "UserCache",
    "UserNotFoundError",
    "UserResponse",
    "UserValidationError",
    "UsersDomainError",
    "get_user",
    "resolve_users",
    "to_cached_user",
    "to_user_response",
]
