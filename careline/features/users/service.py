from __future__ import annotations

import logging
from collections.abc import Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.models import User
from careline.features.shared.ids import to_uuid

from . import repo
from .cache import UserCache
from .errors import UserNotFoundError, UserValidationError
from .types import CachedUser, UserResponse

logger = logging.getLogger(__name__)


def to_cached_user(row: User) -> CachedUser:
    return CachedUser(
        id=str(row.id),
        email=row.email,
        name=row.name,
        avatar_url=row.avatar_url,
    )


def to_user_response(user: CachedUser) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        name=user.name,
        avatar_url=user.avatar_url,
    )


def _unique_keys(user_ids: Iterable[UUID | str]) -> list[str]:
    seen: dict[str, None] = {}
    for user_id in user_ids:
        try:
            seen.setdefault(str(to_uuid(user_id)), None)
        except ValueError as exc:
            raise UserValidationError(f"Invalid user id '{user_id}'.") from exc
    return list(seen)


async def resolve_users(
    session: AsyncSession,
    user_ids: Iterable[UUID | str],
    *,
    cache: UserCache,
) -> dict[str, CachedUser]:
    keys = _unique_keys(user_ids)
    if not keys:
        return {}

    found, missing = cache.partition(keys)
    if missing:
        rows = await repo.get_users_by_ids(session, [to_uuid(item) for item in missing])
        fetched = [to_cached_user(row) for row in rows]
        cache.put_many(fetched)
        found.update({user.id: user for user in fetched})
        logger.debug(
            "User cache: %d hit(s), %d fetched, %d unknown.",
            len(keys) - len(missing),
            len(fetched),
            len(missing) - len(fetched),
        )

    return {key: found[key] for key in keys if key in found}


async def get_user(
    session: AsyncSession,
    user_id: UUID | str,
    *,
    cache: UserCache,
) -> CachedUser:
    try:
        user_uuid = to_uuid(user_id)
    except ValueError as exc:
        raise UserValidationError(f"Invalid user id '{user_id}'.") from exc

    cached = cache.get(user_uuid)
    if cached is not None:
        return cached

    rows = await repo.get_users_by_ids(session, [user_uuid])
    if not rows:
        raise UserNotFoundError(f"User '{user_id}' was not found.")
    user = to_cached_user(rows[0])
    cache.put(user)
    return user
