from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.session import get_db_session
from careline.features.shared.auth import get_current_user_id
from careline.features.shared.ids import parse_uuid

from .cache import UserCache
from .errors import UserNotFoundError, UserValidationError
from .service import get_user, resolve_users, to_user_response
from .types import CacheStatsResponse, UserResponse

router = APIRouter(
    prefix="/api/users",
    tags=["users"],
    dependencies=[Depends(get_current_user_id)],
)


def get_user_cache(request: Request) -> UserCache:
    return request.app.state.user_cache


def _raise_http_error(exc: Exception) -> None:
    if isinstance(exc, UserNotFoundError):
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if isinstance(exc, UserValidationError):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    raise exc


@router.get("", response_model=list[UserResponse])
async def list_users(
    ids: list[str] = Query(default=[]),
    session: AsyncSession = Depends(get_db_session),
    cache: UserCache = Depends(get_user_cache),
) -> list[UserResponse]:
    user_ids: list[UUID] = [parse_uuid(item, field_name="user id") for item in ids]
    users = await resolve_users(session, user_ids, cache=cache)
    return [to_user_response(user) for user in users.values()]


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def get_cache_stats(cache: UserCache = Depends(get_user_cache)) -> CacheStatsResponse:
    stats = cache.stats()
    return CacheStatsResponse(size=stats.size, valid_entries=stats.valid_entries)


@router.delete("/cache")
async def clear_cache(cache: UserCache = Depends(get_user_cache)) -> dict[str, bool]:
    cache.clear()
    return {"cleared": True}


@router.get("/{user_id}", response_model=UserResponse)
async def get_user_by_id(
    user_id: str,
    session: AsyncSession = Depends(get_db_session),
    cache: UserCache = Depends(get_user_cache),
) -> UserResponse:
    user_uuid = parse_uuid(user_id, field_name="user id")
    try:
        user = await get_user(session, user_uuid, cache=cache)
    except Exception as exc:
        _raise_http_error(exc)
    return to_user_response(user)
