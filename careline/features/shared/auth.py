from __future__ import annotations

from uuid import UUID

from fastapi import Header, HTTPException

from .ids import parse_uuid

USER_ID_HEADER = "X-User-Id"


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias=USER_ID_HEADER),
) -> UUID:
    """Caller identity as asserted by the upstream auth provider."""
    if x_user_id is None or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Unauthorized")
    return parse_uuid(x_user_id.strip(), field_name="user identity", status_code=401)
