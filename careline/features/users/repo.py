from __future__ import annotations

from collections.abc import Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from careline.db.models import User


async def get_users_by_ids(session: AsyncSession, user_ids: Sequence[UUID]) -> list[User]:
    if not user_ids:
        return []
    stmt = select(User).where(User.id.in_(list(user_ids)))
    result = await session.execute(stmt)
    return list(result.scalars().all())
