from __future__ import annotations

from uuid import UUID

from fastapi import HTTPException


def to_uuid(value: UUID | str) -> UUID:
    if isinstance(value, UUID):
        return value
    return UUID(value)


def parse_uuid(value: str, *, field_name: str, status_code: int = 400) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise HTTPException(status_code=status_code, detail=f"Invalid {field_name}.") from exc
