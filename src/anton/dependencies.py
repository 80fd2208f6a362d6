"""Shared FastAPI dependencies: database session, optional Redis, caller identity.

The engine never authenticates. It records whatever opaque user id and
email the upstream gateway forwarded in X-User-Id / X-User-Email.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from dataclasses import dataclass

from fastapi import Header, HTTPException
from redis.asyncio import Redis

from anton.database import get_session as _get_session
from anton.redis_client import get_redis_or_none

get_db = _get_session


async def get_redis_optional() -> AsyncGenerator[Redis | None, None]:
    """Yield the Redis client, or None when Redis is not configured."""
    yield get_redis_or_none()


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str


async def get_identity(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Identity:
    """Require both identity headers. Raises 401 when either is missing."""
    if not x_user_id or not x_user_email:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return Identity(user_id=x_user_id, email=x_user_email)


async def get_identity_optional(
    x_user_id: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
) -> Identity | None:
    if not x_user_id:
        return None
    return Identity(user_id=x_user_id, email=x_user_email or "")
