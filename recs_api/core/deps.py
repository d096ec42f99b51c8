"""Dependency injection for FastAPI routes."""

from collections.abc import AsyncGenerator
from typing import TYPE_CHECKING, Annotated

import redis.asyncio as aioredis
from fastapi import Depends, HTTPException, Path, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from recs_api.core.config import settings
from recs_api.core.database import get_async_session
from recs_api.core.logging_config import store_id_var

if TYPE_CHECKING:
    from recs_api.models.store import Store

# Detail used whenever a store has no usable OAuth token. Clients look for
# the "OAuth setup" marker to switch to the authorization flow.
NOT_AUTHENTICATED_DETAIL = "Store not authenticated. OAuth setup required."


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session for the request."""
    async for session in get_async_session():
        yield session


# Shared Redis connection pool
_redis_pool: aioredis.ConnectionPool | None = None


def _get_redis_pool() -> aioredis.ConnectionPool:
    global _redis_pool  # noqa: PLW0603
    if _redis_pool is None:
        _redis_pool = aioredis.ConnectionPool.from_url(
            str(settings.redis_url), decode_responses=True
        )
    return _redis_pool


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """Yield a Redis client from the shared connection pool."""
    pool = _get_redis_pool()
    r = aioredis.Redis(connection_pool=pool)
    try:
        yield r
    finally:
        await r.aclose()


# Database session dependency
DBSession = Annotated[AsyncSession, Depends(get_db)]
RedisClient = Annotated[aioredis.Redis, Depends(get_redis)]


async def _load_store(store_id: str, db: AsyncSession) -> "Store":
    from recs_api.models.store import Store

    result = await db.execute(select(Store).where(Store.store_id == store_id))
    store = result.scalar_one_or_none()

    if not store:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Store not found",
        )

    store_id_var.set(store.store_id)
    return store


async def get_store_from_path(
    store_id: str = Path(..., min_length=1, max_length=64, description="Ecwid store ID"),
    db: AsyncSession = Depends(get_db),
) -> "Store":
    """Get store by the Ecwid store id in the URL path."""
    return await _load_store(store_id, db)


async def get_store_from_query(
    store_id: str = Query(
        ..., alias="storeId", min_length=1, max_length=64, description="Ecwid store ID"
    ),
    db: AsyncSession = Depends(get_db),
) -> "Store":
    """Get store by the ``storeId`` query parameter (admin list endpoints)."""
    return await _load_store(store_id, db)


def require_authenticated(store: "Store") -> "Store":
    """Raise 401 with the OAuth-setup marker when the store has no token."""
    if not store.is_authenticated:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=NOT_AUTHENTICATED_DETAIL,
        )
    return store


async def get_authenticated_store(
    store: "Store" = Depends(get_store_from_path),
) -> "Store":
    """Path store that must have completed OAuth."""
    return require_authenticated(store)


async def get_authenticated_store_from_query(
    store: "Store" = Depends(get_store_from_query),
) -> "Store":
    """Query-param store that must have completed OAuth (admin writes)."""
    return require_authenticated(store)


__all__ = [
    "DBSession",
    "NOT_AUTHENTICATED_DETAIL",
    "RedisClient",
    "get_authenticated_store",
    "get_authenticated_store_from_query",
    "get_db",
    "get_redis",
    "get_store_from_path",
    "get_store_from_query",
    "require_authenticated",
]
