"""Redis client for request idempotency keys.

Create and counter requests may carry an idempotency key. The key is
claimed with a single ``SET NX`` so two replays racing each other cannot
both pass; the claim is released if the action or its commit fails, so
the client can retry with the same key. Callers commit inside the guard.

Without Redis a keyed request is refused with IdempotencyUnavailableError;
requests without a key never touch Redis.

Usage:
    from barter_exchange.infrastructure.redis_client import idempotency_guard

    async with idempotency_guard(f"create:{vendor_id}", body.idempotency_key):
        offer = await service.create_offer(...)
        await session.commit()
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from barter_exchange.config import get_settings
from barter_exchange.domain.exceptions import (
    DuplicateOperationError,
    IdempotencyUnavailableError,
)
from barter_exchange.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)

_redis_client: aioredis.Redis | None = None

_KEY_PREFIX = "barter:idempotency:"


async def init_redis() -> aioredis.Redis:
    """Initialize and return the Redis client. Called during app startup."""
    global _redis_client
    settings = get_settings()
    _redis_client = aioredis.from_url(
        settings.redis_url,
        decode_responses=True,
    )
    await _redis_client.ping()
    logger.info("redis.connected", url=settings.redis_url)
    return _redis_client


def get_redis() -> aioredis.Redis:
    """Return the Redis client singleton. Must call init_redis() first."""
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


async def close_redis() -> None:
    """Close the Redis connection. Called during app shutdown."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        logger.info("redis.disconnected")
        _redis_client = None


# --- Idempotency Helpers ---


async def claim_idempotency(key: str, value: str = "1") -> bool:
    """Atomically claim ``key``. Returns False if it was already claimed.

    Raises IdempotencyUnavailableError when Redis was never connected or
    the claim itself fails.
    """
    if _redis_client is None:
        logger.warning("idempotency.unavailable", key=key, error="redis not initialized")
        raise IdempotencyUnavailableError(key)
    settings = get_settings()
    try:
        claimed = await _redis_client.set(
            f"{_KEY_PREFIX}{key}",
            value,
            ex=settings.redis_idempotency_ttl_seconds,
            nx=True,
        )
    except RedisError as exc:
        logger.warning("idempotency.unavailable", key=key, error=str(exc))
        raise IdempotencyUnavailableError(key) from exc
    return bool(claimed)


async def release_idempotency(key: str) -> None:
    """Drop a claim so a failed request can be retried with the same key."""
    await get_redis().delete(f"{_KEY_PREFIX}{key}")


@asynccontextmanager
async def idempotency_guard(scope: str, idempotency_key: str | None) -> AsyncIterator[None]:
    """Run the wrapped action at most once per ``(scope, idempotency_key)``.

    No key means no guard. A replayed key raises DuplicateOperationError;
    an action that raises gives its key back. The database commit belongs
    inside the block, otherwise a failed commit leaves the key claimed for
    an offer that was never saved.
    """
    if not idempotency_key:
        yield
        return

    key = f"{scope}:{idempotency_key}"
    if not await claim_idempotency(key):
        logger.warning("idempotency.duplicate", key=key)
        raise DuplicateOperationError(idempotency_key)
    try:
        yield
    except Exception:
        await release_idempotency(key)
        raise
