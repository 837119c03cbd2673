"""Per-user request quotas backed by Redis, with an in-process fallback."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict, Tuple

from fastapi import HTTPException, Request
import redis.asyncio as redis
from redis.exceptions import RedisError

from config import settings
from services.session_token import decode_session_token

logger = logging.getLogger(__name__)

_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


def _quota_subject(request: Request) -> str:
    """Bucket by session user when the bearer token is valid, else by client address."""
    authorization = request.headers.get("authorization", "")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"user:{decode_session_token(token.strip()).user_id}"
        except ValueError:
            pass
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return f"ip:{forwarded.split(',')[0].strip()}"
    if request.client and request.client.host:
        return f"ip:{request.client.host}"
    return "ip:unknown"


async def _consume_local_quota(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count, reset_at = 0, now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
        return count <= limit


async def _consume_redis_quota(key: str, limit: int, window_seconds: int) -> bool:
    client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        async with client.pipeline(transaction=True) as pipe:
            pipe.incr(key)
            pipe.expire(key, window_seconds, nx=True)
            current, _ = await pipe.execute()
    finally:
        await client.aclose()
    return int(current) <= limit


def rate_limit(scope: str, limit: int, window_seconds: int) -> Callable[[Request], None]:
    """Return a FastAPI dependency allowing ``limit`` calls per subject per window."""

    async def _dependency(request: Request):
        if getattr(request.app.state, "disable_rate_limits", False):
            return

        key = f"tamedachi:rate:{scope}:{_quota_subject(request)}"
        try:
            allowed = await _consume_redis_quota(key, limit, window_seconds)
        except (RedisError, OSError) as exc:
            logger.warning("Redis unavailable for rate limiting, using local counters: %s", exc)
            allowed = await _consume_local_quota(key, limit, window_seconds)

        if not allowed:
            raise HTTPException(
                status_code=429,
                detail="You're checking sources too quickly. Please slow down and try again later.",
            )

    return _dependency
