import pytest
from fastapi import FastAPI, HTTPException
from starlette.requests import Request
from unittest.mock import AsyncMock, patch
from redis.exceptions import ConnectionError as RedisConnectionError

from routers import rate_limit
from services.session_token import create_session_token


def _request(app, token=None, host="203.0.113.7"):
    headers = []
    if token:
        headers.append((b"authorization", f"Bearer {token}".encode()))
    scope = {
        "type": "http",
        "method": "POST",
        "path": "/analyze-content",
        "headers": headers,
        "client": (host, 5050),
        "app": app,
    }
    return Request(scope)


@pytest.mark.asyncio
async def test_local_fallback_enforces_quota_per_user():
    app = FastAPI()
    dependency = rate_limit.rate_limit("analyze_content_test", limit=2, window_seconds=60)
    alice = create_session_token("alice")["token"]
    bob = create_session_token("bob")["token"]

    redis_down = AsyncMock(side_effect=RedisConnectionError("connection refused"))
    with patch("routers.rate_limit._consume_redis_quota", redis_down):
        await dependency(_request(app, alice))
        await dependency(_request(app, alice, host="198.51.100.2"))
        with pytest.raises(HTTPException) as exc_info:
            await dependency(_request(app, alice))
        await dependency(_request(app, bob))

    assert exc_info.value.status_code == 429
    assert "tamedachi:rate:analyze_content_test:user:alice" in rate_limit._local_counters


@pytest.mark.asyncio
async def test_anonymous_requests_are_bucketed_by_address():
    app = FastAPI()
    dependency = rate_limit.rate_limit("anonymous_test", limit=1, window_seconds=60)

    with patch("routers.rate_limit._consume_redis_quota", AsyncMock(side_effect=OSError("no route"))):
        await dependency(_request(app, "garbage-token", host="192.0.2.1"))
        await dependency(_request(app, host="192.0.2.2"))
        with pytest.raises(HTTPException):
            await dependency(_request(app, host="192.0.2.1"))


@pytest.mark.asyncio
async def test_disabled_limits_skip_counting():
    app = FastAPI()
    app.state.disable_rate_limits = True
    dependency = rate_limit.rate_limit("disabled_test", limit=0, window_seconds=60)

    await dependency(_request(app))
    assert not any("disabled_test" in key for key in rate_limit._local_counters)
