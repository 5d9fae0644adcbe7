"""Middleware tests: request ids, error format, rate limiting."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    """Responses carry a generated X-Request-Id."""
    response = await client.get("/health")
    assert response.headers.get("x-request-id")


@pytest.mark.asyncio
async def test_request_id_propagated(client: AsyncClient) -> None:
    """An incoming X-Request-Id is echoed back."""
    response = await client.get("/health", headers={"X-Request-Id": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


@pytest.mark.asyncio
async def test_unknown_route_json_error(client: AsyncClient) -> None:
    """404s use the {"error": ...} body."""
    response = await client.get("/nope")
    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def _redis_with_count(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient) -> None:
    """Under the limit the remaining budget is reported."""
    with patch("skillsquad.middleware.rate_limit.get_redis", return_value=_redis_with_count(1)):
        response = await client.get("/version")
    assert response.status_code == 200
    assert response.headers["x-ratelimit-remaining"] == "99"


@pytest.mark.asyncio
async def test_rate_limit_exceeded(client: AsyncClient) -> None:
    """Over the limit → 429 with an error body."""
    with patch("skillsquad.middleware.rate_limit.get_redis", return_value=_redis_with_count(101)):
        response = await client.get("/version")
    assert response.status_code == 429
    assert response.json() == {"error": "Rate limit exceeded. Try again later."}
    assert response.headers["retry-after"] == "60"


@pytest.mark.asyncio
async def test_health_exempt_from_rate_limit(client: AsyncClient) -> None:
    with patch("skillsquad.middleware.rate_limit.get_redis", return_value=_redis_with_count(1000)):
        response = await client.get("/health")
    assert response.status_code == 200
