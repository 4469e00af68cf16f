"""
Test cases for rate limiting.
"""
import pytest
from httpx import ASGITransport, AsyncClient

from storefront.rate_limit import RateLimiter, describe_window
from storefront.tests.helpers import API, login, register


@pytest.mark.asyncio
async def test_limiter_counts_within_window(cache):
    limiter = RateLimiter(cache, limit=2, window=60, prefix="test")

    first = await limiter.hit("ip:1")
    second = await limiter.hit("ip:1")
    third = await limiter.hit("ip:1")
    other = await limiter.hit("ip:2")

    assert (first.allowed, first.remaining) == (True, 1)
    assert (second.allowed, second.remaining) == (True, 0)
    assert third.allowed is False
    assert 0 < third.retry_after <= 60
    assert other.allowed is True
    assert 0 < await cache.ttl("test:ip:1") <= 60


@pytest.mark.asyncio
async def test_limiter_allows_when_cache_down(cache, redis_server):
    limiter = RateLimiter(cache, limit=1, window=60)
    redis_server.connected = False

    assert (await limiter.hit("ip:1")).allowed is True
    assert (await limiter.hit("ip:1")).allowed is True


def test_describe_window():
    assert describe_window(900) == "15 minute(s)"
    assert describe_window(7200) == "2 hour(s)"
    assert describe_window(45) == "45 second(s)"


@pytest.mark.asyncio
async def test_global_limit_returns_429(make_app):
    app = make_app(rate_limit_enabled=True, rate_limit_max=3)
    async with AsyncClient(base_url="http://test", transport=ASGITransport(app=app)) as ac:
        responses = [await ac.get(f"{API}/products") for _ in range(4)]
        health = await ac.get(f"{API}/health")

    assert [r.status_code for r in responses] == [200, 200, 200, 429]
    assert responses[0].headers["X-RateLimit-Limit"] == "3"
    assert responses[2].headers["X-RateLimit-Remaining"] == "0"

    limited = responses[3]
    body = limited.json()
    assert body["error"] == "Too Many Requests"
    assert body["retryAfter"] > 0
    assert limited.headers["Retry-After"] == str(body["retryAfter"])
    assert health.status_code == 200


@pytest.mark.asyncio
async def test_auth_limit_on_login(make_app):
    app = make_app(rate_limit_enabled=True, auth_rate_limit_max=2)
    async with AsyncClient(base_url="http://test", transport=ASGITransport(app=app)) as ac:
        await register(ac, "limited@example.com")
        attempt = await login(ac, "limited@example.com", "Wrong123!")

    assert attempt.status_code == 401

    async with AsyncClient(base_url="http://test", transport=ASGITransport(app=app)) as ac:
        blocked = await login(ac, "limited@example.com", "Wrong123!")

    assert blocked.status_code == 429
    assert blocked.json()["message"].startswith("Too many authentication attempts")
