"""
Fixed-window rate limiting backed by the cache.

Responsibilities:
  - Count requests per client and window with INCR + EXPIRE
  - Global limit for every route, stricter limit for login/register
  - Return 429 with Retry-After when a client is over its limit

Notes:
  - The client is the verified token's user id when present, else the IP
  - A cache outage lets requests through (logged)
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from storefront.auth.jwt import TokenVerificationError
from storefront.auth.middleware import extract_bearer_token
from storefront.base_service import BaseService
from storefront.cache.redis_cache import CacheService, CacheUnavailable
from storefront.errors import error_response, too_many_requests

EXEMPT_PATH_SUFFIXES = ("/health", "/docs", "/openapi.json", "/redoc")


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    retry_after: int


class RateLimiter(BaseService):
    """Counts hits per identity in fixed windows of ``window`` seconds."""

    def __init__(self, cache: CacheService, limit: int, window: int, prefix: str = "ratelimit"):
        super().__init__("rate_limit")
        self.cache = cache
        self.limit = limit
        self.window = window
        self.prefix = prefix

    async def hit(self, identity: str) -> RateLimitResult:
        key = f"{self.prefix}:{identity}"
        try:
            count = await self.cache.increment(key)
            if count == 1:
                await self.cache.expire(key, self.window)
                ttl = self.window
            else:
                ttl = await self.cache.ttl(key)
                if ttl < 0:
                    # Counter lost its expiry; restart the window.
                    await self.cache.expire(key, self.window)
                    ttl = self.window
        except CacheUnavailable as exc:
            self.logger.warning("Rate limiter cache unavailable, allowing request: %s", exc)
            return RateLimitResult(True, self.limit, self.limit, 0)

        remaining = max(0, self.limit - count)
        allowed = count <= self.limit
        if not allowed:
            self.log_event("rate_limit.exceeded", {"key": key, "count": count})
        return RateLimitResult(allowed, self.limit, remaining, max(ttl, 1))


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def client_identity(request: Request) -> str:
    token = extract_bearer_token(request)
    if token is not None:
        try:
            return f"user:{request.app.state.tokens.verify(token).id}"
        except TokenVerificationError:
            pass
    return f"ip:{client_ip(request)}"


def describe_window(seconds: int) -> str:
    if seconds % 3600 == 0:
        return f"{seconds // 3600} hour(s)"
    if seconds % 60 == 0:
        return f"{seconds // 60} minute(s)"
    return f"{seconds} second(s)"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies the global per-client limit to every non-exempt request."""

    async def dispatch(self, request: Request, call_next) -> Response:
        state = request.app.state
        limiter: Optional[RateLimiter] = getattr(state, "rate_limiter", None)
        if (
            limiter is None
            or not state.settings.rate_limit_enabled
            or request.method == "OPTIONS"
            or request.url.path.endswith(EXEMPT_PATH_SUFFIXES)
        ):
            return await call_next(request)

        result = await limiter.hit(client_identity(request))
        if not result.allowed:
            exc = too_many_requests(
                f"Too many requests. Limit: {result.limit} requests per "
                f"{describe_window(limiter.window)}",
                result.retry_after,
            )
            return error_response(exc)

        response = await call_next(request)
        response.headers["X-RateLimit-Limit"] = str(result.limit)
        response.headers["X-RateLimit-Remaining"] = str(result.remaining)
        return response


async def auth_rate_limit(request: Request) -> None:
    """Dependency limiting login/register attempts per IP."""
    state = request.app.state
    limiter: Optional[RateLimiter] = getattr(state, "auth_rate_limiter", None)
    if limiter is None or not state.settings.rate_limit_enabled:
        return
    result = await limiter.hit(f"auth_{client_ip(request)}")
    if not result.allowed:
        raise too_many_requests(
            f"Too many authentication attempts. Try again in {describe_window(limiter.window)}.",
            result.retry_after,
        )
