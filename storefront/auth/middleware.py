"""
Authentication middleware.

This module provides FastAPI dependencies for:
- Bearer token authentication
- Role-based access control
"""
from typing import Iterable, Optional

from fastapi import Depends, Request

from storefront.auth.jwt import TokenClaims, TokenService, TokenVerificationError
from storefront.cache.redis_cache import CacheUnavailable
from storefront.errors import forbidden, unauthorized

BEARER_PREFIX = "Bearer "


def revoked_key(jti: str) -> str:
    return f"revoked:{jti}"


def extract_bearer_token(request: Request) -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``, or None when absent or malformed."""
    header = request.headers.get("Authorization")
    if not header or not header.startswith(BEARER_PREFIX):
        return None
    token = header[len(BEARER_PREFIX):].strip()
    return token or None


async def _is_revoked(request: Request, claims: TokenClaims) -> bool:
    state = request.app.state
    if not state.settings.token_revocation_enabled or not claims.jti:
        return False
    try:
        return await state.cache.exists(revoked_key(claims.jti))
    except CacheUnavailable:
        state.tokens.logger.warning("Revocation list unavailable, accepting token %s", claims.jti)
        return False


async def get_current_user(request: Request) -> TokenClaims:
    """
    FastAPI dependency returning the verified identity of the caller.

    Raises:
        AppHTTPException: 401 when the header is missing or the token is
            expired, invalid or revoked
    """
    token = extract_bearer_token(request)
    if token is None:
        raise unauthorized("Missing authentication token")

    tokens: TokenService = request.app.state.tokens
    try:
        claims = tokens.verify(token)
    except TokenVerificationError:
        raise unauthorized("Invalid authentication token")

    if await _is_revoked(request, claims):
        raise unauthorized("Invalid authentication token")

    request.state.user = claims
    return claims


async def get_optional_user(request: Request) -> Optional[TokenClaims]:
    """Verified identity when a valid token is supplied, otherwise None."""
    token = extract_bearer_token(request)
    if token is None:
        return None
    try:
        claims = request.app.state.tokens.verify(token)
    except TokenVerificationError:
        return None
    if await _is_revoked(request, claims):
        return None
    request.state.user = claims
    return claims


def authorize(user: Optional[TokenClaims], allowed_roles: Iterable[str]) -> TokenClaims:
    """
    Check an identity against a route's allowed roles.

    An empty allow-list admits any authenticated identity.
    """
    if user is None:
        raise unauthorized("Authentication required")
    roles = [getattr(role, "value", role) for role in allowed_roles]
    if roles and user.role not in roles:
        raise forbidden("Insufficient permissions")
    return user


class RBACMiddleware:
    """
    Role-Based Access Control.

    Creates FastAPI dependencies for protecting routes based on the role
    carried in the caller's token.
    """

    @staticmethod
    def has_roles(roles: Iterable[str]):
        """
        Dependency to check that the user holds one of the given roles.

        Args:
            roles: Allowed role names (any match is sufficient, empty means any)

        Returns:
            Dependency function
        """
        allowed = list(roles)

        async def verify_roles(user: TokenClaims = Depends(get_current_user)) -> TokenClaims:
            return authorize(user, allowed)

        return verify_roles
