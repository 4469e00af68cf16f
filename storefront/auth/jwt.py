"""
JWT token handling for authentication.

This module provides functionality for:
- Issuing signed, time-limited bearer tokens
- Verifying tokens, telling expiry apart from other failures
- Decoding tokens without verification (diagnostics only)
"""
import time
import uuid
from typing import Any, Dict, Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, PyJWTError
from pydantic import BaseModel

from storefront.base_service import BaseService

ALGORITHM = "HS256"


class TokenIssuanceError(Exception):
    """The token could not be signed."""


class TokenVerificationError(Exception):
    """Base class for token verification failures."""


class TokenExpired(TokenVerificationError):
    """The token signature is valid but its lifetime is over."""


class TokenInvalid(TokenVerificationError):
    """Bad signature, malformed token, or wrong issuer/audience."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class TokenClaims(BaseModel):
    """Identity claims carried by an access token."""
    id: str
    email: str
    role: str
    jti: Optional[str] = None
    iat: Optional[int] = None
    exp: Optional[int] = None


class TokenService(BaseService):
    """Issue and verify HS256 tokens for a shared secret."""

    def __init__(
        self,
        secret: str,
        expires_in: int = 7 * 86400,
        issuer: str = "ecommerce-api",
        audience: str = "ecommerce-client",
    ):
        super().__init__("jwt")
        self.secret = secret
        self.expires_in = expires_in
        self.issuer = issuer
        self.audience = audience

    def issue(self, claims: Dict[str, Any]) -> str:
        """
        Create a signed access token.

        Args:
            claims: Identity claims, at least ``id``, ``email`` and ``role``

        Returns:
            Encoded JWT string

        Raises:
            TokenIssuanceError: If signing fails
        """
        now = int(time.time())
        payload = {
            "id": str(claims["id"]),
            "email": claims["email"],
            "role": claims["role"],
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self.expires_in,
            "iss": self.issuer,
            "aud": self.audience,
        }
        try:
            token = jwt.encode(payload, self.secret, algorithm=ALGORITHM)
        except (PyJWTError, TypeError, ValueError) as exc:
            self.log_error(exc, context="Token issuance", user_id=payload["id"])
            raise TokenIssuanceError("Failed to generate token") from exc
        self.logger.debug("Token issued for user %s", payload["id"])
        return token

    def verify(self, token: str) -> TokenClaims:
        """
        Verify signature, expiry, issuer and audience.

        Raises:
            TokenExpired: If the token is past its expiry
            TokenInvalid: For any other verification failure
        """
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["exp", "iss", "aud"]},
            )
        except ExpiredSignatureError as exc:
            self.logger.info("Rejected expired token")
            raise TokenExpired("Token expired") from exc
        except PyJWTError as exc:
            self.logger.info("Rejected invalid token: %s", exc.__class__.__name__)
            raise TokenInvalid(exc.__class__.__name__) from exc

        try:
            return TokenClaims(**payload)
        except (TypeError, ValueError) as exc:
            raise TokenInvalid("MissingClaims") from exc

    def decode(self, token: str) -> Dict[str, Any]:
        """Header and payload without any verification. Never authorize with this."""
        try:
            return {
                "header": jwt.get_unverified_header(token),
                "payload": jwt.decode(token, options={"verify_signature": False}),
            }
        except PyJWTError as exc:
            raise TokenInvalid(exc.__class__.__name__) from exc

    def remaining_lifetime(self, claims: TokenClaims) -> int:
        if claims.exp is None:
            return self.expires_in
        return max(0, claims.exp - int(time.time()))
