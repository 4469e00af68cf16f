"""
User account workflows.

This module provides the service behind the /auth endpoints:
- Registration and login
- Profile retrieval and update
- Password change
- Logout
"""
from typing import Any, Dict, Optional

from storefront.auth.hashing import HashingError, PasswordHasher
from storefront.auth.jwt import TokenClaims, TokenService
from storefront.auth.middleware import revoked_key
from storefront.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from storefront.base_service import BaseService
from storefront.cache.redis_cache import CacheAside, CacheService, CacheUnavailable
from storefront.database.models import Role, User
from storefront.database.repositories import UserRepository
from storefront.database.store import UniqueConstraintViolation
from storefront.errors import bad_request, conflict, forbidden, not_found, unauthorized

USER_CACHE_TTL = 3600
INVALID_CREDENTIALS = "Invalid email or password"


def user_cache_key(user_id: str) -> str:
    return f"user:{user_id}"


class AuthService(BaseService):
    """
    Service for user account operations.

    Cached user views never contain the password hash.
    """

    def __init__(
        self,
        users: UserRepository,
        hasher: PasswordHasher,
        tokens: TokenService,
        cache: CacheService,
        allow_admin_self_registration: bool = False,
        token_revocation_enabled: bool = False,
    ):
        super().__init__("auth")
        self.users = users
        self.hasher = hasher
        self.tokens = tokens
        self.cache = cache
        self.cache_aside = CacheAside(cache, self.logger)
        self.allow_admin_self_registration = allow_admin_self_registration
        self.token_revocation_enabled = token_revocation_enabled

    def _issue_token(self, user: User) -> str:
        return self.tokens.issue({"id": user.id, "email": user.email, "role": user.role.value})

    async def register(self, data: RegisterRequest, caller: Optional[TokenClaims] = None) -> Dict[str, Any]:
        """
        Register a new user.

        Args:
            data: Validated registration payload
            caller: Identity of an authenticated caller, if any

        Returns:
            Response body with the public user view and a token

        Raises:
            AppHTTPException: 409 if the email is taken, 403 if an admin
                account is requested without the right to create one
        """
        self.log_event("user.register.attempt", {"email": data.email})

        if data.role == Role.ADMIN and not self._may_create_admin(caller):
            self.logger.warning("Refused admin self-registration for %s", data.email)
            raise forbidden("Only an administrator can create administrator accounts")

        if await self.users.find_by_email(data.email) is not None:
            self.logger.warning("Registration with existing email %s", data.email)
            raise conflict("A user with this email already exists")

        digest = await self.hasher.hash_async(data.password)
        try:
            user = await self.users.create(
                email=data.email,
                password=digest,
                name=data.name,
                role=data.role,
            )
        except UniqueConstraintViolation:
            raise conflict("A user with this email already exists")

        token = self._issue_token(user)
        user_view = user.to_public()
        await self.cache_aside.write(
            user_cache_key(user.id), user.to_public(include_updated=True), USER_CACHE_TTL
        )

        self.log_event("user.registered", {"id": user.id, "email": user.email, "role": user.role.value})
        return {"message": "Registration successful", "user": user_view, "token": token}

    def _may_create_admin(self, caller: Optional[TokenClaims]) -> bool:
        if self.allow_admin_self_registration:
            return True
        return caller is not None and caller.role == Role.ADMIN.value

    async def _password_matches(self, password: str, user: User) -> bool:
        """A password bcrypt cannot check counts as a mismatch."""
        try:
            return await self.hasher.verify_async(password, user.password)
        except HashingError:
            self.logger.warning("Unverifiable password submitted for user %s", user.id)
            return False

    async def login(self, data: LoginRequest) -> Dict[str, Any]:
        """Authenticate with email and password. Both failure causes look the same."""
        self.log_event("user.login.attempt", {"email": data.email})

        user = await self.users.find_by_email(data.email)
        if user is None:
            self.logger.warning("Login with unknown email %s", data.email)
            raise unauthorized(INVALID_CREDENTIALS)

        if not await self._password_matches(data.password, user):
            self.logger.warning("Login with wrong password for %s", data.email)
            raise unauthorized(INVALID_CREDENTIALS)

        token = self._issue_token(user)
        user_view = user.to_public()
        await self.cache_aside.write(
            user_cache_key(user.id), user.to_public(include_updated=True), USER_CACHE_TTL
        )

        self.log_event("user.login", {"id": user.id, "email": user.email})
        return {"message": "Login successful", "user": user_view, "token": token}

    async def get_profile(self, user_id: str) -> Dict[str, Any]:
        key = user_cache_key(user_id)
        user_view = await self.cache_aside.read(key)
        if user_view is None:
            user = await self.users.find_by_id(user_id)
            if user is None:
                raise not_found("User not found")
            user_view = user.to_public(include_updated=True)
            await self.cache_aside.write(key, user_view, USER_CACHE_TTL)
        return {"user": user_view}

    async def update_profile(self, user_id: str, data: UpdateProfileRequest) -> Dict[str, Any]:
        changes = data.model_dump(exclude_none=True)
        self.log_event("user.update.attempt", {"id": user_id, "fields": sorted(changes)})

        if data.email is not None:
            if await self.users.find_by_email_excluding(data.email, user_id) is not None:
                raise conflict("This email is already in use")

        if await self.users.find_by_id(user_id) is None:
            raise not_found("User not found")

        try:
            user = await self.users.update(user_id, **changes)
        except UniqueConstraintViolation:
            raise conflict("This email is already in use")

        user_view = user.to_public(include_updated=True)
        await self.cache_aside.write(user_cache_key(user_id), user_view, USER_CACHE_TTL)

        self.log_event("user.updated", {"id": user_id})
        return {"message": "Profile updated successfully", "user": user_view}

    async def change_password(self, user_id: str, data: ChangePasswordRequest) -> Dict[str, Any]:
        """
        Replace the caller's password after checking the current one.

        Tokens issued before the change stay valid until they expire.
        """
        self.log_event("user.password_change.attempt", {"id": user_id})

        user = await self.users.find_by_id(user_id)
        if user is None:
            raise not_found("User not found")

        if not await self._password_matches(data.current_password, user):
            raise bad_request("Current password is incorrect")

        digest = await self.hasher.hash_async(data.new_password)
        await self.users.update(user_id, password=digest)

        self.log_event("user.password_changed", {"id": user_id})
        return {"message": "Password changed successfully"}

    async def logout(self, claims: TokenClaims) -> Dict[str, Any]:
        """
        Drop the cached user view.

        Without revocation enabled the token itself stays valid until expiry.
        """
        await self.cache_aside.drop(user_cache_key(claims.id))

        if self.token_revocation_enabled and claims.jti:
            ttl = self.tokens.remaining_lifetime(claims)
            if ttl > 0:
                try:
                    await self.cache.set(revoked_key(claims.jti), True, ttl)
                except CacheUnavailable as exc:
                    self.log_error(exc, context="Token revocation", user_id=claims.id)

        self.log_event("user.logout", {"id": claims.id})
        return {"message": "Logout successful"}
