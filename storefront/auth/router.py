"""
Authentication router.

This module provides the FastAPI router for account endpoints:
- User registration and login
- User profile management
- Password change and logout
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, status

from storefront.auth.jwt import TokenClaims
from storefront.auth.middleware import get_current_user, get_optional_user
from storefront.auth.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    UpdateProfileRequest,
)
from storefront.auth.service import AuthService
from storefront.rate_limit import auth_rate_limit

router = APIRouter(tags=["auth"])


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


@router.post(
    "/register",
    status_code=status.HTTP_201_CREATED,
    response_model=Dict[str, Any],
    dependencies=[Depends(auth_rate_limit)],
)
async def register_user(
    user_data: RegisterRequest,
    caller: Optional[TokenClaims] = Depends(get_optional_user),
    service: AuthService = Depends(get_auth_service),
):
    """Register a new user and return a token."""
    return await service.register(user_data, caller)


@router.post("/login", response_model=Dict[str, Any], dependencies=[Depends(auth_rate_limit)])
async def login(
    login_data: LoginRequest,
    service: AuthService = Depends(get_auth_service),
):
    """Authenticate with email and password."""
    return await service.login(login_data)


@router.get("/profile", response_model=Dict[str, Any])
async def get_profile(
    user: TokenClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    """Profile of the authenticated user."""
    return await service.get_profile(user.id)


@router.put("/profile", response_model=Dict[str, Any])
async def update_profile(
    update_data: UpdateProfileRequest,
    user: TokenClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    """Update name and/or email of the authenticated user."""
    return await service.update_profile(user.id, update_data)


@router.put("/change-password", response_model=Dict[str, Any])
async def change_password(
    password_data: ChangePasswordRequest,
    user: TokenClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    return await service.change_password(user.id, password_data)


@router.post("/logout", response_model=Dict[str, Any])
async def logout(
    user: TokenClaims = Depends(get_current_user),
    service: AuthService = Depends(get_auth_service),
):
    """Clear the cached session data of the authenticated user."""
    return await service.logout(user)
