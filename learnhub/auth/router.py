"""Authentication API endpoints.

Provides routes for:
- User registration and login
- Logout (token revocation)
- Profile, password change and admin role management
"""

from fastapi import APIRouter, Depends, status

from learnhub.auth.dependencies import (
    AdminUser,
    AuthServiceDep,
    BearerToken,
    CurrentUser,
    handle_auth_error,
)
from learnhub.auth.schemas import (
    AuthResponse,
    ChangePasswordRequest,
    LoginRequest,
    MessageResponse,
    RegisterRequest,
    UpdateRoleRequest,
    UserResponse,
)
from learnhub.auth.service import AuthError
from learnhub.core.rate_limit import enforce_auth_rate_limit


router = APIRouter(prefix="/v1/auth", tags=["auth"])


# ==============================================================================
# Public Endpoints (No Auth Required)
# ==============================================================================


@router.post(
    "/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register new user",
    dependencies=[Depends(enforce_auth_rate_limit)],
    responses={
        400: {"description": "Invalid role"},
        409: {"description": "Email already registered"},
        429: {"description": "Too many requests"},
    },
)
async def register(data: RegisterRequest, auth_service: AuthServiceDep) -> AuthResponse:
    """Register a new account and return an access token."""
    try:
        return await auth_service.register(data)
    except AuthError as e:
        raise handle_auth_error(e) from e


@router.post(
    "/login",
    response_model=AuthResponse,
    summary="User login",
    dependencies=[Depends(enforce_auth_rate_limit)],
    responses={
        401: {"description": "Invalid credentials"},
        429: {"description": "Too many requests"},
    },
)
async def login(data: LoginRequest, auth_service: AuthServiceDep) -> AuthResponse:
    try:
        return await auth_service.authenticate(data.email, data.password)
    except AuthError as e:
        raise handle_auth_error(e) from e


# ==============================================================================
# Authenticated Endpoints
# ==============================================================================


@router.post(
    "/logout",
    response_model=MessageResponse,
    summary="Logout",
)
async def logout(
    _user: CurrentUser,
    token: BearerToken,
    auth_service: AuthServiceDep,
) -> MessageResponse:
    """Revoke the presented access token until it expires."""
    try:
        auth_service.revoke(token)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return MessageResponse(message="Logged out successfully")


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Current user profile",
)
async def get_me(user: CurrentUser, auth_service: AuthServiceDep) -> UserResponse:
    try:
        profile = await auth_service.get_profile(user.user_id)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return UserResponse.model_validate(profile)


@router.put(
    "/password",
    response_model=MessageResponse,
    summary="Change password",
    responses={400: {"description": "Old password is incorrect"}},
)
async def change_password(
    data: ChangePasswordRequest,
    user: CurrentUser,
    auth_service: AuthServiceDep,
) -> MessageResponse:
    """Change the current user's password."""
    try:
        await auth_service.change_password(
            user.user_id, data.old_password, data.new_password
        )
    except AuthError as e:
        raise handle_auth_error(e) from e
    return MessageResponse(message="Password changed successfully")


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@router.put(
    "/users/{user_id}/role",
    response_model=UserResponse,
    summary="Change a user's role (admin)",
)
async def update_user_role(
    user_id: int,
    data: UpdateRoleRequest,
    _admin: AdminUser,
    auth_service: AuthServiceDep,
) -> UserResponse:
    try:
        user = await auth_service.update_user_role(user_id, data.role)
    except AuthError as e:
        raise handle_auth_error(e) from e
    return UserResponse.model_validate(user)
