"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Auth service
- Current user extraction from the bearer token
- Capability checks
- Auth error translation
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from learnhub.auth.permissions import Capability, has_capability
from learnhub.auth.schemas import TokenClaims
from learnhub.auth.service import AuthError, AuthService
from learnhub.core.context import set_user_id


async def get_auth_service(request: Request) -> AuthService:
    """Get auth service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "auth_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Authentication service not available",
        )
    return app_state.auth_service


AuthServiceDep = Annotated[AuthService, Depends(get_auth_service)]


def handle_auth_error(error: AuthError) -> HTTPException:
    """Convert AuthError to HTTPException."""
    status_map = {
        "invalid_credentials": status.HTTP_401_UNAUTHORIZED,
        "duplicate_identity": status.HTTP_409_CONFLICT,
        "invalid_role": status.HTTP_400_BAD_REQUEST,
        "invalid_token": status.HTTP_401_UNAUTHORIZED,
        "token_revoked": status.HTTP_401_UNAUTHORIZED,
        "user_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_old_password": status.HTTP_400_BAD_REQUEST,
    }

    status_code = status_map.get(error.code, status.HTTP_400_BAD_REQUEST)
    headers = (
        {"WWW-Authenticate": "Bearer"}
        if status_code == status.HTTP_401_UNAUTHORIZED
        else None
    )
    return HTTPException(status_code=status_code, detail=error.message, headers=headers)


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header.

    Returns:
        Token string or None if not present
    """
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_bearer_token(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> str:
    """Require a bearer token."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token not provided",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return token


async def get_current_user(
    token: Annotated[str, Depends(get_bearer_token)],
    auth_service: AuthServiceDep,
) -> TokenClaims:
    """Get current authenticated user from the access token.

    Rejects revoked tokens before checking signature and expiry.

    Raises:
        HTTPException(401): If token is missing, revoked, invalid, or expired
    """
    try:
        claims = auth_service.authorize(token)
    except AuthError as e:
        raise handle_auth_error(e) from e

    # Set user_id in context for logging
    set_user_id(claims.user_id)
    return claims


def require_capability(capability: Capability):
    """Create dependency requiring a role capability.

    Example:
        @router.post("/courses")
        async def create_course(
            user: Annotated[
                TokenClaims, Depends(require_capability(Capability.AUTHOR_COURSES))
            ],
        ):
            ...
    """

    async def capability_checker(
        user: Annotated[TokenClaims, Depends(get_current_user)],
    ) -> TokenClaims:
        if not has_capability(user.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return user

    return capability_checker


# ==============================================================================
# Type Aliases for Cleaner Code
# ==============================================================================

BearerToken = Annotated[str, Depends(get_bearer_token)]

CurrentUser = Annotated[TokenClaims, Depends(get_current_user)]

StudentUser = Annotated[TokenClaims, Depends(require_capability(Capability.ENROLL))]
LearnerUser = Annotated[
    TokenClaims, Depends(require_capability(Capability.TRACK_PROGRESS))
]
AuthorUser = Annotated[
    TokenClaims, Depends(require_capability(Capability.AUTHOR_COURSES))
]
AdminUser = Annotated[TokenClaims, Depends(require_capability(Capability.MANAGE_USERS))]
