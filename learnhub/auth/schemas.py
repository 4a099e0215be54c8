"""Pydantic schemas for authentication.

Request and response models for:
- User registration and login
- Token responses
- User profile
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from learnhub.auth.permissions import UserRole


# ==============================================================================
# Request Schemas
# ==============================================================================


class RegisterRequest(BaseModel):
    """User registration request.

    ``role`` is checked against the fixed role set by the service, so an
    unknown role is reported as ``invalid_role`` rather than a validation error.
    """

    name: str = Field(..., min_length=1, max_length=255, description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., min_length=6, description="Password")
    role: str = Field(..., description="student, teacher or admin")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Name must not be blank"
            raise ValueError(msg)
        return v

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class LoginRequest(BaseModel):
    """User login request."""

    email: EmailStr = Field(..., description="Email address")
    password: str = Field(..., description="Password")

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v: str) -> str:
        return v.lower()


class ChangePasswordRequest(BaseModel):
    """Password change request for the current user."""

    old_password: str = Field(..., description="Current password")
    new_password: str = Field(..., min_length=6, description="New password")


class UpdateRoleRequest(BaseModel):
    """Role change request (admin only)."""

    role: str = Field(..., description="student, teacher or admin")


# ==============================================================================
# Response Schemas
# ==============================================================================


class UserResponse(BaseModel):
    """User response (public profile)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    role: UserRole
    created_at: datetime | None = None


class AuthResponse(BaseModel):
    """Token issued on registration or login."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int = Field(..., description="Token expiration in seconds")
    user: UserResponse


class MessageResponse(BaseModel):
    """Generic message response."""

    message: str


# ==============================================================================
# Internal Schemas (not exposed in API)
# ==============================================================================


class TokenClaims(BaseModel):
    """Verified claims of an access token."""

    user_id: int
    email: str
    role: UserRole
    issued_at: datetime
    expires_at: datetime
    jti: str
