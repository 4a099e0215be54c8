"""Authentication service layer.

Business logic for:
- User registration and login
- Access token issuance and verification
- Logout via the token revocation registry
- Profile lookup and admin role changes
"""

from datetime import UTC, datetime

import structlog
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from learnhub.auth.models import User
from learnhub.auth.permissions import UserRole, parse_role
from learnhub.auth.revocation import TokenRevocationRegistry
from learnhub.auth.schemas import (
    AuthResponse,
    RegisterRequest,
    TokenClaims,
    UserResponse,
)
from learnhub.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from learnhub.config.settings import Settings
from learnhub.core.database import Database
from learnhub.core.exceptions import AppError


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class AuthError(AppError):
    """Base authentication error."""

    def __init__(self, message: str, code: str = "auth_error"):
        super().__init__(message, code)


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""

    def __init__(self, message: str = "Invalid email or password"):
        super().__init__(message, "invalid_credentials")


class DuplicateIdentityError(AuthError):
    """Email already registered."""

    def __init__(self, message: str = "Email already registered"):
        super().__init__(message, "duplicate_identity")


class InvalidRoleError(AuthError):
    """Role is not one of student, teacher, admin."""

    def __init__(self, message: str = "Invalid role"):
        super().__init__(message, "invalid_role")


class InvalidTokenError(AuthError):
    """Invalid or expired token."""

    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, "invalid_token")


class TokenRevokedError(AuthError):
    """Token was revoked by logout."""

    def __init__(self, message: str = "Token has been revoked"):
        super().__init__(message, "token_revoked")


class UserNotFoundError(AuthError):
    """User not found."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message, "user_not_found")


class InvalidOldPasswordError(AuthError):
    """Current password did not match on password change."""

    def __init__(self, message: str = "Old password is incorrect"):
        super().__init__(message, "invalid_old_password")


# ==============================================================================
# Auth Service
# ==============================================================================


class AuthService:
    """Credential and token service."""

    def __init__(
        self,
        db: Database,
        revocations: TokenRevocationRegistry,
        settings: Settings,
    ):
        self.db = db
        self.revocations = revocations
        self.settings = settings

    # ==========================================================================
    # User Operations
    # ==========================================================================

    async def get_user_by_email(self, email: str) -> User | None:
        """Find user by email address."""
        async with self.db.session() as session:
            result = await session.execute(
                select(User).where(User.email == email.lower())
            )
            return result.scalar_one_or_none()

    async def get_profile(self, user_id: int) -> User:
        """Get a user by ID.

        Raises:
            UserNotFoundError: If no such user exists
        """
        async with self.db.session() as session:
            user = await session.get(User, user_id)
        if user is None:
            raise UserNotFoundError
        return user

    async def register(self, data: RegisterRequest) -> AuthResponse:
        """Register a new user and issue an access token.

        Raises:
            InvalidRoleError: If the role is not one of the fixed set
            DuplicateIdentityError: If the email is already registered
        """
        role = parse_role(data.role)
        if role is None:
            raise InvalidRoleError

        email = data.email.lower()
        if await self.get_user_by_email(email):
            raise DuplicateIdentityError

        user = User(
            name=data.name,
            email=email,
            password_hash=hash_password(data.password),
            role=role.value,
        )

        # Unique constraint catches a registration racing the lookup above
        try:
            async with self.db.transaction() as session:
                session.add(user)
        except IntegrityError as e:
            raise DuplicateIdentityError from e

        logger.info("user_registered", user_id=user.id, role=user.role)
        return self._issue_token(user)

    async def authenticate(self, email: str, password: str) -> AuthResponse:
        """Authenticate with email and password and issue an access token.

        Unknown email and wrong password fail identically.

        Raises:
            InvalidCredentialsError: If email or password is wrong
        """
        user = await self.get_user_by_email(email)
        if not user:
            raise InvalidCredentialsError

        is_valid, new_hash = verify_password(password, user.password_hash)
        if not is_valid:
            logger.info("login_failed", user_id=user.id)
            raise InvalidCredentialsError

        # Update hash if needed (algorithm params changed)
        if new_hash:
            async with self.db.transaction() as session:
                stored = await session.get(User, user.id)
                if stored is not None:
                    stored.password_hash = new_hash
            logger.info("password_rehashed", user_id=user.id)

        logger.info("user_logged_in", user_id=user.id)
        return self._issue_token(user)

    async def change_password(
        self, user_id: int, old_password: str, new_password: str
    ) -> None:
        """Replace a user's password after checking the current one.

        Tokens issued before the change stay valid until they expire.

        Raises:
            UserNotFoundError: If no such user exists
            InvalidOldPasswordError: If the current password is wrong
        """
        async with self.db.transaction() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise UserNotFoundError

            is_valid, _ = verify_password(old_password, user.password_hash)
            if not is_valid:
                logger.info("password_change_failed", user_id=user_id)
                raise InvalidOldPasswordError

            user.password_hash = hash_password(new_password)

        logger.info("password_changed", user_id=user_id)

    async def update_user_role(self, user_id: int, role: UserRole | str) -> User:
        """Change a user's role (admin tooling).

        Raises:
            InvalidRoleError: If the role is not one of the fixed set
            UserNotFoundError: If no such user exists
        """
        new_role = parse_role(role)
        if new_role is None:
            raise InvalidRoleError

        async with self.db.transaction() as session:
            user = await session.get(User, user_id)
            if user is None:
                raise UserNotFoundError
            old_role = user.role
            user.role = new_role.value

        logger.info(
            "user_role_changed",
            target_user_id=user_id,
            old_role=old_role,
            new_role=new_role.value,
        )
        return user

    # ==========================================================================
    # Token Operations
    # ==========================================================================

    def _issue_token(self, user: User) -> AuthResponse:
        payload = {
            "sub": str(user.id),
            "email": user.email,
            "role": user.role,
        }
        token, _ = create_access_token(payload, settings=self.settings)
        return AuthResponse(
            access_token=token,
            expires_in=self.settings.auth_access_token_expire_minutes * 60,
            user=UserResponse.model_validate(user),
        )

    def verify_token(self, token: str) -> TokenClaims:
        """Verify signature, expiry and type of an access token.

        Does not consult the revocation registry; see ``authorize``.

        Raises:
            InvalidTokenError: If the token is invalid, expired or malformed
        """
        try:
            payload = decode_access_token(token, settings=self.settings)
            return TokenClaims(
                user_id=int(payload["sub"]),
                email=payload["email"],
                role=payload["role"],
                issued_at=datetime.fromtimestamp(payload["iat"], tz=UTC),
                expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
                jti=payload["jti"],
            )
        except (JWTError, KeyError, TypeError, ValueError) as e:
            raise InvalidTokenError from e

    def authorize(self, token: str) -> TokenClaims:
        """Protected-route check: revocation first, then verification.

        Raises:
            TokenRevokedError: If the token was logged out
            InvalidTokenError: If the token is invalid or expired
        """
        if self.revocations.is_revoked(token):
            raise TokenRevokedError
        return self.verify_token(token)

    def revoke(self, token: str) -> None:
        """Log out: remember the token as revoked until its own expiry.

        Raises:
            InvalidTokenError: If the token is invalid or expired
        """
        claims = self.verify_token(token)
        self.revocations.revoke(token, claims.expires_at)
        logger.info("token_revoked", user_id=claims.user_id, jti=claims.jti)
