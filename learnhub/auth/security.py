"""Security utilities for authentication.

Provides:
- Password hashing with Argon2id (OWASP recommended)
- JWT access token creation and validation
"""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import uuid4

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError
from jose import JWTError, jwt

from learnhub.config.settings import Settings, get_settings


# Argon2id configuration (OWASP recommended parameters)
# https://cheatsheetseries.owasp.org/cheatsheets/Password_Storage_Cheat_Sheet.html
_password_hasher = PasswordHasher(
    time_cost=2,  # 2 iterations
    memory_cost=19456,  # 19 MiB (19456 KiB)
    parallelism=1,  # Single thread
    hash_len=32,  # 32-byte output
    salt_len=16,  # 16-byte random salt
)

ACCESS_TOKEN_TYPE = "access"


def hash_password(password: str) -> str:
    """Hash a password using Argon2id.

    The returned hash includes the algorithm parameters and salt,
    making it self-contained for verification.

    Example:
        >>> hashed = hash_password("my-secure-password")
        >>> hashed.startswith("$argon2id$")
        True
    """
    return _password_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> tuple[bool, str | None]:
    """Verify a password against its hash.

    Also checks if the hash needs rehashing (algorithm params changed).

    Args:
        password: Plain text password to verify
        password_hash: Stored Argon2id hash

    Returns:
        Tuple of (is_valid, new_hash):
        - is_valid: True if password matches
        - new_hash: New hash if rehash needed, None otherwise
    """
    try:
        _password_hasher.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False, None

    if _password_hasher.check_needs_rehash(password_hash):
        return True, hash_password(password)

    return True, None


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    settings: Settings | None = None,
) -> tuple[str, datetime]:
    """Create a JWT access token.

    Args:
        data: Payload data ({"sub": user_id, "email": email, "role": role})
        expires_delta: Token lifetime (default from settings)
        settings: Settings to sign with (default: cached settings)

    Returns:
        Tuple of (token, expires_at)

    Token payload includes:
        - All provided data
        - exp / iat: Expiration and issue timestamps
        - type: "access"
        - jti: Unique identifier, so two tokens issued in the same second differ
    """
    settings = settings or get_settings()

    issued_at = datetime.now(UTC)
    expires_at = issued_at + (
        expires_delta or timedelta(minutes=settings.auth_access_token_expire_minutes)
    )

    to_encode = data.copy()
    to_encode.update(
        {
            "exp": expires_at,
            "iat": issued_at,
            "type": ACCESS_TOKEN_TYPE,
            "jti": str(uuid4()),
        }
    )

    token = jwt.encode(
        to_encode,
        settings.auth_secret_key,
        algorithm=settings.auth_algorithm,
    )
    return token, expires_at


def decode_access_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Decode and validate an access token.

    Validates:
    - JWT signature
    - Expiration time
    - Token type == "access"

    Raises:
        JWTError: If token is invalid, expired, or wrong type
    """
    settings = settings or get_settings()

    payload = jwt.decode(
        token,
        settings.auth_secret_key,
        algorithms=[settings.auth_algorithm],
    )

    if payload.get("type") != ACCESS_TOKEN_TYPE:
        msg = "Invalid token type: expected 'access'"
        raise JWTError(msg)

    return payload
