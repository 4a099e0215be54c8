"""Tests for auth security functions."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import JWTError, jwt

from learnhub.auth.permissions import UserRole
from learnhub.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)
from learnhub.config import Settings


class TestPasswordHashing:
    """Tests for password hashing functions."""

    def test_hash_password_creates_hash(self) -> None:
        """Hash should be different from plain password."""
        password = "SecureP@ssword123"
        hashed = hash_password(password)
        assert hashed != password
        assert len(hashed) > 0

    def test_hash_password_unique_hashes(self) -> None:
        """Same password should produce different hashes (due to salt)."""
        password = "SecureP@ssword123"
        assert hash_password(password) != hash_password(password)

    def test_verify_password_correct(self) -> None:
        password = "SecureP@ssword123"
        is_valid, new_hash = verify_password(password, hash_password(password))
        assert is_valid is True
        assert new_hash is None

    def test_verify_password_incorrect(self) -> None:
        hashed = hash_password("SecureP@ssword123")
        is_valid, new_hash = verify_password("WrongP@ssword456", hashed)
        assert is_valid is False
        assert new_hash is None

    def test_verify_password_garbage_hash(self) -> None:
        """A malformed stored hash fails verification instead of raising."""
        is_valid, _new_hash = verify_password("secret123", "not-a-hash")
        assert is_valid is False

    def test_hash_is_argon2(self) -> None:
        assert hash_password("SecureP@ssword123").startswith("$argon2id$")


class TestAccessToken:
    """Tests for access token creation and decoding."""

    @pytest.fixture
    def payload(self) -> dict[str, str]:
        return {
            "sub": "42",
            "email": "test@example.com",
            "role": UserRole.STUDENT.value,
        }

    def test_decode_access_token(
        self, payload: dict[str, str], settings: Settings
    ) -> None:
        token, expires_at = create_access_token(payload, settings=settings)
        decoded = decode_access_token(token, settings=settings)

        assert decoded["sub"] == "42"
        assert decoded["email"] == "test@example.com"
        assert decoded["role"] == "student"
        assert decoded["type"] == "access"
        assert decoded["exp"] == int(expires_at.timestamp())
        assert "iat" in decoded

    def test_default_lifetime_from_settings(
        self, payload: dict[str, str], settings: Settings
    ) -> None:
        before = datetime.now(UTC)
        _, expires_at = create_access_token(payload, settings=settings)
        expected = before + timedelta(minutes=settings.auth_access_token_expire_minutes)
        assert abs((expires_at - expected).total_seconds()) < 5

    def test_tokens_have_unique_jti(
        self, payload: dict[str, str], settings: Settings
    ) -> None:
        """Two tokens for the same user issued in the same second differ."""
        first, _ = create_access_token(payload, settings=settings)
        second, _ = create_access_token(payload, settings=settings)
        assert first != second

    def test_decode_access_token_expired(
        self, payload: dict[str, str], settings: Settings
    ) -> None:
        token, _ = create_access_token(
            payload, expires_delta=timedelta(seconds=-1), settings=settings
        )
        with pytest.raises(JWTError):
            decode_access_token(token, settings=settings)

    def test_decode_access_token_invalid(self, settings: Settings) -> None:
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here", settings=settings)

    def test_decode_access_token_wrong_secret(
        self, payload: dict[str, str], settings: Settings
    ) -> None:
        token, _ = create_access_token(payload, settings=settings)
        other = settings.model_copy(
            update={"auth_secret_key": "another-secret-key-of-at-least-32-chars"}
        )
        with pytest.raises(JWTError):
            decode_access_token(token, settings=other)

    def test_decode_access_token_wrong_type(
        self, payload: dict[str, str], settings: Settings
    ) -> None:
        """Should raise JWTError if token type is not 'access'."""
        token = jwt.encode(
            {
                **payload,
                "type": "refresh",
                "exp": datetime.now(UTC) + timedelta(minutes=5),
            },
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError, match="expected 'access'"):
            decode_access_token(token, settings=settings)
