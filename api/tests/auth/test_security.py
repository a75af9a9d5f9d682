"""Tests for auth security functions and the current-user dependency."""

from datetime import timedelta
from uuid import uuid4

import pytest
from fastapi import HTTPException
from jose import JWTError, jwt

from src.auth.dependencies import get_current_user
from src.auth.schemas import UserRole
from src.auth.security import create_access_token, decode_access_token
from src.config.settings import get_settings


class TestAccessToken:
    """Tests for access token creation and decoding."""

    def test_create_access_token(self) -> None:
        token = create_access_token({"sub": str(uuid4())})
        assert token is not None
        assert len(token) > 0

    def test_decode_access_token(self) -> None:
        """Should decode token and return payload."""
        user_id = uuid4()
        data = {
            "sub": str(user_id),
            "email": "student@example.com",
            "role": UserRole.STUDENT.value,
        }
        token = create_access_token(data)
        payload = decode_access_token(token)

        assert payload["sub"] == str(user_id)
        assert payload["email"] == "student@example.com"
        assert payload["role"] == "student"
        assert payload["type"] == "access"
        assert "exp" in payload
        assert "iat" in payload

    def test_decode_access_token_expired(self) -> None:
        token = create_access_token(
            {"sub": str(uuid4())}, expires_delta=timedelta(seconds=-1)
        )
        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_decode_access_token_invalid(self) -> None:
        with pytest.raises(JWTError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_type(self) -> None:
        """Should raise JWTError if token type is not 'access'."""
        settings = get_settings()
        token = jwt.encode(
            {"sub": str(uuid4()), "type": "refresh"},
            settings.auth_secret_key,
            algorithm=settings.auth_algorithm,
        )
        with pytest.raises(JWTError, match="expected 'access'"):
            decode_access_token(token)

    def test_decode_access_token_missing_sub(self) -> None:
        token = create_access_token({"email": "nobody@example.com"})
        with pytest.raises(JWTError, match="sub"):
            decode_access_token(token)


@pytest.mark.asyncio
class TestGetCurrentUser:
    async def test_valid_token(self) -> None:
        user_id = uuid4()
        token = create_access_token(
            {"sub": str(user_id), "role": UserRole.INSTRUCTOR.value}
        )

        user = await get_current_user(token)

        assert user.id == user_id
        assert user.role == UserRole.INSTRUCTOR

    async def test_default_role_is_student(self) -> None:
        token = create_access_token({"sub": str(uuid4())})
        user = await get_current_user(token)
        assert user.role == UserRole.STUDENT

    async def test_missing_token(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(None)
        assert exc_info.value.status_code == 401

    async def test_non_uuid_subject_rejected(self) -> None:
        token = create_access_token({"sub": "not-a-uuid"})
        with pytest.raises(HTTPException) as exc_info:
            await get_current_user(token)
        assert exc_info.value.status_code == 401
