"""
Tests for password hashing and JWT helpers.
"""
from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt

from app.core.auth.security import (
    TokenExpiredError,
    TokenInvalidError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    token_claims,
    verify_password,
    verify_token_type,
)
from app.core.config import settings


class TestPasswordHashing:
    def test_hash_and_verify(self):
        hashed = hash_password("secret123")

        assert hashed != "secret123"
        assert verify_password("secret123", hashed)
        assert not verify_password("secret124", hashed)

    def test_hashes_are_salted(self):
        assert hash_password("secret123") != hash_password("secret123")


class TestTokens:
    def test_claims(self):
        user = SimpleNamespace(id=3, uuid="c0ffee")

        assert token_claims(user) == {"id": 3, "uuid": "c0ffee"}

    def test_access_token_round_trip(self):
        payload = decode_token(create_access_token({"id": 1, "uuid": "abc"}))

        assert payload["id"] == 1
        assert payload["uuid"] == "abc"
        assert verify_token_type(payload, "access")
        assert not verify_token_type(payload, "refresh")

    def test_refresh_token_type(self):
        payload = decode_token(create_refresh_token({"id": 1, "uuid": "abc"}))

        assert payload["type"] == "refresh"

    def test_tokens_are_unique(self):
        data = {"id": 1, "uuid": "abc"}

        assert create_access_token(data) != create_access_token(data)

    def test_expired_token(self):
        token = create_access_token({"id": 1}, expires_delta=timedelta(seconds=-1))

        with pytest.raises(TokenExpiredError):
            decode_token(token)

    def test_wrong_signature(self):
        token = jwt.encode({"id": 1, "type": "access"}, "another-key", algorithm=settings.JWT_ALGORITHM)

        with pytest.raises(TokenInvalidError):
            decode_token(token)

    def test_garbage(self):
        with pytest.raises(TokenInvalidError):
            decode_token("not-a-jwt")
