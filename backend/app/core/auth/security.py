"""
Security utilities for password hashing and JWT token management.
"""
from datetime import timedelta
import uuid

from app.core.datetime_utils import utc_now
from typing import Optional, Dict, Any
import bcrypt
from jose import ExpiredSignatureError, JWTError, jwt
from app.core.config import settings


class TokenError(Exception):
    """Base class for token decoding failures."""


class TokenExpiredError(TokenError):
    """The token signature is valid but its ``exp`` claim has passed."""


class TokenInvalidError(TokenError):
    """The token is malformed, tampered with, or signed with another key."""


def hash_password(password: str) -> str:
    """
    Hash a plain text password using bcrypt.

    Args:
        password: Plain text password to hash

    Returns:
        Hashed password string
    """
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a plain text password against a hashed password.

    Args:
        plain_password: Plain text password to verify
        hashed_password: Hashed password to verify against

    Returns:
        True if password matches, False otherwise
    """
    return bcrypt.checkpw(
        plain_password.encode("utf-8"), hashed_password.encode("utf-8")
    )


def _create_token(
    data: Dict[str, Any],
    token_type: str,
    expires_delta: Optional[timedelta],
    default_expires: timedelta,
) -> str:
    to_encode = data.copy()
    now = utc_now()
    expire = now + (expires_delta or default_expires)
    to_encode.update(
        {"exp": expire, "iat": now, "type": token_type, "jti": str(uuid.uuid4())}
    )
    return jwt.encode(
        to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM
    )


def token_claims(user) -> Dict[str, Any]:
    """Claims identifying a user inside access and refresh tokens."""
    return {"id": user.id, "uuid": user.uuid}


def create_access_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT access token.

    Args:
        data: Claims to encode (``id`` and ``uuid`` of the user)
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT token string
    """
    return _create_token(
        data=data,
        token_type="access",
        expires_delta=expires_delta,
        default_expires=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_refresh_token(
    data: Dict[str, Any], expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create a JWT refresh token.

    Args:
        data: Claims to encode (``id`` and ``uuid`` of the user)
        expires_delta: Optional custom expiration time delta

    Returns:
        Encoded JWT refresh token string
    """
    return _create_token(
        data=data,
        token_type="refresh",
        expires_delta=expires_delta,
        default_expires=timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS),
    )


def decode_token(token: str) -> Dict[str, Any]:
    """
    Decode and verify a JWT token.

    Args:
        token: JWT token string to decode

    Returns:
        Decoded token payload

    Raises:
        TokenExpiredError: If the token has expired
        TokenInvalidError: If the token cannot be verified
    """
    try:
        return jwt.decode(
            token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
        )
    except ExpiredSignatureError as e:
        raise TokenExpiredError(str(e)) from e
    except JWTError as e:
        raise TokenInvalidError(str(e)) from e


def verify_token_type(payload: Dict[str, Any], expected_type: str) -> bool:
    """Verify that a token payload has the expected type."""
    return payload.get("type") == expected_type
