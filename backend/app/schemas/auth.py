"""
Pydantic schemas for authentication endpoints.
"""
from datetime import date, datetime
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.core.validators import (
    DateOfBirthValidator,
    EmailValidator,
    PasswordValidator,
    PhoneValidator,
    StringSanitizer,
    UsernameValidator,
)
from app.models import UserRole
from app.schemas.base import CamelModel


def check_password(v: str) -> str:
    is_valid, error_message = PasswordValidator.validate(v)
    if not is_valid:
        raise ValueError(error_message)
    return v


def check_username(v: str) -> str:
    v = v.strip()
    is_valid, error_message = UsernameValidator.validate(v)
    if not is_valid:
        raise ValueError(error_message)
    return v


def check_phone(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    v = v.strip()
    is_valid, error_message = PhoneValidator.validate(v)
    if not is_valid:
        raise ValueError(error_message)
    return v


def check_date_of_birth(v: Optional[date]) -> Optional[date]:
    if v is None:
        return v
    is_valid, error_message = DateOfBirthValidator.validate(v)
    if not is_valid:
        raise ValueError(error_message)
    return v


def check_name(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    sanitized = StringSanitizer.sanitize_name(v)
    if len(sanitized) < 2 or len(sanitized) > 50:
        raise ValueError("Name must be between 2 and 50 characters")
    return sanitized


class UserRegister(CamelModel):
    """Schema for self-registration of an end user."""

    name: str = Field(..., description="Full name (2-50 characters)")
    username: str = Field(..., description="Unique username")
    email: EmailStr = Field(..., description="User email address")
    password: str = Field(
        ...,
        description=f"Password (at least {PasswordValidator.MIN_LENGTH} characters, one digit)",
    )
    phone_number: str = Field(..., description="Phone number")
    date_of_birth: date = Field(..., description="Date of birth (ISO 8601)")
    role: UserRole = Field(
        UserRole.USER_SELF, description="USER_SELF or USER_PARENT"
    )
    address: Optional[str] = Field(None, description="Postal address")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return check_name(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        return check_username(v)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Normalize email."""
        return EmailValidator.normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        """Validate password strength."""
        return check_password(v)

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: str) -> str:
        return check_phone(v)

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: date) -> date:
        return check_date_of_birth(v)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: UserRole) -> UserRole:
        if v not in (UserRole.USER_SELF, UserRole.USER_PARENT):
            raise ValueError("Role must be either USER_SELF or USER_PARENT")
        return v

    @field_validator("address")
    @classmethod
    def sanitize_address(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return StringSanitizer.sanitize_string(v) or None


class UserLogin(CamelModel):
    """Schema for login request."""

    username: str = Field(..., min_length=1, description="Username")
    password: str = Field(..., min_length=1, description="Password")


class RefreshTokenRequest(CamelModel):
    """Schema for exchanging a refresh token."""

    refresh_token: str = Field(..., min_length=1, description="JWT refresh token")


class UserResponse(CamelModel):
    """Public representation of a user. ``id`` is the user's UUID."""

    id: str = Field(..., description="User UUID")
    name: str
    username: str
    email: str
    phone_number: Optional[str] = None
    role: UserRole
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    profile_image: Optional[str] = None
    created_at: datetime

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.uuid,
            name=user.name,
            username=user.username,
            email=user.email,
            phone_number=user.phone_number,
            role=user.role,
            date_of_birth=user.date_of_birth,
            address=user.address,
            profile_image=user.profile_image,
            created_at=user.created_at,
        )


class LoginResponse(CamelModel):
    """Tokens issued at login."""

    access_token: str
    refresh_token: str
    user: UserResponse


class TokenRefreshResponse(CamelModel):
    """New access token issued from a refresh token."""

    access_token: str
