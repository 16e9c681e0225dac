"""
Pydantic schemas for profile management endpoints.
"""
from datetime import date
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.core.validators import EmailValidator, StringSanitizer
from app.models import UserRole
from app.schemas.auth import (
    check_date_of_birth,
    check_name,
    check_password,
    check_phone,
    check_username,
)
from app.schemas.base import CamelModel, blank_to_none


class UserUpdate(CamelModel):
    """
    Partial profile update.

    Empty strings are treated as "not provided" so forms can submit every
    field without clearing the ones left blank.
    """

    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    role: Optional[UserRole] = None
    profile_image: Optional[str] = None

    @field_validator("*", mode="before")
    @classmethod
    def ignore_blank(cls, v):
        return blank_to_none(v)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return check_name(v)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: Optional[str]) -> Optional[str]:
        return check_username(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: Optional[str]) -> Optional[str]:
        return EmailValidator.normalize_email(v) if v is not None else v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        return check_phone(v)

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: Optional[date]) -> Optional[date]:
        return check_date_of_birth(v)

    @field_validator("address")
    @classmethod
    def sanitize_address(cls, v: Optional[str]) -> Optional[str]:
        return StringSanitizer.sanitize_string(v) if v is not None else v

    @field_validator("role")
    @classmethod
    def validate_role(cls, v: Optional[UserRole]) -> Optional[UserRole]:
        if v is not None and v not in (UserRole.USER_SELF, UserRole.USER_PARENT):
            raise ValueError("Role must be either USER_SELF or USER_PARENT")
        return v


class CheckPasswordRequest(CamelModel):
    old_password: str = Field(..., min_length=1, description="Current password")


class ChangePasswordRequest(CamelModel):
    """Password change; ``confirm_password`` must equal ``new_password``."""

    old_password: str = Field(..., min_length=1, description="Current password")
    new_password: str = Field(..., description="New password")
    confirm_password: str = Field(..., min_length=1, description="New password again")

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password(v)
