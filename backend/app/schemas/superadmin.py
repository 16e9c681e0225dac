"""
Pydantic schemas for superadmin account management.
"""
from datetime import date
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from app.core.validators import EmailValidator
from app.models import UserRole
from app.schemas.auth import check_name, check_password, check_phone, check_username
from app.schemas.base import CamelModel, blank_to_none


class AccountCreate(CamelModel):
    """Schema for creating an account of any role."""

    name: str = Field(..., description="Full name (2-50 characters)")
    username: str = Field(..., description="Unique username")
    email: EmailStr
    password: str
    role: UserRole
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None

    @field_validator("phone_number", "date_of_birth", "address", mode="before")
    @classmethod
    def ignore_blank(cls, v):
        return blank_to_none(v)

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
        return EmailValidator.normalize_email(v)

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password(v)

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        return check_phone(v)


class AccountUpdate(CamelModel):
    """Partial account update. A supplied password is re-hashed."""

    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    role: Optional[UserRole] = None
    phone_number: Optional[str] = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None

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

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: Optional[str]) -> Optional[str]:
        return check_password(v) if v is not None else v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        return check_phone(v)


class AccountSummary(CamelModel):
    """Account as listed for the superadmin."""

    id: int
    name: str
    username: str
    email: str
    phone_number: Optional[str] = None


class AccountDetail(AccountSummary):
    uuid: str
    role: UserRole
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
