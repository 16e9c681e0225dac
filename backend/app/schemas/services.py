"""
Pydantic schemas for service offering endpoints.
"""
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import Field, field_validator

from app.core.validators import sanitize_text_input
from app.models import ApprovalStatus, ServiceCategory
from app.schemas.base import CamelModel
from app.schemas.blogs import Author


class ServiceCreate(CamelModel):
    title: str = Field(..., min_length=5, max_length=100)
    short_desc: str = Field(..., min_length=10, max_length=200)
    content: str = Field(..., min_length=50)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    category: ServiceCategory = ServiceCategory.GENERAL
    image_url: Optional[str] = None

    @field_validator("title", "short_desc", "content", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class ServiceUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    short_desc: Optional[str] = Field(None, min_length=10, max_length=200)
    content: Optional[str] = Field(None, min_length=50)
    price: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    category: Optional[ServiceCategory] = None
    image_url: Optional[str] = None

    @field_validator("title", "short_desc", "content", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class ServiceResponse(CamelModel):
    id: int
    title: str
    short_desc: str
    content: str
    image_url: Optional[str] = None
    price: Optional[float] = None
    category: ServiceCategory
    status: ApprovalStatus
    created_by: int
    author: Optional[Author] = None
    created_at: datetime
    updated_at: datetime
