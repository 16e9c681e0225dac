"""
Pydantic schemas for blog endpoints.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from app.core.validators import sanitize_text_input
from app.models import ApprovalStatus
from app.schemas.base import CamelModel


class BlogCreate(CamelModel):
    """Schema for creating a blog post. The image must be uploaded first."""

    title: str = Field(..., min_length=5, max_length=100)
    content: str = Field(..., min_length=50)
    image_url: Optional[str] = Field(None, description="URL returned by the upload endpoint")

    @field_validator("title", "content", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class BlogUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=5, max_length=100)
    content: Optional[str] = Field(None, min_length=50)
    image_url: Optional[str] = None

    @field_validator("title", "content", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class Author(CamelModel):
    id: int
    name: str


class BlogResponse(CamelModel):
    id: str = Field(..., description="Blog UUID")
    title: str
    content: str
    image_url: str
    status: ApprovalStatus
    created_by: int
    author: Optional[Author] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_blog(cls, blog) -> "BlogResponse":
        return cls(
            id=blog.uuid,
            title=blog.title,
            content=blog.content,
            image_url=blog.image_url,
            status=blog.status,
            created_by=blog.created_by,
            author=Author.model_validate(blog.author) if blog.author else None,
            created_at=blog.created_at,
            updated_at=blog.updated_at,
        )


class BlogUpdateResponse(CamelModel):
    blog: BlogResponse
    status_changed: bool
