"""
Pydantic schemas for gallery endpoints.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from app.core.validators import sanitize_text_input
from app.models import ApprovalStatus
from app.schemas.base import CamelModel
from app.schemas.blogs import Author


class GalleryCreate(CamelModel):
    title: str = Field(..., min_length=3, max_length=100)

    @field_validator("title", mode="before")
    @classmethod
    def sanitize_title(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class GalleryUpdate(GalleryCreate):
    pass


class GalleryImageResponse(CamelModel):
    id: int
    gallery_id: int
    image_url: str
    is_thumbnail: bool
    created_at: datetime


class GalleryResponse(CamelModel):
    id: int
    title: str
    status: ApprovalStatus
    created_by: int
    author: Optional[Author] = None
    thumbnail_url: Optional[str] = None
    images: List[GalleryImageResponse] = []
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_gallery(cls, gallery, include_images: bool = True) -> "GalleryResponse":
        thumbnail = gallery.thumbnail
        return cls(
            id=gallery.id,
            title=gallery.title,
            status=gallery.status,
            created_by=gallery.created_by,
            author=Author.model_validate(gallery.author) if gallery.author else None,
            thumbnail_url=thumbnail.image_url if thumbnail else None,
            images=(
                [GalleryImageResponse.model_validate(i) for i in gallery.images]
                if include_images
                else []
            ),
            created_at=gallery.created_at,
            updated_at=gallery.updated_at,
        )


class GalleryUpdateResponse(CamelModel):
    gallery: GalleryResponse
    status_changed: bool


class GalleryUploadResponse(CamelModel):
    image_id: int
    image_url: str
    is_thumbnail: bool
    format: str
    size: str
