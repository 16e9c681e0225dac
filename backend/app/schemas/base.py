"""
Base schema with camelCase wire names.
"""
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.models import ApprovalStatus


class CamelModel(BaseModel):
    """
    Base model for request and response bodies.

    Fields are declared in snake_case and exposed as camelCase. Input is
    accepted under either name.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


def blank_to_none(value):
    """Treat empty strings in partial updates as "not provided"."""
    if isinstance(value, str) and value.strip() == "":
        return None
    return value


class StatusUpdate(CamelModel):
    """Moderation decision for a test, blog, gallery or service."""

    status: ApprovalStatus = Field(
        ..., description="PENDING, APPROVED or REJECTED"
    )


class UploadResponse(CamelModel):
    """Stored image location and metadata. ``size`` is in MB."""

    image_url: str
    format: str
    size: str
