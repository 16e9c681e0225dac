"""
Pydantic schemas for FAQ and FAQ answer endpoints.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator

from app.core.validators import sanitize_text_input
from app.schemas.base import CamelModel
from app.schemas.blogs import Author


class FaqCreate(CamelModel):
    question: str = Field(..., min_length=10, max_length=255)
    is_published: bool = False

    @field_validator("question", mode="before")
    @classmethod
    def sanitize_question(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class FaqUpdate(CamelModel):
    question: Optional[str] = Field(None, min_length=10, max_length=255)
    is_published: Optional[bool] = None

    @field_validator("question", mode="before")
    @classmethod
    def sanitize_question(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class FaqStatusUpdate(CamelModel):
    is_published: bool


class OrderItem(CamelModel):
    id: int = Field(..., ge=1)
    order: int = Field(..., ge=0)


class FaqOrderUpdate(CamelModel):
    ordered_faqs: List[OrderItem] = Field(..., min_length=1)


class AnswerOrderUpdate(CamelModel):
    ordered_answers: List[OrderItem] = Field(..., min_length=1)


class FaqAnswerCreate(CamelModel):
    faq_id: int = Field(..., ge=1)
    answer: str = Field(..., min_length=10)

    @field_validator("answer", mode="before")
    @classmethod
    def sanitize_answer(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class FaqAnswerUpdate(CamelModel):
    """Edit an answer's text and/or select it as the FAQ's answer."""

    answer: Optional[str] = Field(None, min_length=10)
    is_selected: Optional[bool] = None

    @field_validator("answer", mode="before")
    @classmethod
    def sanitize_answer(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class FaqAnswerResponse(CamelModel):
    id: int
    faq_id: int
    answer: str
    is_selected: bool
    order: int
    created_by: int
    created_at: datetime
    updated_at: datetime


class FaqResponse(CamelModel):
    id: int
    question: str
    is_published: bool
    order: int
    created_by: int
    author: Optional[Author] = None
    answers: List[FaqAnswerResponse] = []
    created_at: datetime
    updated_at: datetime


class PublicFaq(CamelModel):
    """Published FAQ with its selected answer, if any."""

    id: int
    question: str
    order: int
    answer: Optional[str] = None

    @classmethod
    def from_faq(cls, faq) -> "PublicFaq":
        selected = next((a for a in faq.answers if a.is_selected), None)
        return cls(
            id=faq.id,
            question=faq.question,
            order=faq.order,
            answer=selected.answer if selected else None,
        )
