"""
Pydantic schemas for psychological test authoring, taking and results.
"""
from datetime import datetime
from typing import Any, List, Optional

from pydantic import Field, field_validator, model_validator
from typing_extensions import Self

from app.core.scoring import validate_bands
from app.core.validators import sanitize_text_input
from app.models import ApprovalStatus, TestTarget
from app.schemas.base import CamelModel


# =============================================================================
# Tests
# =============================================================================


class TestCreate(CamelModel):
    """Schema for creating a test."""

    __test__ = False

    title: str = Field(..., min_length=3, max_length=100)
    short_desc: str = Field(..., min_length=1, max_length=200)
    long_desc: str = Field(..., min_length=1)
    min_age: int = Field(..., ge=1, le=100)
    max_age: int = Field(..., ge=1, le=100)
    target: TestTarget

    @field_validator("title", "short_desc", "long_desc", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)

    @model_validator(mode="after")
    def validate_age_range(self) -> Self:
        if self.max_age < self.min_age:
            raise ValueError("Maximum age must be greater than or equal to minimum age")
        return self


class TestUpdate(CamelModel):
    """Partial test update. The merged age range is re-checked by the endpoint."""

    __test__ = False

    title: Optional[str] = Field(None, min_length=3, max_length=100)
    short_desc: Optional[str] = Field(None, max_length=200)
    long_desc: Optional[str] = None
    min_age: Optional[int] = Field(None, ge=1, le=100)
    max_age: Optional[int] = Field(None, ge=1, le=100)
    target: Optional[TestTarget] = None

    @field_validator("title", "short_desc", "long_desc", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class TestResponse(CamelModel):
    __test__ = False

    id: int
    title: str
    short_desc: str
    long_desc: str
    min_age: int
    max_age: int
    target: TestTarget
    status: ApprovalStatus
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Subskala
# =============================================================================


class SubskalaCreate(CamelModel):
    """
    Schema for creating a subskala with its three category bands.

    Labels are fixed to Normal, Borderline and Abnormal; only the
    descriptions and thresholds are supplied.
    """

    test_id: int = Field(..., ge=1)
    name: str = Field(..., min_length=2, max_length=50)
    description1: str = Field(..., min_length=1)
    min_value1: int = Field(..., ge=0)
    max_value1: int = Field(..., ge=0)
    description2: str = Field(..., min_length=1)
    min_value2: int = Field(..., ge=0)
    max_value2: int = Field(..., ge=0)
    description3: str = Field(..., min_length=1)
    min_value3: int = Field(..., ge=0)
    max_value3: int = Field(..., ge=0)

    @field_validator("name", "description1", "description2", "description3", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)

    @model_validator(mode="after")
    def validate_band_order(self) -> Self:
        errors = validate_bands(
            self.min_value1,
            self.max_value1,
            self.min_value2,
            self.max_value2,
            self.min_value3,
            self.max_value3,
        )
        if errors:
            raise ValueError(errors[0])
        return self


class SubskalaUpdate(CamelModel):
    """Partial subskala update; bands are validated after merging."""

    name: Optional[str] = Field(None, min_length=2, max_length=50)
    description1: Optional[str] = None
    min_value1: Optional[int] = Field(None, ge=0)
    max_value1: Optional[int] = Field(None, ge=0)
    description2: Optional[str] = None
    min_value2: Optional[int] = Field(None, ge=0)
    max_value2: Optional[int] = Field(None, ge=0)
    description3: Optional[str] = None
    min_value3: Optional[int] = Field(None, ge=0)
    max_value3: Optional[int] = Field(None, ge=0)

    @field_validator("name", "description1", "description2", "description3", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class SubskalaResponse(CamelModel):
    id: int
    test_id: int
    name: str
    label1: str
    description1: str
    min_value1: int
    max_value1: int
    label2: str
    description2: str
    min_value2: int
    max_value2: int
    label3: str
    description3: str
    min_value3: int
    max_value3: int


# =============================================================================
# Questions
# =============================================================================


class QuestionCreate(CamelModel):
    """Question with the values of its three fixed options."""

    subskala_id: int = Field(..., ge=1)
    text: str = Field(..., min_length=5)
    option1_value: int
    option2_value: int
    option3_value: int

    @field_validator("text", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class QuestionUpdate(CamelModel):
    text: Optional[str] = Field(None, min_length=5)
    option1_value: Optional[int] = None
    option2_value: Optional[int] = None
    option3_value: Optional[int] = None

    @field_validator("text", mode="before")
    @classmethod
    def sanitize_text(cls, v: Any) -> Any:
        return sanitize_text_input(v)


class QuestionResponse(CamelModel):
    id: int
    subskala_id: int
    text: str
    option1_label: str
    option1_value: int
    option2_label: str
    option2_value: int
    option3_label: str
    option3_value: int


class QuestionOrderCreate(CamelModel):
    test_id: int = Field(..., ge=1)


# =============================================================================
# Taking a test
# =============================================================================


class AnswerOption(CamelModel):
    label: str
    value: int


class TestQuestion(CamelModel):
    """A question as presented to a test taker."""

    __test__ = False

    id: int
    text: str
    options: List[AnswerOption]

    @classmethod
    def from_question(cls, question) -> "TestQuestion":
        return cls(
            id=question.id,
            text=question.text,
            options=[
                AnswerOption(label=question.option1_label, value=question.option1_value),
                AnswerOption(label=question.option2_label, value=question.option2_value),
                AnswerOption(label=question.option3_label, value=question.option3_value),
            ],
        )


class TestSummary(CamelModel):
    __test__ = False

    id: int
    title: str
    short_desc: str
    long_desc: str


class StartTestResponse(CamelModel):
    test: TestSummary
    questions: List[TestQuestion]


class AnswerItem(CamelModel):
    question_id: int = Field(..., ge=1)
    value: int


class SubmitAnswers(CamelModel):
    """Answers for one test attempt."""

    test_id: int = Field(..., ge=1)
    answers: List[AnswerItem] = Field(..., min_length=1)


# =============================================================================
# Results
# =============================================================================


class SubskalaResultItem(CamelModel):
    """Categorized score of one subskala in a result."""

    subskala: str
    score: int
    category: str
    description: str


class SubmitResultResponse(CamelModel):
    test_result_id: int
    results: List[SubskalaResultItem]


class TestResultDetail(CamelModel):
    __test__ = False

    test_result_id: int
    title: str
    created_at: datetime
    results: List[SubskalaResultItem]


class TestResultListItem(CamelModel):
    __test__ = False

    test_result_id: int
    test_id: int
    title: str
    created_at: datetime
    user_id: int


class ResultUser(CamelModel):
    id: Optional[int] = None
    name: str
    email: str
    phone_number: Optional[str] = None


class AdminSubskalaResult(CamelModel):
    name: str
    score: int
    category: str
    description: str


class TestResultByTest(CamelModel):
    """A submission as listed for staff, per test."""

    __test__ = False

    id: int
    user_id: int
    test_id: int
    created_at: datetime
    user: ResultUser
    subskala_results: List[AdminSubskalaResult]


class AdminTestResultDetail(CamelModel):
    test_result_id: int
    title: str
    created_at: datetime
    user: ResultUser
    results: List[SubskalaResultItem]
