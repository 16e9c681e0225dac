"""
Database models for the ANSAC application.
"""
from sqlalchemy import (
    Column,
    Integer,
    String,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Text,
    Enum,
    Numeric,
    UniqueConstraint,
    Index,
)
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
import uuid

from .base import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_uuid() -> str:
    return str(uuid.uuid4())


class UserRole(str, enum.Enum):
    """Account role enumeration."""

    ADMIN = "ADMIN"
    SUPERADMIN = "SUPERADMIN"
    USER_SELF = "USER_SELF"
    USER_PARENT = "USER_PARENT"


class ApprovalStatus(str, enum.Enum):
    """Moderation status shared by tests, blogs, galleries and services."""

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class TestTarget(str, enum.Enum):
    """Who a psychological test is meant to be taken by."""

    __test__ = False  # not a pytest test class

    SELF = "SELF"
    PARENT = "PARENT"


class ServiceCategory(str, enum.Enum):
    """Service category enumeration."""

    GENERAL = "GENERAL"
    CONSULTING = "CONSULTING"
    ASSESSMENT = "ASSESSMENT"
    THERAPY = "THERAPY"
    WORKSHOP = "WORKSHOP"
    TRAINING = "TRAINING"
    OTHER = "OTHER"


# Roles that manage content rather than take tests
STAFF_ROLES = (UserRole.ADMIN, UserRole.SUPERADMIN)
# Roles that can be chosen at self-registration
END_USER_ROLES = (UserRole.USER_SELF, UserRole.USER_PARENT)


class User(Base):
    """User model for authentication and profile."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_new_uuid)
    username = Column(String(30), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone_number = Column(String(20), unique=True, nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, default=UserRole.USER_SELF)
    date_of_birth = Column(Date, nullable=True)
    address = Column(Text, nullable=False, default="No address provided")
    profile_image = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    test_results = relationship(
        "TestResult", back_populates="user", cascade="all, delete-orphan"
    )
    blogs = relationship("Blog", back_populates="author")
    faqs = relationship("Faq", back_populates="author")
    galleries = relationship("Gallery", back_populates="author")
    services = relationship("Service", back_populates="author")


class Test(Base):
    """Psychological test made of subskala and questions."""

    __tablename__ = "tests"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    short_desc = Column(String(200), nullable=False)
    long_desc = Column(Text, nullable=False)
    min_age = Column(Integer, nullable=False)
    max_age = Column(Integer, nullable=False)
    target = Column(Enum(TestTarget), nullable=False)
    status = Column(
        Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING
    )
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    subskala = relationship(
        "Subskala",
        back_populates="test",
        cascade="all, delete-orphan",
        order_by="Subskala.id",
    )
    question_orders = relationship(
        "QuestionOrder", back_populates="test", cascade="all, delete-orphan"
    )
    results = relationship(
        "TestResult", back_populates="test", cascade="all, delete-orphan"
    )

    __table_args__ = (Index("ix_tests_status", "status"),)


class Subskala(Base):
    """Scored sub-dimension of a test with three category bands."""

    __tablename__ = "subskala"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name = Column(String(50), nullable=False)

    label1 = Column(String(50), nullable=False, default="Normal")
    description1 = Column(Text, nullable=False)
    min_value1 = Column(Integer, nullable=False)
    max_value1 = Column(Integer, nullable=False)

    label2 = Column(String(50), nullable=False, default="Borderline")
    description2 = Column(Text, nullable=False)
    min_value2 = Column(Integer, nullable=False)
    max_value2 = Column(Integer, nullable=False)

    label3 = Column(String(50), nullable=False, default="Abnormal")
    description3 = Column(Text, nullable=False)
    min_value3 = Column(Integer, nullable=False)
    max_value3 = Column(Integer, nullable=False)

    # Relationships
    test = relationship("Test", back_populates="subskala")
    questions = relationship(
        "Question",
        back_populates="subskala",
        cascade="all, delete-orphan",
        order_by="Question.id",
    )
    result_rows = relationship(
        "TestResultSubskala", back_populates="subskala", cascade="all, delete-orphan"
    )


class Question(Base):
    """Question with three fixed answer options."""

    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    subskala_id = Column(
        Integer,
        ForeignKey("subskala.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    text = Column(Text, nullable=False)

    option1_label = Column(String(50), nullable=False, default="Tidak Benar")
    option1_value = Column(Integer, nullable=False)
    option2_label = Column(String(50), nullable=False, default="Agak Benar")
    option2_value = Column(Integer, nullable=False)
    option3_label = Column(String(50), nullable=False, default="Benar")
    option3_value = Column(Integer, nullable=False)

    # Relationships
    subskala = relationship("Subskala", back_populates="questions")
    orders = relationship(
        "QuestionOrder", back_populates="question", cascade="all, delete-orphan"
    )


class QuestionOrder(Base):
    """Fixed presentation order of a test's questions."""

    __tablename__ = "question_orders"

    id = Column(Integer, primary_key=True, index=True)
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    question_id = Column(
        Integer, ForeignKey("questions.id", ondelete="CASCADE"), nullable=False
    )
    order = Column(Integer, nullable=False)

    # Relationships
    test = relationship("Test", back_populates="question_orders")
    question = relationship("Question", back_populates="orders")

    __table_args__ = (
        UniqueConstraint("test_id", "question_id", name="uq_question_order"),
    )


class TestResult(Base):
    """One submission of a test by a user."""

    __tablename__ = "test_results"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    test_id = Column(
        Integer, ForeignKey("tests.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)

    # Relationships
    user = relationship("User", back_populates="test_results")
    test = relationship("Test", back_populates="results")
    subskala_results = relationship(
        "TestResultSubskala",
        back_populates="test_result",
        cascade="all, delete-orphan",
        order_by="TestResultSubskala.id",
    )


class TestResultSubskala(Base):
    """Score and category for one subskala within a test result."""

    __tablename__ = "test_result_subskala"
    __test__ = False

    id = Column(Integer, primary_key=True, index=True)
    test_result_id = Column(
        Integer,
        ForeignKey("test_results.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    subskala_id = Column(
        Integer, ForeignKey("subskala.id", ondelete="CASCADE"), nullable=False
    )
    score = Column(Integer, nullable=False)
    category = Column(String(50), nullable=False)
    description = Column(Text, nullable=False)

    # Relationships
    test_result = relationship("TestResult", back_populates="subskala_results")
    subskala = relationship("Subskala", back_populates="result_rows")


class Blog(Base):
    """Blog post written by an admin."""

    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, index=True)
    uuid = Column(String(36), unique=True, nullable=False, default=_new_uuid)
    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=False)
    status = Column(
        Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    author = relationship("User", back_populates="blogs")


class Faq(Base):
    """Frequently asked question."""

    __tablename__ = "faqs"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(String(255), nullable=False)
    is_published = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    author = relationship("User", back_populates="faqs")
    answers = relationship(
        "FaqAnswer",
        back_populates="faq",
        cascade="all, delete-orphan",
        order_by="FaqAnswer.order",
    )


class FaqAnswer(Base):
    """Candidate answer to a FAQ; at most one is selected."""

    __tablename__ = "faq_answers"

    id = Column(Integer, primary_key=True, index=True)
    faq_id = Column(
        Integer, ForeignKey("faqs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    answer = Column(Text, nullable=False)
    is_selected = Column(Boolean, nullable=False, default=False)
    order = Column(Integer, nullable=False, default=0)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    faq = relationship("Faq", back_populates="answers")


class Gallery(Base):
    """Photo gallery owned by an admin."""

    __tablename__ = "galleries"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    status = Column(
        Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    author = relationship("User", back_populates="galleries")
    images = relationship(
        "GalleryImage",
        back_populates="gallery",
        cascade="all, delete-orphan",
        order_by="GalleryImage.id",
    )

    @property
    def thumbnail(self):
        """The image flagged as thumbnail, if any."""
        return next((image for image in self.images if image.is_thumbnail), None)


class GalleryImage(Base):
    """Image stored in a gallery."""

    __tablename__ = "gallery_images"

    id = Column(Integer, primary_key=True, index=True)
    gallery_id = Column(
        Integer,
        ForeignKey("galleries.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    image_url = Column(String(500), nullable=False)
    is_thumbnail = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)

    # Relationships
    gallery = relationship("Gallery", back_populates="images")


class Service(Base):
    """Service offered by the organisation."""

    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    short_desc = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    image_url = Column(String(500), nullable=True)
    price = Column(Numeric(12, 2), nullable=True)
    category = Column(
        Enum(ServiceCategory), nullable=False, default=ServiceCategory.GENERAL
    )
    status = Column(
        Enum(ApprovalStatus), nullable=False, default=ApprovalStatus.PENDING
    )
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False
    )

    # Relationships
    author = relationship("User", back_populates="services")


def authored_content_count(session, user_id: int) -> int:
    """Blogs, FAQs, FAQ answers, galleries and services created by ``user_id``."""
    return sum(
        session.query(model).filter(model.created_by == user_id).count()
        for model in (Blog, Faq, FaqAnswer, Gallery, Service)
    )
