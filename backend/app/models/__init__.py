"""
Models package for the ANSAC backend.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    User,
    Test,
    Subskala,
    Question,
    QuestionOrder,
    TestResult,
    TestResultSubskala,
    Blog,
    Faq,
    FaqAnswer,
    Gallery,
    GalleryImage,
    Service,
    UserRole,
    ApprovalStatus,
    TestTarget,
    ServiceCategory,
    STAFF_ROLES,
    END_USER_ROLES,
    authored_content_count,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "User",
    "Test",
    "Subskala",
    "Question",
    "QuestionOrder",
    "TestResult",
    "TestResultSubskala",
    "Blog",
    "Faq",
    "FaqAnswer",
    "Gallery",
    "GalleryImage",
    "Service",
    "UserRole",
    "ApprovalStatus",
    "TestTarget",
    "ServiceCategory",
    "STAFF_ROLES",
    "END_USER_ROLES",
    "authored_content_count",
]
