"""
Pytest configuration and shared fixtures for testing.
"""
import io
from contextlib import asynccontextmanager
from datetime import date
from pathlib import Path
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.core.auth.security import create_access_token, hash_password, token_claims
from app.core.cache import ResponseCache, set_cache
from app.core.circuit_breaker import db_circuit_breaker
from app.core.config import settings
from app.main import app
from app.models import (
    ApprovalStatus,
    Base,
    Question,
    QuestionOrder,
    Subskala,
    Test,
    TestTarget,
    User,
    UserRole,
    get_db,
)

TEST_PASSWORD = "password123"


@asynccontextmanager
async def _test_lifespan(app):
    """No-op lifespan for tests.

    Tables are managed by the ``db_session`` fixture instead.
    """
    yield


# Neutralize the production lifespan on the singleton app.
app.router.lifespan_context = _test_lifespan


def create_test_application():
    """Create the production app with the lifespan disabled.

    Use this when a test needs a fresh app instance, e.g. with different
    settings patched in before construction.
    """
    from app.main import create_application

    test_app = create_application()
    test_app.router.lifespan_context = _test_lifespan
    return test_app


# Use SQLite for tests. The path is relative to this file so the .db
# lands inside tests/ regardless of the working directory.
_TEST_DB = Path(__file__).parent / "test.db"
SQLALCHEMY_DATABASE_URL = f"sqlite:///{_TEST_DB}"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(autouse=True)
def reset_shared_state(tmp_path, monkeypatch):
    """
    Give every test a fresh in-memory cache, a closed circuit breaker and
    its own upload directory.
    """
    set_cache(ResponseCache(enabled=True))
    db_circuit_breaker.reset()
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    yield
    set_cache(None)
    db_circuit_breaker.reset()


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.
    """
    Base.metadata.create_all(bind=engine)

    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """
    Create a test client with database dependency override.
    """

    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def make_image_bytes(fmt: str = "PNG", size=(16, 16), mode: str = "RGB") -> bytes:
    """Encode a solid-colour image so uploads carry real, decodable bytes."""
    buffer = io.BytesIO()
    Image.new(mode, size).save(buffer, fmt)
    return buffer.getvalue()


def make_user(
    db_session,
    username: str,
    role: UserRole,
    date_of_birth=None,
    phone_number=None,
) -> User:
    """Insert a user with ``TEST_PASSWORD`` as password."""
    user = User(
        username=username,
        name=f"{username.capitalize()} Tester",
        email=f"{username}@example.com",
        phone_number=phone_number,
        password_hash=hash_password(TEST_PASSWORD),
        role=role,
        date_of_birth=date_of_birth,
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def headers_for(user: User) -> Dict[str, str]:
    token = create_access_token(token_claims(user))
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def create_user(db_session) -> Callable[..., User]:
    """Factory fixture around ``make_user`` bound to the test session."""

    def factory(username: str, role: UserRole = UserRole.USER_SELF, **kwargs) -> User:
        return make_user(db_session, username, role, **kwargs)

    return factory


@pytest.fixture
def token_headers() -> Callable[[User], Dict[str, str]]:
    return headers_for


@pytest.fixture
def test_user(db_session):
    """An adult USER_SELF account, 20 years old this year."""
    return make_user(
        db_session,
        "testuser",
        UserRole.USER_SELF,
        date_of_birth=date(date.today().year - 20, 1, 15),
        phone_number="081234567890",
    )


@pytest.fixture
def parent_user(db_session):
    return make_user(
        db_session,
        "parentuser",
        UserRole.USER_PARENT,
        date_of_birth=date(date.today().year - 40, 6, 1),
    )


@pytest.fixture
def admin_user(db_session):
    return make_user(db_session, "adminuser", UserRole.ADMIN)


@pytest.fixture
def other_admin(db_session):
    return make_user(db_session, "otheradmin", UserRole.ADMIN)


@pytest.fixture
def superadmin_user(db_session):
    return make_user(db_session, "superadmin", UserRole.SUPERADMIN)


@pytest.fixture
def auth_headers(test_user):
    """
    Create authentication headers for test user.
    """
    return headers_for(test_user)


@pytest.fixture
def parent_headers(parent_user):
    return headers_for(parent_user)


@pytest.fixture
def admin_headers(admin_user):
    return headers_for(admin_user)


@pytest.fixture
def other_admin_headers(other_admin):
    return headers_for(other_admin)


@pytest.fixture
def superadmin_headers(superadmin_user):
    return headers_for(superadmin_user)


@pytest.fixture
def make_test(db_session) -> Callable[..., Test]:
    """
    Factory for a test with one subskala, ``n_questions`` questions and a
    saved question order.

    Bands: 0-4 Normal, 5-6 Borderline, 7-10 Abnormal. Options score 0, 1, 2.
    """

    def factory(
        status: ApprovalStatus = ApprovalStatus.APPROVED,
        target: TestTarget = TestTarget.SELF,
        min_age: int = 18,
        max_age: int = 30,
        n_questions: int = 3,
        title: str = "Strengths and Difficulties",
    ) -> Test:
        test = Test(
            title=title,
            short_desc="Screening questionnaire",
            long_desc="Behavioural screening questionnaire for young adults",
            min_age=min_age,
            max_age=max_age,
            target=target,
            status=status,
        )
        subskala = Subskala(
            name="Emotional",
            label1="Normal",
            description1="Within the typical range",
            min_value1=0,
            max_value1=4,
            label2="Borderline",
            description2="Slightly raised",
            min_value2=5,
            max_value2=6,
            label3="Abnormal",
            description3="High, consider follow-up",
            min_value3=7,
            max_value3=10,
        )
        subskala.questions = [
            Question(
                text=f"Question number {i + 1}",
                option1_value=0,
                option2_value=1,
                option3_value=2,
            )
            for i in range(n_questions)
        ]
        test.subskala = [subskala]
        db_session.add(test)
        db_session.commit()

        db_session.add_all(
            QuestionOrder(test_id=test.id, question_id=q.id, order=position)
            for position, q in enumerate(subskala.questions, start=1)
        )
        db_session.commit()
        db_session.refresh(test)
        return test

    return factory
