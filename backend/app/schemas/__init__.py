"""
Pydantic schemas for request/response validation.
"""
from .base import CamelModel, StatusUpdate, UploadResponse
from .auth import (
    UserRegister,
    UserLogin,
    RefreshTokenRequest,
    UserResponse,
    LoginResponse,
    TokenRefreshResponse,
)
from .users import UserUpdate, CheckPasswordRequest, ChangePasswordRequest
from .tests import (
    TestCreate,
    TestUpdate,
    TestResponse,
    SubskalaCreate,
    SubskalaUpdate,
    SubskalaResponse,
    QuestionCreate,
    QuestionUpdate,
    QuestionResponse,
    QuestionOrderCreate,
    StartTestResponse,
    SubmitAnswers,
    SubmitResultResponse,
    TestResultDetail,
    TestResultListItem,
    TestResultByTest,
    AdminTestResultDetail,
)
from .superadmin import AccountCreate, AccountUpdate, AccountSummary, AccountDetail
from .blogs import BlogCreate, BlogUpdate, BlogResponse, BlogUpdateResponse
from .faqs import (
    FaqCreate,
    FaqUpdate,
    FaqStatusUpdate,
    FaqOrderUpdate,
    AnswerOrderUpdate,
    FaqAnswerCreate,
    FaqAnswerUpdate,
    FaqAnswerResponse,
    FaqResponse,
    PublicFaq,
)
from .galleries import (
    GalleryCreate,
    GalleryUpdate,
    GalleryResponse,
    GalleryUpdateResponse,
    GalleryImageResponse,
    GalleryUploadResponse,
)
from .services import ServiceCreate, ServiceUpdate, ServiceResponse

__all__ = [
    "CamelModel",
    "StatusUpdate",
    "UploadResponse",
    "UserRegister",
    "UserLogin",
    "RefreshTokenRequest",
    "UserResponse",
    "LoginResponse",
    "TokenRefreshResponse",
    "UserUpdate",
    "CheckPasswordRequest",
    "ChangePasswordRequest",
    "TestCreate",
    "TestUpdate",
    "TestResponse",
    "SubskalaCreate",
    "SubskalaUpdate",
    "SubskalaResponse",
    "QuestionCreate",
    "QuestionUpdate",
    "QuestionResponse",
    "QuestionOrderCreate",
    "StartTestResponse",
    "SubmitAnswers",
    "SubmitResultResponse",
    "TestResultDetail",
    "TestResultListItem",
    "TestResultByTest",
    "AdminTestResultDetail",
    "AccountCreate",
    "AccountUpdate",
    "AccountSummary",
    "AccountDetail",
    "BlogCreate",
    "BlogUpdate",
    "BlogResponse",
    "BlogUpdateResponse",
    "FaqCreate",
    "FaqUpdate",
    "FaqStatusUpdate",
    "FaqOrderUpdate",
    "AnswerOrderUpdate",
    "FaqAnswerCreate",
    "FaqAnswerUpdate",
    "FaqAnswerResponse",
    "FaqResponse",
    "PublicFaq",
    "GalleryCreate",
    "GalleryUpdate",
    "GalleryResponse",
    "GalleryUpdateResponse",
    "GalleryImageResponse",
    "GalleryUploadResponse",
    "ServiceCreate",
    "ServiceUpdate",
    "ServiceResponse",
]
