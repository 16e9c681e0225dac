"""
Standardized error response messages and builders.

All user-facing error messages live in ``ErrorMessages`` so endpoints stay
consistent. The ``raise_*`` helpers wrap ``fastapi.HTTPException``; the
exception handlers in ``app.main`` render them in the response envelope.

Usage:
    from app.core.error_responses import ErrorMessages, raise_not_found

    if not test:
        raise_not_found(ErrorMessages.TEST_ID_NOT_FOUND)
"""

from typing import NoReturn

from fastapi import HTTPException, status


class ErrorMessages:
    """Centralized error message constants and templates.

    Naming Convention:
    - Constants: SCREAMING_SNAKE_CASE for static messages
    - Methods: snake_case for templates that accept parameters
    """

    # ==========================================================================
    # Authentication Errors (401)
    # ==========================================================================
    TOKEN_REQUIRED = "Authentication token is required"
    INVALID_TOKEN = "Invalid token"
    INVALID_TOKEN_TYPE = "Invalid token type"
    TOKEN_EXPIRED = "Token has expired. Please refresh your token or login again"
    USER_NOT_FOUND_AUTH = "User not found"
    INVALID_CREDENTIALS = "Invalid username or password"
    INVALID_REFRESH_TOKEN = "Invalid refresh token"
    REFRESH_TOKEN_EXPIRED = "Refresh token has expired, please login again"
    INVALID_PASSWORD = "Invalid password"

    # ==========================================================================
    # Authorization Errors (403)
    # ==========================================================================
    ACCESS_DENIED = "Access denied"
    ROLE_CANNOT_ACCESS = "Access denied. Your role cannot access this function."
    TEST_ACCESS_DENIED = "Access denied for this test"
    TEST_STATUS_ACCESS_DENIED = "Access denied for this test status"
    CANNOT_EDIT_APPROVED_TEST = "Cannot edit an approved test"
    CANNOT_EDIT_APPROVED_SUBSKALA = "Cannot edit subskala of an approved test"
    CANNOT_EDIT_APPROVED_QUESTION = "Cannot edit question of an approved test"
    TEST_NOT_APPROVED = "This test is not approved yet"
    TEST_TARGET_MISMATCH = "Your role does not match the target of this test"
    TEST_AGE_MISMATCH = "Your age does not match the age range of this test"
    SUBMIT_REQUIRES_APPROVED = "You can only submit answers for approved tests"
    RESULT_ACCESS_DENIED = "You can only view your own test results"
    BLOG_ACCESS_DENIED = "You do not have permission to access this blog"
    BLOG_MODIFY_DENIED = "You can only modify your own blogs"
    FAQ_ACCESS_DENIED = "You can only access your own FAQs"
    FAQ_ANSWER_MODIFY_DENIED = "You can only modify your own answers"
    GALLERY_ACCESS_DENIED = "Access denied for this gallery"
    GALLERY_MODIFY_DENIED = (
        "Access denied. Cannot modify an approved gallery or another admin's gallery."
    )
    SERVICE_ACCESS_DENIED = "Access denied for this service"
    CANNOT_EDIT_APPROVED_SERVICE = "Cannot modify an approved service"
    IP_BLACKLISTED = "Access denied due to suspicious activity"

    # ==========================================================================
    # Not Found Errors (404)
    # ==========================================================================
    TEST_ID_NOT_FOUND = "Test ID not found"
    TEST_NOT_FOUND = "Test not found"
    SUBSKALA_NOT_FOUND = "Subskala not found"
    QUESTION_NOT_FOUND = "Question not found"
    NO_SUBSKALA_FOR_TEST = "No subskala found for this test ID"
    NO_QUESTIONS_FOR_SUBSKALA = "No questions found for this subskala ID"
    NO_QUESTIONS_FOR_TEST = "No questions found for this test"
    NO_RESULTS_FOR_TEST = "No test results found for this test"
    NO_RESULTS_FOR_USER = "No test results found for this user."
    NO_AVAILABLE_TESTS = "No tests available for your age and role."
    TEST_RESULT_NOT_FOUND = "Test result not found"
    BLOG_NOT_FOUND = "Blog not found"
    FAQ_ANSWER_NOT_FOUND = "FAQ answer not found"
    GALLERY_NOT_FOUND = "Gallery not found"
    GALLERY_IMAGE_NOT_FOUND = "Image not found in this gallery"
    SERVICE_NOT_FOUND = "Service not found"
    ROUTE_NOT_FOUND = "Resource not found"

    # ==========================================================================
    # Conflict Errors (409)
    # ==========================================================================
    USERNAME_EXISTS = "Username already exists"
    EMAIL_EXISTS = "Email already exists"
    PHONE_EXISTS = "Phone number already exists"
    USERNAME_TAKEN = "Username already taken"
    EMAIL_ALREADY_REGISTERED = "Email already registered"
    ACCOUNT_HAS_CONTENT = (
        "Account has authored content; delete or reassign it before deleting the account"
    )

    # ==========================================================================
    # Bad Request Errors (400)
    # ==========================================================================
    QUESTION_ORDER_EXISTS = "Question order for this test has already been saved."
    NO_QUESTIONS_TO_ORDER = "No questions found for this test."
    CURRENT_PASSWORD_INCORRECT = "Current password is incorrect"
    PASSWORDS_DO_NOT_MATCH = "Passwords do not match"
    IMAGE_URL_REQUIRED = "Image URL is required. Please upload an image first."
    INVALID_FILE_TYPE = "Invalid file type. Only JPEG, PNG and WebP images are allowed."
    NO_FILE_UPLOADED = "No image file uploaded"
    RELATED_RECORD_NOT_FOUND = "Related record not found"
    DUPLICATE_RECORD = "Record already exists"
    CONSTRAINT_VIOLATION = "Request violates a data integrity constraint"
    DATE_OF_BIRTH_REQUIRED = "Date of birth is required to find available tests"
    VALIDATION_ERROR = "Validation error"

    # ==========================================================================
    # Server Errors (5xx)
    # ==========================================================================
    DATABASE_UNAVAILABLE = (
        "Database service temporarily unavailable, please try again later"
    )
    INTERNAL_ERROR = "Internal server error"

    # ==========================================================================
    # Template Methods for Dynamic Messages
    # ==========================================================================
    @staticmethod
    def user_already_exists(field: str) -> str:
        """Message for a registration conflict on username/email/phone."""
        return f"User with this {field} already exists"

    @staticmethod
    def user_id_not_found(user_id: int) -> str:
        """Message for a missing account looked up by numeric ID."""
        return f"User with ID {user_id} not found"

    @staticmethod
    def faq_not_found(faq_id: int) -> str:
        """Message for a missing FAQ."""
        return f"FAQ with ID {faq_id} not found"

    @staticmethod
    def file_too_large(max_bytes: int) -> str:
        """Message for an upload over the size limit."""
        return f"File too large. Maximum size is {max_bytes // (1024 * 1024)}MB."

    @staticmethod
    def field_already_exists(field: str) -> str:
        """Message for a unique constraint violation."""
        return f"{field} already exists"

    @staticmethod
    def database_operation_failed(operation: str) -> str:
        """Generic message for database operation failures."""
        return f"Failed to {operation}. Please try again later."


# ==============================================================================
# HTTPException Builder Functions
# ==============================================================================


def raise_bad_request(detail: str) -> NoReturn:
    """Raise a 400 Bad Request exception."""
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=detail,
    )


def raise_unauthorized(
    detail: str,
    include_www_authenticate: bool = True,
) -> NoReturn:
    """Raise a 401 Unauthorized exception.

    Args:
        detail: User-facing error message
        include_www_authenticate: Whether to include WWW-Authenticate header
    """
    headers = {"WWW-Authenticate": "Bearer"} if include_www_authenticate else None
    raise HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers=headers,
    )


def raise_forbidden(detail: str = ErrorMessages.ACCESS_DENIED) -> NoReturn:
    """Raise a 403 Forbidden exception."""
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail=detail,
    )


def raise_not_found(detail: str) -> NoReturn:
    """Raise a 404 Not Found exception."""
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=detail,
    )


def raise_conflict(detail: str) -> NoReturn:
    """Raise a 409 Conflict exception."""
    raise HTTPException(
        status_code=status.HTTP_409_CONFLICT,
        detail=detail,
    )


def raise_validation_error(detail: str) -> NoReturn:
    """Raise a 422 Unprocessable Entity exception for cross-field rules."""
    raise HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail=detail,
    )


def raise_service_unavailable(
    detail: str = ErrorMessages.DATABASE_UNAVAILABLE,
) -> NoReturn:
    """Raise a 503 Service Unavailable exception."""
    raise HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail=detail,
    )
