"""
Authentication endpoints for registration, login and token refresh.
"""
import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.auth.security import (
    TokenExpiredError,
    TokenInvalidError,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    token_claims,
    verify_password,
    verify_token_type,
)
from app.core.db_error_handling import handle_db_error
from app.core.error_responses import ErrorMessages, raise_conflict, raise_unauthorized
from app.core.responses import success_response
from app.models import User, get_db
from app.schemas.auth import (
    LoginResponse,
    RefreshTokenRequest,
    TokenRefreshResponse,
    UserLogin,
    UserRegister,
    UserResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def find_registration_conflict(
    db: Session,
    username: str,
    email: str,
    phone_number: str = None,
    exclude_user_id: int = None,
):
    """
    Return the name of the first identity field already in use, if any.

    Checked in order: username, email, phone number.
    """
    checks = [("username", User.username, username), ("email", User.email, email)]
    if phone_number:
        checks.append(("phone number", User.phone_number, phone_number))

    for label, column, value in checks:
        if value is None:
            continue
        query = db.query(User.id).filter(column == value)
        if exclude_user_id is not None:
            query = query.filter(User.id != exclude_user_id)
        if query.first() is not None:
            return label
    return None


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register_user(user_data: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new end-user account.

    Raises:
        HTTPException: 409 if the username, email or phone number is taken
    """
    with handle_db_error(db, "register user"):
        conflict = find_registration_conflict(
            db, user_data.username, user_data.email, user_data.phone_number
        )
        if conflict:
            raise_conflict(ErrorMessages.user_already_exists(conflict))

        user = User(
            name=user_data.name,
            username=user_data.username,
            email=user_data.email,
            phone_number=user_data.phone_number,
            password_hash=hash_password(user_data.password),
            role=user_data.role,
            date_of_birth=user_data.date_of_birth,
        )
        if user_data.address:
            user.address = user_data.address

        db.add(user)
        db.commit()
        db.refresh(user)

    logger.info(f"Registered user {user.uuid} ({user.role.value})")
    return success_response(
        UserResponse.from_user(user),
        "Register successfully, please login with your credentials",
        status.HTTP_201_CREATED,
    )


@router.post("/login")
def login_user(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Authenticate with username and password.

    Returns:
        Access and refresh tokens with the user's public profile

    Raises:
        HTTPException: 401 if credentials are invalid
    """
    with handle_db_error(db, "login"):
        user = db.query(User).filter(User.username == credentials.username).first()

    if user is None or not verify_password(credentials.password, user.password_hash):
        raise_unauthorized(ErrorMessages.INVALID_CREDENTIALS)

    claims = token_claims(user)
    data = LoginResponse(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        user=UserResponse.from_user(user),
    )
    return success_response(data, "Login successful")


@router.post("/refresh-token")
def refresh_access_token(body: RefreshTokenRequest, db: Session = Depends(get_db)):
    """
    Exchange a refresh token for a new access token.

    Raises:
        HTTPException: 401 if the refresh token is expired, invalid, of the
            wrong type or belongs to a deleted user
    """
    try:
        payload = decode_token(body.refresh_token)
    except TokenExpiredError:
        raise_unauthorized(ErrorMessages.REFRESH_TOKEN_EXPIRED)
    except TokenInvalidError:
        raise_unauthorized(ErrorMessages.INVALID_REFRESH_TOKEN)

    if not verify_token_type(payload, "refresh"):
        raise_unauthorized(ErrorMessages.INVALID_REFRESH_TOKEN)

    with handle_db_error(db, "refresh token"):
        user = db.query(User).filter(User.id == payload.get("id")).first()

    if user is None:
        raise_unauthorized(ErrorMessages.INVALID_REFRESH_TOKEN)

    data = TokenRefreshResponse(access_token=create_access_token(token_claims(user)))
    return success_response(data, "Token refreshed successfully")
