"""
FastAPI authentication and authorization dependencies.
"""
from typing import Callable, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.db_error_handling import execute_with_circuit_breaker
from app.core.error_responses import ErrorMessages, raise_forbidden, raise_unauthorized
from app.models import STAFF_ROLES, User, UserRole, get_db
from .security import (
    TokenExpiredError,
    TokenInvalidError,
    decode_token,
    verify_token_type,
)

# Missing credentials are reported with our own message instead of FastAPI's
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the authenticated user from the Bearer access token.

    The user is also stored on ``request.state.user`` for handlers and
    exception hooks that run after dependency resolution.

    Raises:
        HTTPException: 401 if the token is missing, expired, invalid, of the
            wrong type, or refers to a user that no longer exists
    """
    if credentials is None or not credentials.credentials:
        raise_unauthorized(ErrorMessages.TOKEN_REQUIRED)

    try:
        payload = decode_token(credentials.credentials)
    except TokenExpiredError:
        raise_unauthorized(ErrorMessages.TOKEN_EXPIRED)
    except TokenInvalidError:
        raise_unauthorized(ErrorMessages.INVALID_TOKEN)

    if not verify_token_type(payload, "access"):
        raise_unauthorized(ErrorMessages.INVALID_TOKEN_TYPE)

    user_id = payload.get("id")
    if user_id is None:
        raise_unauthorized(ErrorMessages.INVALID_TOKEN)

    user = execute_with_circuit_breaker(
        lambda: db.query(User).filter(User.id == user_id).first(), db, "authenticate user"
    )

    if user is None:
        raise_unauthorized(ErrorMessages.USER_NOT_FOUND_AUTH)

    request.state.user = user
    return user


def require_roles(
    *roles: UserRole, detail: str = ErrorMessages.ACCESS_DENIED
) -> Callable[..., User]:
    """
    Build a dependency that only admits users with one of ``roles``.

    Usage:
        @router.get("/accounts/admins")
        def list_admins(user: User = Depends(require_roles(UserRole.SUPERADMIN))):
            ...
    """

    def dependency(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in roles:
            raise_forbidden(detail)
        return current_user

    return dependency


require_staff = require_roles(*STAFF_ROLES)
require_superadmin = require_roles(UserRole.SUPERADMIN)
